"""Shared fixtures: a throwaway project root with .env and .kiro/project.json."""

import json

import pytest

from specflow.lib.config import load_settings
from specflow.lib.project_meta import ProjectMetadata

PROJECT_DATA = {
    "projectId": "PRJ-001",
    "projectName": "Demo Project",
    "customer": "Acme",
    "jiraProjectKey": "DEMO",
    "confluenceLabels": ["demo", "specflow"],
    "status": "active",
    "team": ["alice", "bob"],
    "stakeholders": ["Carol"],
    "repository": "https://github.com/acme/demo",
}

ENV_TEXT = (
    "ATLASSIAN_URL=https://acme.atlassian.net\n"
    "ATLASSIAN_EMAIL=dev@acme.test\n"
    "ATLASSIAN_API_TOKEN=secret-token\n"
    "CONFLUENCE_PRD_SPACE=DOCS\n"
)


@pytest.fixture
def project_root(tmp_path):
    """Project root with credentials and a valid project.json."""
    (tmp_path / ".env").write_text(ENV_TEXT)
    kiro = tmp_path / ".kiro"
    (kiro / "specs").mkdir(parents=True)
    (kiro / "project.json").write_text(json.dumps(PROJECT_DATA))
    return tmp_path


@pytest.fixture
def settings(project_root):
    return load_settings(project_root, environ={})


@pytest.fixture
def meta():
    return ProjectMetadata.from_dict(PROJECT_DATA)


def write_feature(settings, feature="demo", docs=None, state=None):
    """Create .kiro/specs/<feature>/ with the given documents and spec.json."""
    feature_dir = settings.feature_dir(feature)
    feature_dir.mkdir(parents=True, exist_ok=True)
    for doc_type, text in (docs or {}).items():
        (feature_dir / f"{doc_type}.md").write_text(text, encoding="utf-8")
    if state is not None:
        (feature_dir / "spec.json").write_text(json.dumps(state), encoding="utf-8")
    return feature_dir
