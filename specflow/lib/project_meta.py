"""
Project metadata loader.

Reads `.kiro/project.json`, the per-project descriptor every sync and
check depends on.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path

from . import validate
from .errors import ConfigurationError

REQUIRED_FIELDS = ("projectId", "projectName", "jiraProjectKey", "confluenceLabels")


@dataclass
class ProjectMetadata:
    """Identity, labels and stakeholders of a project."""
    project_id: str
    project_name: str
    jira_project_key: str
    confluence_labels: list[str]
    status: str = "active"
    customer: str = ""
    team: list[str] = field(default_factory=list)
    stakeholders: list[str] = field(default_factory=list)
    repository: str = ""
    description: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> "ProjectMetadata":
        return cls(
            project_id=data["projectId"],
            project_name=data["projectName"],
            jira_project_key=data["jiraProjectKey"],
            confluence_labels=list(data["confluenceLabels"]),
            status=data.get("status", "active"),
            customer=data.get("customer", ""),
            team=list(data.get("team", [])),
            stakeholders=list(data.get("stakeholders", [])),
            repository=data.get("repository", "").rstrip("/"),
            description=data.get("description"),
        )


def missing_required_fields(data: dict) -> list[str]:
    """Required fields that are absent or empty strings."""
    return [name for name in REQUIRED_FIELDS if data.get(name) in (None, "")]


def load_project_meta(path: Path) -> ProjectMetadata:
    """Load and validate project.json.

    Raises:
        ConfigurationError: file missing, invalid JSON, or schema violation
    """
    if not path.exists():
        raise ConfigurationError(
            f"Project metadata not found: {path}",
            remediation=[
                "This directory is not a specflow project",
                f"Create {path} with projectId, projectName, jiraProjectKey and confluenceLabels",
            ],
        )

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ConfigurationError(
            f"Invalid JSON in {path}: {e}",
            remediation=[f"Fix the syntax of {path}"],
        ) from None

    if not isinstance(data, dict):
        raise ConfigurationError(f"{path} must contain a JSON object")

    missing = missing_required_fields(data)
    if missing:
        raise ConfigurationError(
            f"Required field missing in project.json: {', '.join(missing)}",
            remediation=[f"Add {', '.join(missing)} to {path}"],
        )

    problems = validate.iter_errors(data, "project")
    if problems:
        raise ConfigurationError(
            f"project.json does not match the project schema: {problems[0]}",
            remediation=[f"Edit {path}"] + [f"  {p}" for p in problems[1:]],
        )

    return ProjectMetadata.from_dict(data)


def format_project_info(meta: ProjectMetadata) -> str:
    """Format project metadata for console headers."""
    lines = [
        f"Project: {meta.project_name} ({meta.project_id})",
        f"JIRA: {meta.jira_project_key}",
        f"Labels: {', '.join(meta.confluence_labels)}",
        f"Status: {meta.status}",
    ]
    if meta.team:
        lines.append(f"Team: {', '.join(meta.team)}")
    return "\n".join(lines)
