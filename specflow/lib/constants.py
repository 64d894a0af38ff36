"""Shared constants for specflow."""

import re

# Phases with on-disk documents and exit criteria, in precedence order
PHASES = ("requirements", "design", "tasks")

# Stages a workflow may declare, in canonical order
WORKFLOW_STAGES = ("requirements", "design", "tasks", "implement", "test", "release")

# Preflight scopes; CLI aliases map onto these
SCOPE_DOCUMENTATION = "documentation"
SCOPE_TRACKER = "tracker"
SCOPE_ALL = "all"
SCOPE_ALIASES = {
    "confluence": SCOPE_DOCUMENTATION,
    "documentation": SCOPE_DOCUMENTATION,
    "jira": SCOPE_TRACKER,
    "tracker": SCOPE_TRACKER,
    "all": SCOPE_ALL,
}

KIRO_DIR = ".kiro"
SPECS_DIRNAME = "specs"
PROJECT_FILENAME = "project.json"
STATE_FILENAME = "spec.json"

DEFAULT_CONFLUENCE_SPACE = "PRD"
DEFAULT_HTTP_TIMEOUT = 30

GITHUB_SYNC_LABEL = "github-sync"

API_TOKEN_URL = "https://id.atlassian.com/manage-profile/security/api-tokens"

FEATURE_NAME_PATTERN = re.compile(r'^[A-Za-z0-9][A-Za-z0-9._-]*$')
