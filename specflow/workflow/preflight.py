"""
Pre-flight checks.

Verifies that credentials, the project descriptor, and the remote
Confluence space / Jira project exist before a phase touches them.
Steps 1-2 are local and terminal; steps 3-4 call the remote services.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable

from specflow.lib.config import REQUIRED_CREDENTIAL_KEYS, Settings
from specflow.lib.confluence import ConfluenceClient
from specflow.lib.constants import (
    API_TOKEN_URL,
    SCOPE_ALIASES,
    SCOPE_ALL,
    SCOPE_DOCUMENTATION,
    SCOPE_TRACKER,
)
from specflow.lib.errors import ConfigurationError, RemoteCallError
from specflow.lib.jira import JiraClient
from specflow.lib.project_meta import ProjectMetadata, load_project_meta

logger = logging.getLogger(__name__)


@dataclass
class PreFlightResult:
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors


def normalize_scope(scope: str) -> str:
    try:
        return SCOPE_ALIASES[scope]
    except KeyError:
        raise ValueError(f"Unknown preflight scope: {scope} (use confluence, jira or all)") from None


class PreFlightChecker:
    """Check external prerequisites for a scope of remote operations."""

    def __init__(self, settings: Settings,
                 confluence_factory: Callable[[Settings], ConfluenceClient] = ConfluenceClient,
                 jira_factory: Callable[[Settings], JiraClient] = JiraClient):
        self.settings = settings
        self.confluence_factory = confluence_factory
        self.jira_factory = jira_factory

    def check(self, scope: str = SCOPE_ALL) -> PreFlightResult:
        scope = normalize_scope(scope)
        result = PreFlightResult()

        print("Step 1: credentials (.env)")
        self._check_credentials(result)
        if not result.valid:
            return result
        print("  credentials OK")

        print("Step 2: project.json")
        meta = self._check_project(result)
        if meta is not None:
            print("  project.json OK")

        if not result.valid:
            return result

        if scope in (SCOPE_DOCUMENTATION, SCOPE_ALL):
            print("Step 3: Confluence space")
            self._check_space(result)

        if scope in (SCOPE_TRACKER, SCOPE_ALL):
            print("Step 4: JIRA project")
            self._check_jira_project(meta, result)

        return result

    def _check_credentials(self, result: PreFlightResult) -> None:
        settings = self.settings
        missing = settings.missing_credentials()

        if not settings.env_file_found and len(missing) == len(REQUIRED_CREDENTIAL_KEYS):
            result.errors.append(
                f".env file not found: {settings.env_file}"
                " → copy the template: cp .env.example .env, then set the credentials"
                f" (API token: {API_TOKEN_URL})"
            )
            return

        if missing:
            result.errors.append(
                f"Required settings missing from .env: {', '.join(missing)}"
                " → set ATLASSIAN_URL=https://your-site.atlassian.net,"
                " ATLASSIAN_EMAIL=you@example.com, ATLASSIAN_API_TOKEN=<token>"
                f" (API token: {API_TOKEN_URL})"
            )
            return

        if not settings.confluence_space_configured:
            result.warnings.append(
                f"CONFLUENCE_PRD_SPACE is not set (default: {settings.confluence_space})"
                f" → spaces: {settings.base_url}/wiki/spaces"
            )

    def _check_project(self, result: PreFlightResult) -> ProjectMetadata | None:
        try:
            return load_project_meta(self.settings.project_json_path)
        except ConfigurationError as e:
            hint = f" → {'; '.join(e.remediation)}" if e.remediation else ""
            result.errors.append(f"{e.message}{hint}")
            return None

    def _check_space(self, result: PreFlightResult) -> None:
        space_key = self.settings.confluence_space
        base = self.settings.base_url
        try:
            space = self.confluence_factory(self.settings).get_space(space_key)
        except RemoteCallError as e:
            if e.is_not_found:
                result.errors.append(
                    f"Confluence space does not exist: {space_key}"
                    f" → create it at {base}/wiki/spaces or fix CONFLUENCE_PRD_SPACE in .env"
                )
            elif e.is_unauthorized:
                result.errors.append(
                    f"Confluence authentication failed → check the credentials in .env (API token: {API_TOKEN_URL})"
                )
            else:
                result.warnings.append(f"Confluence space check failed: {e.message}")
            return
        print(f"  Confluence space OK: {space_key} ({space.get('name', '')})")

    def _check_jira_project(self, meta: ProjectMetadata, result: PreFlightResult) -> None:
        project_key = meta.jira_project_key
        base = self.settings.base_url
        try:
            project = self.jira_factory(self.settings).get_project(project_key)
        except RemoteCallError as e:
            if e.is_not_found:
                result.errors.append(
                    f"JIRA project does not exist: {project_key}"
                    f" → create it at {base}/jira/projects/create, or change jiraProjectKey"
                    f" in .kiro/project.json (currently \"{project_key}\")"
                )
            elif e.is_unauthorized:
                result.errors.append(
                    f"JIRA authentication failed → check the credentials in .env (API token: {API_TOKEN_URL})"
                )
            else:
                result.warnings.append(f"JIRA project check failed: {e.message}")
            return
        print(f"  JIRA project OK: {project_key} ({project.get('name', '')})")


def format_preflight_result(result: PreFlightResult) -> str:
    lines = []
    if result.warnings:
        lines.append("Warnings:")
        lines += [f"  - {w}" for w in result.warnings]
    if result.errors:
        lines.append("Errors:")
        lines += [f"  - {e}" for e in result.errors]
        lines.append("Pre-flight check failed")
    else:
        lines.append("Pre-flight check passed: all settings are configured")
    return "\n".join(lines)
