"""
Configuration loaders for specflow.

Settings are read once per invocation from `.env` plus the process
environment and passed explicitly into every component.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from . import envparse
from .constants import (
    API_TOKEN_URL,
    DEFAULT_CONFLUENCE_SPACE,
    DEFAULT_HTTP_TIMEOUT,
    KIRO_DIR,
    PROJECT_FILENAME,
    SPECS_DIRNAME,
    STATE_FILENAME,
)
from .errors import ConfigurationError

logger = logging.getLogger(__name__)

REQUIRED_CREDENTIAL_KEYS = ("ATLASSIAN_URL", "ATLASSIAN_EMAIL", "ATLASSIAN_API_TOKEN")


@dataclass(frozen=True)
class Settings:
    """Process-wide configuration from .env and the environment."""
    project_root: Path
    env_file: Path
    env_file_found: bool
    atlassian_url: str | None
    atlassian_email: str | None
    atlassian_api_token: str | None
    confluence_space: str = DEFAULT_CONFLUENCE_SPACE
    confluence_space_configured: bool = False
    jira_epic_link_field: str | None = None
    jira_story_issue_type_id: str | None = None
    http_timeout: float = DEFAULT_HTTP_TIMEOUT

    @property
    def kiro_dir(self) -> Path:
        return self.project_root / KIRO_DIR

    @property
    def specs_dir(self) -> Path:
        return self.kiro_dir / SPECS_DIRNAME

    @property
    def project_json_path(self) -> Path:
        return self.kiro_dir / PROJECT_FILENAME

    def feature_dir(self, feature: str) -> Path:
        return self.specs_dir / feature

    def document_path(self, feature: str, doc_type: str) -> Path:
        """Path to requirements.md / design.md / tasks.md for a feature."""
        return self.feature_dir(feature) / f"{doc_type}.md"

    def state_path(self, feature: str) -> Path:
        return self.feature_dir(feature) / STATE_FILENAME

    def missing_credentials(self) -> list[str]:
        values = {
            "ATLASSIAN_URL": self.atlassian_url,
            "ATLASSIAN_EMAIL": self.atlassian_email,
            "ATLASSIAN_API_TOKEN": self.atlassian_api_token,
        }
        return [key for key in REQUIRED_CREDENTIAL_KEYS if not values[key]]

    def require_credentials(self) -> None:
        """Raise ConfigurationError unless all Atlassian credentials are set."""
        missing = self.missing_credentials()
        if missing:
            raise ConfigurationError(
                f"Missing Atlassian credentials: {', '.join(missing)}",
                remediation=[
                    f"Set them in {self.env_file} (copy .env.example to .env to start)",
                    f"API token: {API_TOKEN_URL}",
                ],
            )

    @property
    def base_url(self) -> str:
        return (self.atlassian_url or "").rstrip("/")


def load_settings(project_root: Path | None = None,
                  environ: Mapping[str, str] | None = None) -> Settings:
    """Load Settings for a project root.

    Never raises for missing credentials; callers that need them use
    Settings.require_credentials(). A malformed .env raises ConfigurationError.
    """
    root = Path(project_root) if project_root else Path.cwd()
    env_file = root / ".env"
    environ = os.environ if environ is None else environ

    file_values: dict[str, str] = {}
    if env_file.exists():
        try:
            file_values = envparse.load_env(env_file)
        except ValueError as e:
            raise ConfigurationError(
                f"Invalid .env file: {e}",
                remediation=[f"Edit {env_file} so every line is KEY=value"],
            ) from None

    env = envparse.overlay(file_values, environ)

    timeout = DEFAULT_HTTP_TIMEOUT
    raw_timeout = env.get("SPECFLOW_HTTP_TIMEOUT")
    if raw_timeout:
        try:
            timeout = float(raw_timeout)
        except ValueError:
            logger.warning(f"Ignoring non-numeric SPECFLOW_HTTP_TIMEOUT '{raw_timeout}'")

    return Settings(
        project_root=root,
        env_file=env_file,
        env_file_found=env_file.exists(),
        atlassian_url=env.get("ATLASSIAN_URL") or None,
        atlassian_email=env.get("ATLASSIAN_EMAIL") or None,
        atlassian_api_token=env.get("ATLASSIAN_API_TOKEN") or None,
        confluence_space=env.get("CONFLUENCE_PRD_SPACE") or DEFAULT_CONFLUENCE_SPACE,
        confluence_space_configured=bool(env.get("CONFLUENCE_PRD_SPACE")),
        jira_epic_link_field=env.get("JIRA_EPIC_LINK_FIELD") or None,
        jira_story_issue_type_id=env.get("JIRA_STORY_ISSUE_TYPE_ID") or None,
        http_timeout=timeout,
    )
