"""State file operations for a feature.

Reads and writes `.kiro/specs/<feature>/spec.json`: milestone flags set by
reviewers, and remote identifiers recorded by the sync commands. Keys this
module does not know about are preserved on write. An existing file that
cannot be read is never replaced.
"""

import json
import logging
from datetime import datetime
from pathlib import Path

from .errors import ConfigurationError
from .validate import iter_errors, validate_before_write

logger = logging.getLogger(__name__)


class StateFileError(ConfigurationError):
    """spec.json is missing, cannot be parsed, or breaks its schema."""


class SpecState:
    """In-memory view of a feature's spec.json."""

    def __init__(self, path: Path, data: dict | None = None):
        self.path = path
        self.data = data if data is not None else {}

    @classmethod
    def load(cls, path: Path) -> "SpecState":
        """Load spec.json.

        Raises:
            StateFileError: the file is missing, is not a JSON object, or
                does not match the spec schema
        """
        if not path.exists():
            raise StateFileError(f"spec.json not found: {path}")
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise StateFileError(
                f"spec.json is not valid JSON ({path}): {e}",
                remediation=[f"Fix the JSON in {path}"],
            ) from None
        if not isinstance(data, dict):
            raise StateFileError(
                f"spec.json must contain a JSON object: {path}",
                remediation=[f"Fix the JSON in {path}"],
            )

        problems = iter_errors(data, "spec")
        if problems:
            raise StateFileError(
                f"spec.json does not match its schema ({path}): {'; '.join(problems)}",
                remediation=[f"Correct the listed fields in {path}"],
            )
        return cls(path, data)

    @classmethod
    def load_for_update(cls, path: Path) -> "SpecState":
        """Load spec.json for write-back, starting an empty record only when absent.

        Raises:
            StateFileError: the file exists but cannot be used (see load)
        """
        if not path.exists():
            logger.info(f"{path} not found; starting a new state record")
            return cls(path, {})
        return cls.load(path)

    def _section(self, name: str) -> dict:
        value = self.data.get(name)
        return value if isinstance(value, dict) else {}

    def milestone_completed(self, phase: str) -> bool:
        milestone = self._section("milestones").get(phase)
        return isinstance(milestone, dict) and milestone.get("completed") is True

    @property
    def space_key(self) -> str | None:
        return self._section("confluence").get("spaceKey") or None

    def page_id(self, doc_type: str) -> str | None:
        value = self._section("confluence").get(f"{doc_type}PageId")
        return str(value) if value not in (None, "") else None

    @property
    def epic_key(self) -> str | None:
        return self._section("jira").get("epicKey") or None

    @property
    def stories(self) -> tuple[int, int] | None:
        """(created, total) story counts, or None when never synced or not integers."""
        stories = self._section("jira").get("stories")
        if not isinstance(stories, dict):
            return None
        created, total = stories.get("created", 0), stories.get("total", 0)
        if not all(isinstance(n, int) and not isinstance(n, bool) for n in (created, total)):
            return None
        return created, total

    def record_page(self, space_key: str, doc_type: str, page_id: str, url: str | None = None) -> None:
        confluence = self.data.setdefault("confluence", {})
        confluence["spaceKey"] = space_key
        confluence[f"{doc_type}PageId"] = str(page_id)
        if url:
            confluence[f"{doc_type}PageUrl"] = url
        self._touch()

    def record_jira(self, epic_key: str, created: int, total: int, epic_url: str | None = None) -> None:
        jira = self.data.setdefault("jira", {})
        jira["epicKey"] = epic_key
        if epic_url:
            jira["epicUrl"] = epic_url
        jira["stories"] = {"created": created, "total": total}
        self._touch()

    def _touch(self) -> None:
        self.data["updated_at"] = datetime.now().isoformat(timespec="seconds")

    def save(self) -> None:
        """Validate and write spec.json.

        Raises:
            ValidationError: the data does not match the spec schema
        """
        validate_before_write(self.data, "spec", self.path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(self.data, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
