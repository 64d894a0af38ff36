"""
Phase exit-criteria validation.

Reads a feature's documents and spec.json and classifies what is still
missing for a phase. Errors block the phase; warnings are advisory.
Phases are strictly ordered: design needs the requirements milestone,
tasks needs the design milestone.
"""

import re
from dataclasses import dataclass, field

from specflow.lib.config import Settings
from specflow.lib.constants import PHASES
from specflow.lib.spec_state import SpecState, StateFileError

# Readability markers expected in tasks.md schedules
WEEKDAY_RE = re.compile(r'（[月火水木金土日]）|\((?:Mon|Tue|Wed|Thu|Fri|Sat|Sun)\)')
BUSINESS_DAY_RE = re.compile(r'\bDay\s?1\b')
WEEKEND_NOTE_RE = re.compile(r'土日|weekends?', re.IGNORECASE)

TASKS_MARKERS = [
    (WEEKDAY_RE, "tasks.md has no weekday annotations (e.g. （月）, (Mon))"),
    (BUSINESS_DAY_RE, "tasks.md has no business-day counters (Day 1, Day 2, ...)"),
    (WEEKEND_NOTE_RE, "tasks.md does not state that weekends are excluded"),
]


@dataclass
class ValidationResult:
    phase: str
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors


def tasks_marker_warnings(content: str) -> list[str]:
    """One warning per readability marker class missing from tasks.md."""
    return [message for pattern, message in TASKS_MARKERS if not pattern.search(content)]


class PhaseValidator:
    """Decide whether a phase's required steps are complete."""

    def __init__(self, settings: Settings):
        self.settings = settings

    def validate(self, feature: str, phase: str) -> ValidationResult:
        if phase not in PHASES:
            raise ValueError(f"Unknown phase: {phase}")

        result = ValidationResult(phase=phase)
        try:
            state = SpecState.load(self.settings.state_path(feature))
        except StateFileError as e:
            result.errors.append(f"Cannot read spec.json: {e}")
            return result

        check = getattr(self, f"_check_{phase}")
        check(feature, state, result)
        return result

    def _document_exists(self, feature: str, doc_type: str) -> bool:
        return self.settings.document_path(feature, doc_type).exists()

    def _check_requirements(self, feature: str, state: SpecState, result: ValidationResult) -> None:
        if not self._document_exists(feature, "requirements"):
            result.errors.append("requirements.md has not been written")

        if not state.page_id("requirements"):
            result.errors.append(
                "Confluence page (requirements) has not been created"
                f" → run: specflow confluence-sync {feature} requirements"
            )

        if not state.space_key:
            result.errors.append("spec.json has no confluence.spaceKey recorded")

        if not state.milestone_completed("requirements"):
            result.warnings.append("milestones.requirements.completed is false in spec.json")

    def _check_design(self, feature: str, state: SpecState, result: ValidationResult) -> None:
        if not self._document_exists(feature, "design"):
            result.errors.append("design.md has not been written")

        if not state.milestone_completed("requirements"):
            result.errors.append("Requirements phase is not complete (prerequisite)")

        if not state.page_id("design"):
            result.errors.append(
                "Confluence page (design) has not been created"
                f" → run: specflow confluence-sync {feature} design"
            )

        if not state.milestone_completed("design"):
            result.warnings.append("milestones.design.completed is false in spec.json")

    def _check_tasks(self, feature: str, state: SpecState, result: ValidationResult) -> None:
        tasks_path = self.settings.document_path(feature, "tasks")
        if not tasks_path.exists():
            result.errors.append("tasks.md has not been written")
        else:
            result.warnings.extend(tasks_marker_warnings(tasks_path.read_text(encoding="utf-8")))

        if not state.milestone_completed("design"):
            result.errors.append("Design phase is not complete (prerequisite)")

        if not state.epic_key:
            result.errors.append(f"JIRA Epic has not been created → run: specflow jira-sync {feature}")

        stories = state.stories
        if stories is None or stories[0] == 0:
            result.errors.append(f"No JIRA Stories have been created → run: specflow jira-sync {feature}")
        elif stories[0] < stories[1]:
            result.warnings.append(f"Some JIRA Stories were not created: {stories[0]}/{stories[1]}")

        if not state.milestone_completed("tasks"):
            result.warnings.append("milestones.tasks.completed is false in spec.json")


def format_validation_result(result: ValidationResult) -> str:
    """Render a ValidationResult for the console."""
    lines = [f"Validation result ({result.phase}):"]
    if result.errors:
        lines.append("\nErrors:")
        lines += [f"  - {e}" for e in result.errors]
    if result.warnings:
        lines.append("\nWarnings:")
        lines += [f"  - {w}" for w in result.warnings]
    if result.valid:
        lines.append("\nValidation passed: all required items are complete")
    else:
        lines.append("\nValidation failed: fix the errors above")
    return "\n".join(lines)
