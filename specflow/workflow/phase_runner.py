"""
Single-phase execution.

Runs one phase end to end: check the document, publish it (Confluence for
requirements/design, Jira for tasks), then validate the phase's exit
criteria. A failed sync is recorded and validation still runs so the
summary shows everything that is missing.
"""

import logging
from dataclasses import dataclass, field

from specflow.lib.config import Settings
from specflow.lib.constants import PHASES, SCOPE_TRACKER
from specflow.lib.errors import SpecflowError
from specflow.sync.confluence import ConfluenceSyncer
from specflow.sync.jira import JiraSyncer
from specflow.workflow.preflight import PreFlightChecker
from specflow.workflow.validator import PhaseValidator, ValidationResult

logger = logging.getLogger(__name__)

PHASE_TITLES = {
    "requirements": "Requirements",
    "design": "Design",
    "tasks": "Tasks",
}


@dataclass
class PhaseRunResult:
    phase: str
    success: bool = False
    confluence_created: bool = False
    jira_created: bool = False
    validation_passed: bool = False
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


class PhaseRunner:
    """Compose preflight, sync and validation into one phase execution."""

    def __init__(self, settings: Settings,
                 validator: PhaseValidator | None = None,
                 preflight: PreFlightChecker | None = None,
                 confluence_syncer: ConfluenceSyncer | None = None,
                 jira_syncer: JiraSyncer | None = None):
        self.settings = settings
        self.validator = validator or PhaseValidator(settings)
        self.preflight = preflight or PreFlightChecker(settings)
        self.confluence_syncer = confluence_syncer or ConfluenceSyncer(settings)
        self.jira_syncer = jira_syncer or JiraSyncer(settings)

    def run_phase(self, feature: str, phase: str) -> PhaseRunResult:
        if phase not in PHASES:
            raise ValueError(f"Unknown phase: {phase}")

        print(f"\nPhase: {PHASE_TITLES[phase]}")
        print("=" * 60)

        if phase == "tasks":
            return self._run_tasks(feature)
        return self._run_document_phase(feature, phase)

    def _missing_document(self, feature: str, phase: str) -> PhaseRunResult | None:
        path = self.settings.document_path(feature, phase)
        if path.exists():
            print(f"  {path.name} found")
            return None
        return PhaseRunResult(
            phase=phase,
            errors=[f"{path.name}: document not found ({path}) → write it before running this phase"],
        )

    def _run_document_phase(self, feature: str, phase: str) -> PhaseRunResult:
        missing = self._missing_document(feature, phase)
        if missing:
            return missing

        result = PhaseRunResult(phase=phase)
        url = None

        print("\nPublishing Confluence page...")
        try:
            page = self.confluence_syncer.sync(feature, phase)
        except SpecflowError as e:
            logger.warning(f"Confluence sync failed for {feature}/{phase}: {e.message}")
            result.errors.append(f"Confluence page sync failed: {e.message}")
        else:
            result.confluence_created = True
            url = page.url

        self._validate(feature, result)
        result.success = result.validation_passed and result.confluence_created

        self._print_summary(result, "Confluence page", result.confluence_created)
        if result.success:
            print(f"\n{PHASE_TITLES[phase]} phase complete")
            print("Ask the reviewers to approve the page in Confluence")
            print(f"Confluence: {url or self.settings.base_url + '/wiki/spaces'}")
        return result

    def _run_tasks(self, feature: str) -> PhaseRunResult:
        print("\nRunning pre-flight check...")
        preflight = self.preflight.check(SCOPE_TRACKER)
        if not preflight.valid:
            print("\nPre-flight check failed:")
            for error in preflight.errors:
                print(f"  {error}")
            return PhaseRunResult(phase="tasks", errors=list(preflight.errors))
        print("Pre-flight check passed")

        missing = self._missing_document(feature, "tasks")
        if missing:
            return missing

        result = PhaseRunResult(phase="tasks", warnings=list(preflight.warnings))

        print("\nCreating JIRA Epic/Stories...")
        try:
            summary = self.jira_syncer.sync(feature)
        except SpecflowError as e:
            logger.warning(f"JIRA sync failed for {feature}: {e.message}")
            result.errors.append(f"JIRA sync failed: {e.message}")
        else:
            result.jira_created = True
            result.warnings.extend(summary.warnings)

        self._validate(feature, result)
        result.success = result.validation_passed and result.jira_created

        self._print_summary(result, "JIRA Epic/Stories", result.jira_created)
        if result.success:
            print("\nTasks phase complete")
            print("Notify the development team that implementation can start")
        return result

    def _validate(self, feature: str, result: PhaseRunResult) -> ValidationResult:
        print("\nValidating...")
        validation = self.validator.validate(feature, result.phase)
        result.validation_passed = validation.valid
        result.errors.extend(validation.errors)
        result.warnings.extend(validation.warnings)
        return validation

    @staticmethod
    def _print_summary(result: PhaseRunResult, artifact: str, created: bool) -> None:
        def mark(ok: bool) -> str:
            return "OK  " if ok else "FAIL"

        print("\n" + "=" * 60)
        print(f"{PHASE_TITLES[result.phase]} phase check:")
        print(f"  [OK  ] {result.phase}.md: present")
        print(f"  [{mark(created)}] {artifact}: {'synced' if created else 'not synced'}")
        print(f"  [{mark(result.validation_passed)}] validation: "
              f"{'passed' if result.validation_passed else 'failed'}")
        for warning in result.warnings:
            print(f"  [WARN] {warning}")
        for error in result.errors:
            print(f"  [ERR ] {error}")
