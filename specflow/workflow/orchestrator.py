"""Workflow orchestrator.

Runs a feature through a declared list of stages in order. Each stage
either publishes something (Confluence page, Jira issues) or is a manual
marker. Stages that carry an approval gate pause the run in
awaiting_approval; the pause only announces the approvers and the run
resumes straight away, since approval happens in Confluence.

The first failing stage fails the whole run. There is no rollback and a
failed run cannot be resumed; run it again instead.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from specflow.lib.config import Settings
from specflow.lib.constants import WORKFLOW_STAGES
from specflow.lib.errors import ConfigurationError
from specflow.lib.project_meta import ProjectMetadata, load_project_meta
from specflow.sync.confluence import ConfluenceSyncer
from specflow.sync.jira import JiraSyncer
from specflow.workflow.fsm import WorkflowFSM
from specflow.workflow.stages import StageError, StageResult, StageSkipped, run_stage

logger = logging.getLogger(__name__)

# Stages an approval gate may be attached to
GATED_STAGES = ("requirements", "design", "release")

DEFAULT_APPROVAL_GATES = {
    "requirements": ["Product Planning", "Department Manager"],
    "design": ["Architect", "Department Manager"],
    "release": ["Scrum Master", "Department Manager"],
}


@dataclass
class WorkflowConfig:
    feature: str
    stages: list[str]
    approval_gates: dict[str, list[str]] = field(default_factory=dict)

    def approvers_for(self, stage: str) -> list[str]:
        return list(self.approval_gates.get(stage) or [])


@dataclass
class WorkflowResult:
    feature: str
    status: str
    stages: dict = field(default_factory=dict)
    approvals_requested: list[tuple[str, list[str]]] = field(default_factory=list)
    failed_stage: str | None = None


def default_workflow_config(feature: str) -> WorkflowConfig:
    """Every stage, with the standard review gates."""
    return WorkflowConfig(
        feature=feature,
        stages=list(WORKFLOW_STAGES),
        approval_gates={stage: list(names) for stage, names in DEFAULT_APPROVAL_GATES.items()},
    )


def _check_config(stages, gates, source: str) -> None:
    if not isinstance(stages, list) or not stages:
        raise ConfigurationError(
            f"{source}: 'stages' must be a non-empty list",
            remediation=[f"Use stages from: {', '.join(WORKFLOW_STAGES)}"],
        )
    unknown = [s for s in stages if s not in WORKFLOW_STAGES]
    if unknown:
        raise ConfigurationError(
            f"{source}: unknown stage(s): {', '.join(map(str, unknown))}",
            remediation=[f"Use stages from: {', '.join(WORKFLOW_STAGES)}"],
        )

    if not isinstance(gates, dict):
        raise ConfigurationError(f"{source}: 'approval_gates' must be a mapping of stage -> approvers")
    for stage, approvers in gates.items():
        if stage not in GATED_STAGES:
            raise ConfigurationError(
                f"{source}: approval gate on unsupported stage: {stage}",
                remediation=[f"Approval gates can be set on: {', '.join(GATED_STAGES)}"],
            )
        if approvers is not None and (
            not isinstance(approvers, list) or not all(isinstance(a, str) for a in approvers)
        ):
            raise ConfigurationError(f"{source}: approvers for '{stage}' must be a list of names")


def load_workflow_config(path: Path, feature: str | None = None) -> WorkflowConfig:
    """Load a workflow definition from YAML.

    Expected format:
        feature: my-feature        # optional when given on the command line
        stages: [requirements, design, tasks]
        approval_gates:
          design: [Architect]

    Raises:
        ConfigurationError: unreadable file or invalid stages/gates
    """
    path = Path(path)
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except FileNotFoundError:
        raise ConfigurationError(f"Workflow config not found: {path}") from None
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"{path}: expected a mapping at the top level")

    feature = feature or data.get("feature")
    if not feature:
        raise ConfigurationError(
            f"{path}: no feature given",
            remediation=["Add 'feature: <name>' to the config or pass --feature"],
        )

    stages = data.get("stages", list(WORKFLOW_STAGES))
    gates = data.get("approval_gates") or {}
    _check_config(stages, gates, str(path))

    return WorkflowConfig(
        feature=feature,
        stages=list(stages),
        approval_gates={stage: list(names or []) for stage, names in gates.items()},
    )


class WorkflowOrchestrator:
    """Run a WorkflowConfig stage by stage."""

    def __init__(self, settings: Settings, config: WorkflowConfig,
                 confluence_syncer: ConfluenceSyncer | None = None,
                 jira_syncer: JiraSyncer | None = None,
                 project_meta: ProjectMetadata | None = None):
        _check_config(config.stages, config.approval_gates, "workflow config")
        self.settings = settings
        self.config = config
        self.confluence_syncer = confluence_syncer or ConfluenceSyncer(settings)
        self.jira_syncer = jira_syncer or JiraSyncer(settings)
        self.project_meta = project_meta
        self.fsm = WorkflowFSM(config.feature)

    def run(self) -> WorkflowResult:
        """Execute every stage in order.

        Raises:
            StageError: a stage failed; the run is left in the failed state
            ConfigurationError: project.json is missing or invalid
            RuntimeError: this orchestrator already ran to a terminal state
        """
        feature = self.config.feature
        if self.fsm.is_terminal:
            raise RuntimeError(f"Workflow for {feature} already {self.fsm.state}; start a new run instead")

        meta = self.project_meta or load_project_meta(self.settings.project_json_path)

        print(f"Starting workflow for: {feature}")
        print(f"Stages: {' -> '.join(self.config.stages)}")
        print(f"Project: {meta.project_name}")

        result = WorkflowResult(feature=feature, status=self.fsm.state)
        self.fsm.start()

        for stage in self.config.stages:
            print(f"\nStage: {stage}")
            self.fsm.current_stage = stage
            try:
                outcome = run_stage(result.stages, stage, lambda: self._execute(stage))
                approvers = self.config.approvers_for(stage)
                if approvers:
                    self._await_approval(stage, approvers)
                    result.approvals_requested.append((stage, approvers))
            except StageError as e:
                print(f"Stage failed: {stage}: {e.message}")
                if self.fsm.can("fail"):
                    self.fsm.fail()
                result.status = self.fsm.state
                result.failed_stage = stage
                raise

            if outcome == StageResult.SKIPPED:
                print(f"Stage skipped: {stage}")
            else:
                print(f"Stage completed: {stage}")

        self.fsm.current_stage = None
        self.fsm.finish()
        result.status = self.fsm.state
        print("\nWorkflow completed successfully")
        return result

    def _execute(self, stage: str) -> None:
        feature = self.config.feature
        if stage in ("requirements", "design"):
            print(f"  Syncing {stage} to Confluence...")
            self.confluence_syncer.sync(feature, stage)
        elif stage == "tasks":
            print("  Creating JIRA tasks...")
            self.jira_syncer.sync(feature)
        elif stage == "implement":
            print("  Implementation phase - manual step")
            print(f"  Work through the stories in JIRA for {feature}")
            raise StageSkipped(stage, "manual step")
        elif stage == "test":
            print("  Test phase - nothing to run")
            raise StageSkipped(stage, "no test automation configured")
        elif stage == "release":
            print("  Release preparation - nothing to run")
            raise StageSkipped(stage, "no release automation configured")

    def _await_approval(self, stage: str, approvers: list[str]) -> None:
        # Approval happens in Confluence; nothing here polls for it
        self.fsm.request_approval()
        print(f"\nApproval required for: {stage}")
        print(f"  Approvers: {', '.join(approvers)}")
        print("  Approve the page in Confluence")
        print("  (confirm the approval manually before relying on later stages)")
        logger.info(f"Approval requested for {self.config.feature}/{stage}: {approvers}")
        self.fsm.approval_recorded()
