"""
specflow workflow - Run a feature through the configured stages.
"""

import sys
from pathlib import Path

from specflow.lib.config import Settings
from specflow.workflow.orchestrator import (
    WorkflowOrchestrator,
    default_workflow_config,
    load_workflow_config,
)
from specflow.workflow.stages import StageError


def cmd_workflow(args, settings: Settings) -> int:
    if args.config:
        config = load_workflow_config(Path(args.config), feature=args.feature)
    else:
        config = default_workflow_config(args.feature)

    orchestrator = WorkflowOrchestrator(settings, config)
    try:
        result = orchestrator.run()
    except StageError as e:
        print(f"ERROR: Workflow failed at stage '{e.stage}': {e.message}", file=sys.stderr)
        return e.exit_code

    print("\nStages:")
    symbol = {"passed": "+", "failed": "x", "skipped": "-"}
    for stage, info in result.stages.items():
        status = info.get("status", "?")
        notes = f" - {info['notes']}" if info.get("notes") else ""
        print(f"  [{symbol.get(status, '?')}] {stage}: {status}{notes}")
    return 0
