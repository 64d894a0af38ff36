"""
specflow phase - Run one phase: publish, then validate.
"""

from specflow.lib.config import Settings
from specflow.workflow.phase_runner import PhaseRunner


def cmd_phase(args, settings: Settings) -> int:
    result = PhaseRunner(settings).run_phase(args.feature, args.phase)
    if result.success:
        print("\nPhase complete")
        return 0

    print("\nPhase not complete (see the errors above)")
    return 1
