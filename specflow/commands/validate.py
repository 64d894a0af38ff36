"""
specflow validate - Check a phase's exit criteria.
"""

from specflow.lib.config import Settings
from specflow.workflow.validator import PhaseValidator, format_validation_result


def cmd_validate(args, settings: Settings) -> int:
    result = PhaseValidator(settings).validate(args.feature, args.phase)
    print(format_validation_result(result))
    return 0 if result.valid else 1
