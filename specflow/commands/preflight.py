"""
specflow preflight - Verify credentials, project.json and remote containers.
"""

from specflow.lib.config import Settings
from specflow.workflow.preflight import PreFlightChecker, format_preflight_result


def cmd_preflight(args, settings: Settings) -> int:
    print(f"Pre-flight check ({args.scope})")
    print("=" * 60)
    result = PreFlightChecker(settings).check(args.scope)
    print()
    print(format_preflight_result(result))
    return 0 if result.valid else 1
