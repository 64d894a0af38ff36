"""
specflow estimate - Summarize the estimate table in design.md.
"""

import sys

from specflow.lib.config import Settings
from specflow.lib.estimate import format_estimate_summary, parse_estimate_file


def cmd_estimate(args, settings: Settings) -> int:
    design_path = settings.document_path(args.feature, "design")
    try:
        estimate = parse_estimate_file(design_path, args.feature)
    except FileNotFoundError:
        print(f"ERROR: design.md not found: {design_path}", file=sys.stderr)
        return 1

    if not estimate.tasks:
        print(f"WARNING: no estimate table found in {design_path}")
    print(format_estimate_summary(estimate))
    return 0
