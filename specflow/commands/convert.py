"""
specflow convert - Print a Markdown file as Confluence storage format.
"""

import sys
from pathlib import Path

from specflow.lib.storage_format import convert_markdown


def cmd_convert(args) -> int:
    path = Path(args.markdown_file)
    if not path.exists():
        print(f"ERROR: File not found: {path}", file=sys.stderr)
        return 1

    print(convert_markdown(path.read_text(encoding="utf-8")))
    return 0
