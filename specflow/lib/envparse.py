"""
Safe .env file parser.

Reads the KEY=value credential files that sit next to `.kiro/` without
shell execution. Values containing command substitution or chaining are
rejected rather than interpreted.
"""

import re
from pathlib import Path
from typing import Mapping

FORBIDDEN_PATTERNS = [
    r'`',           # backticks
    r'\$\(',        # command substitution
    r'\$\{',        # variable expansion
    r';',           # command chaining
    r'&&',          # AND chaining
    r'\|\|',        # OR chaining
    r'\|',          # pipe
]

KEY_PATTERN = re.compile(r'^[A-Z][A-Z0-9_]*$')
EXPORT_PREFIX = "export "


def parse_env_text(text: str, source: str = "<string>") -> dict[str, str]:
    """
    Parse .env content into a dict.

    Accepts blank lines, `#` comments, an optional `export ` prefix and
    single or double quoted values.

    Raises:
        ValueError: if syntax invalid or forbidden pattern found
    """
    result = {}

    for lineno, line in enumerate(text.splitlines(), 1):
        line = line.strip()

        if not line or line.startswith('#'):
            continue

        if line.startswith(EXPORT_PREFIX):
            line = line[len(EXPORT_PREFIX):].lstrip()

        if '=' not in line:
            raise ValueError(f"{source}:{lineno}: Invalid syntax (no '=')")

        key, _, value = line.partition('=')
        key = key.strip()
        value = value.strip()

        if not KEY_PATTERN.match(key):
            raise ValueError(f"{source}:{lineno}: Invalid key '{key}'")

        quoted = False
        if len(value) >= 2 and value[0] == value[-1] and value[0] in ('"', "'"):
            value = value[1:-1]
            quoted = True

        # Unquoted trailing comments: KEY=value  # note
        if not quoted and ' #' in value:
            value = value.split(' #', 1)[0].rstrip()

        for pattern in FORBIDDEN_PATTERNS:
            if re.search(pattern, value):
                raise ValueError(f"{source}:{lineno}: Forbidden pattern in value for {key}")

        result[key] = value

    return result


def load_env(filepath: str | Path) -> dict[str, str]:
    """
    Parse env file safely, return dict.

    Raises:
        FileNotFoundError: if file doesn't exist
        ValueError: if syntax invalid or forbidden pattern found
    """
    path = Path(filepath)
    if not path.exists():
        raise FileNotFoundError(f"Env file not found: {filepath}")
    return parse_env_text(path.read_text(encoding="utf-8"), source=str(path))


def overlay(file_values: Mapping[str, str], environ: Mapping[str, str]) -> dict[str, str]:
    """Merge .env values with the process environment; non-empty environment values win."""
    merged = dict(file_values)
    for key, value in environ.items():
        if value:
            merged[key] = value
    return merged
