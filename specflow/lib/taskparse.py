"""
tasks.md parser for specflow.

Extracts stories and their phase labels from a task breakdown.

Grammar (line oriented):

    ## Phase <n>: <name>（<label>）      sets the current phase label
    ## Phase <n>: <name> (<label>)       ASCII parentheses also accepted
    ### Story <n.m>: <title>             opens a story block

A story block runs until the next story or phase heading. Inside it:

    **Priority**: High                   also **優先度**
    **Estimate**: 2 days                 also **見積もり**
    **Assignee**: alice                  also **担当**
    **Due**: 2025-01-31                  also **期限** (YYYY-MM-DD only)
    **Dependencies**: Story 1.1          also **依存関係**
    **Description**:                     also **説明**; text on following lines
    **Acceptance Criteria**:             also **完了条件**; "- [ ]" items follow
    **Subtasks**:                        also **サブタスク**; "- [ ]" items follow
"""

import re
from dataclasses import dataclass, field

PHASE_RE = re.compile(r'^##\s+Phase\s+[\d.]+:\s*(.+?)\s*[（(]([^）)]+)[）)]\s*$')
STORY_RE = re.compile(r'^###\s+Story\s+[\d.]+:\s*(.+?)\s*$')
FIELD_RE = re.compile(r'^\*\*(.+?)\*\*\s*[:：]\s*(.*)$')
CHECKBOX_RE = re.compile(r'^\s*-\s*\[.\]\s*(.*)$')
DATE_RE = re.compile(r'\d{4}-\d{2}-\d{2}')

DEFAULT_PHASE_LABEL = "implementation"

# Field aliases -> canonical field name
FIELD_ALIASES = {
    "priority": "priority",
    "優先度": "priority",
    "estimate": "estimate",
    "見積もり": "estimate",
    "assignee": "assignee",
    "担当": "assignee",
    "due": "due_date",
    "due date": "due_date",
    "期限": "due_date",
    "dependencies": "dependencies",
    "依存関係": "dependencies",
    "description": "description",
    "説明": "description",
    "acceptance criteria": "acceptance_criteria",
    "完了条件": "acceptance_criteria",
    "subtasks": "subtasks",
    "サブタスク": "subtasks",
}

LIST_FIELDS = {"acceptance_criteria", "subtasks"}

# Checked in order; release-prep must win over release
PHASE_LABEL_RULES = [
    ("requirements", ("要件定義", "requirements")),
    ("design", ("設計", "design")),
    ("implementation", ("実装", "implementation")),
    ("testing", ("試験", "テスト", "testing")),
    ("release-prep", ("リリース準備", "release-prep", "release preparation")),
    ("release", ("リリース", "release")),
]


@dataclass
class Story:
    title: str
    phase_label: str = DEFAULT_PHASE_LABEL
    description: str | None = None
    acceptance_criteria: list[str] = field(default_factory=list)
    subtasks: list[str] = field(default_factory=list)
    dependencies: str | None = None
    priority: str | None = None
    estimate: str | None = None
    assignee: str | None = None
    due_date: str | None = None
    line_number: int = 0

    @property
    def summary(self) -> str:
        """Summary used for the tracker issue and for duplicate detection."""
        return f"Story: {self.title}"


def phase_label_for(name: str) -> str | None:
    """Map a phase heading label to a tracker label, or None if unrecognized."""
    lowered = name.lower()
    for label, needles in PHASE_LABEL_RULES:
        if any(needle in name or needle in lowered for needle in needles):
            return label
    return None


def parse_tasks(content: str) -> list[Story]:
    """Parse tasks.md content and return stories in document order."""
    stories: list[Story] = []
    current: Story | None = None
    active_field: str | None = None
    description_lines: list[str] = []
    phase_label = DEFAULT_PHASE_LABEL

    def close_story():
        if current is not None:
            if description_lines:
                current.description = "\n".join(description_lines).strip() or current.description
            stories.append(current)

    for lineno, line in enumerate(content.splitlines(), 1):
        phase_match = PHASE_RE.match(line)
        if phase_match:
            close_story()
            current, active_field, description_lines = None, None, []
            phase_label = phase_label_for(phase_match.group(2)) or phase_label
            continue

        story_match = STORY_RE.match(line)
        if story_match:
            close_story()
            current = Story(title=story_match.group(1), phase_label=phase_label, line_number=lineno)
            active_field, description_lines = None, []
            continue

        if current is None:
            continue

        field_match = FIELD_RE.match(line.strip())
        if field_match:
            name = FIELD_ALIASES.get(field_match.group(1).strip().lower())
            value = field_match.group(2).strip()
            active_field = name
            if name is None:
                continue
            if name == "description":
                description_lines = [value] if value else []
            elif name == "due_date":
                date_match = DATE_RE.search(value)
                current.due_date = date_match.group(0) if date_match else None
            elif name not in LIST_FIELDS and value:
                setattr(current, name, value)
            continue

        if active_field in LIST_FIELDS:
            item = CHECKBOX_RE.match(line)
            if item:
                text = item.group(1).strip()
                if text:
                    getattr(current, active_field).append(text)
                continue
            if line.strip():
                active_field = None
        elif active_field == "description":
            if line.strip() or description_lines:
                description_lines.append(line.strip())

    close_story()
    return stories
