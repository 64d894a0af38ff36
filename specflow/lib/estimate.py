"""
Effort estimate extraction from design.md.

Reads the estimate table (`| task | days | assignee |`) and derives totals,
story points and a three-point range.
"""

import math
import re
from dataclasses import dataclass, field
from pathlib import Path

ROW_RE = re.compile(r'^\|\s*([^|]+?)\s*\|\s*(\d+(?:\.\d+)?)\s*\|\s*([^|]+?)\s*\|', re.MULTILINE)
HEADER_NAMES = {"タスク", "task", "**合計**", "**total**", "合計", "total"}

POINTS_PER_DAY = 2
PESSIMISTIC_FACTOR = 1.5


@dataclass
class TaskEstimate:
    name: str
    days: float
    assignee: str


@dataclass
class RiskEstimate:
    risk: str
    impact: float
    mitigation: str


# Standing risk allowances added to the standard estimate
DEFAULT_RISKS = [
    RiskEstimate("Technical uncertainty", 5, "Prototype validation"),
    RiskEstimate("Requirement changes", 3, "Schedule buffer"),
]


@dataclass
class EstimateData:
    feature: str
    tasks: list[TaskEstimate] = field(default_factory=list)
    risks: list[RiskEstimate] = field(default_factory=lambda: list(DEFAULT_RISKS))

    @property
    def total_days(self) -> float:
        return sum(t.days for t in self.tasks)

    @property
    def total_points(self) -> int:
        return math.ceil(self.total_days * POINTS_PER_DAY)

    @property
    def optimistic(self) -> float:
        return self.total_days

    @property
    def standard(self) -> float:
        return self.total_days + sum(r.impact for r in self.risks)

    @property
    def pessimistic(self) -> int:
        return math.ceil(self.total_days * PESSIMISTIC_FACTOR)


def parse_estimate(content: str, feature: str) -> EstimateData:
    """Collect estimate rows from markdown tables whose second column is numeric."""
    estimate = EstimateData(feature=feature)
    for match in ROW_RE.finditer(content):
        name, days, assignee = match.group(1), match.group(2), match.group(3)
        if name.strip().lower() in HEADER_NAMES:
            continue
        estimate.tasks.append(TaskEstimate(name=name.strip(), days=float(days), assignee=assignee.strip()))
    return estimate


def parse_estimate_file(design_path: Path, feature: str) -> EstimateData:
    if not design_path.exists():
        raise FileNotFoundError(f"design.md not found: {design_path}")
    return parse_estimate(design_path.read_text(encoding="utf-8"), feature)


def _num(value: float) -> str:
    return f"{value:g}"


def format_estimate_summary(estimate: EstimateData) -> str:
    """Render the estimate as a Markdown report."""
    lines = [
        f"# Estimate summary: {estimate.feature}",
        "",
        "## Tasks",
        "",
        "| Task | Effort (person-days) | Assignee |",
        "|------|----------------------|----------|",
    ]
    lines += [f"| {t.name} | {_num(t.days)} | {t.assignee} |" for t in estimate.tasks]
    lines += [
        f"| **Total** | **{_num(estimate.total_days)}** | - |",
        "",
        "## Risks",
        "",
        "| Risk | Impact (person-days) | Mitigation |",
        "|------|----------------------|------------|",
    ]
    lines += [f"| {r.risk} | {_num(r.impact)} | {r.mitigation} |" for r in estimate.risks]
    lines += [
        "",
        "## Final estimate",
        "",
        f"- **Optimistic**: {_num(estimate.optimistic)} person-days",
        f"- **Standard**: {_num(estimate.standard)} person-days (including risks)",
        f"- **Pessimistic**: {_num(estimate.pessimistic)} person-days",
        f"- **Story points**: {estimate.total_points}",
        "",
        f"**Recommended**: schedule for {_num(estimate.standard)} person-days",
    ]
    return "\n".join(lines)
