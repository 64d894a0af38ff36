"""
Stage execution framework for workflows.

A stage function takes no arguments and returns nothing; it raises
StageSkipped for placeholder stages and anything else on failure.
"""

import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional


class StageResult(Enum):
    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class StageError(Exception):
    """A stage failed; the workflow stops here."""
    stage: str
    message: str
    exit_code: int = 1
    details: Optional[dict] = None

    def __str__(self):
        return f"[{self.stage}] {self.message}"


@dataclass
class StageSkipped(Exception):
    """A stage has nothing to execute (manual or placeholder stage)."""
    stage: str
    reason: str


def record_stage(stages: dict, stage: str, status: str, duration: float, notes: str = "") -> None:
    stages[stage] = {
        "status": status,
        "duration_seconds": round(duration, 3),
        "notes": notes,
    }


def run_stage(stages: dict, stage_name: str, stage_fn: Callable[[], None]) -> StageResult:
    """
    Run a single stage with timing and error handling.

    Records the outcome into `stages`. Raises StageError on failure, with
    the original exception chained.
    """
    start = time.monotonic()

    try:
        stage_fn()
    except StageSkipped as e:
        record_stage(stages, stage_name, StageResult.SKIPPED.value, time.monotonic() - start, e.reason)
        return StageResult.SKIPPED
    except StageError as e:
        record_stage(stages, stage_name, StageResult.FAILED.value, time.monotonic() - start, e.message)
        raise
    except Exception as e:
        message = getattr(e, "message", None) or str(e) or type(e).__name__
        record_stage(stages, stage_name, StageResult.FAILED.value, time.monotonic() - start, message)
        exit_code = getattr(e, "exit_code", 1)
        raise StageError(stage_name, message, exit_code) from e

    record_stage(stages, stage_name, StageResult.PASSED.value, time.monotonic() - start)
    return StageResult.PASSED
