"""Workflow run state machine using the transitions library.

A run starts pending, runs stages, may pause at approval gates, and ends
in exactly one terminal state:

    pending -> running <-> awaiting_approval
    running | awaiting_approval -> failed
    running -> completed

Terminal states have no outgoing transitions; a failed run cannot resume.
"""

import logging
from typing import Callable

from transitions import Machine

logger = logging.getLogger(__name__)

PENDING = "pending"
RUNNING = "running"
AWAITING_APPROVAL = "awaiting_approval"
COMPLETED = "completed"
FAILED = "failed"

STATES = [PENDING, RUNNING, AWAITING_APPROVAL, COMPLETED, FAILED]
TERMINAL_STATES = {COMPLETED, FAILED}

# Transitions defined as (trigger, source, dest)
# Each trigger becomes a method on the FSM
TRANSITIONS = [
    {"trigger": "start", "source": PENDING, "dest": RUNNING},
    {"trigger": "request_approval", "source": RUNNING, "dest": AWAITING_APPROVAL},
    {"trigger": "approval_recorded", "source": AWAITING_APPROVAL, "dest": RUNNING},
    {"trigger": "finish", "source": RUNNING, "dest": COMPLETED},
    {"trigger": "fail", "source": RUNNING, "dest": FAILED},
    {"trigger": "fail", "source": AWAITING_APPROVAL, "dest": FAILED},
]


class WorkflowFSM:
    """Run status for one workflow execution.

    Wraps the transitions library with workflow-specific logic:
    - Tracks the stage being executed
    - Logs all transitions
    """

    def __init__(self, feature: str, on_transition: Callable[[str, str, str], None] | None = None):
        """
        Args:
            feature: Feature the workflow runs for (used in log lines)
            on_transition: Optional callback(from_state, to_state, trigger) called after transitions
        """
        self.feature = feature
        self.current_stage: str | None = None
        self.on_transition = on_transition

        self.machine = Machine(
            model=self,
            states=STATES,
            transitions=TRANSITIONS,
            initial=PENDING,
            auto_transitions=False,  # Only explicit transitions
            send_event=True,  # Pass EventData to callbacks
            after_state_change="on_state_change",
        )

    def on_state_change(self, event) -> None:
        from_state = event.transition.source
        to_state = event.transition.dest
        trigger = event.event.name

        logger.info(f"[FSM] {self.feature}: {from_state} -> {to_state} ({trigger})")

        if self.on_transition:
            self.on_transition(from_state, to_state, trigger)

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    def can(self, trigger: str) -> bool:
        """Check if a trigger can be executed in current state."""
        return trigger in self.machine.get_triggers(self.state)
