"""Goal status transitions."""

from typing import Optional

from app.utils.constants import GOAL_STATUS_TRANSITIONS


def can_transition(current: str, new: str) -> bool:
    """Whether a goal may move from ``current`` to ``new``."""
    if current == new:
        return True
    return new in GOAL_STATUS_TRANSITIONS.get(current, [])


def transition_error(current: str, new: str) -> Optional[str]:
    if can_transition(current, new):
        return None
    return f"Invalid status transition from {current} to {new}"
