import pytest

from app.services.goal_lifecycle import can_transition, transition_error


@pytest.mark.parametrize(
    "current,new",
    [
        ("active", "completed"),
        ("active", "paused"),
        ("active", "cancelled"),
        ("paused", "active"),
        ("completed", "completed"),
    ],
)
def test_allowed(current, new):
    assert can_transition(current, new)
    assert transition_error(current, new) is None


@pytest.mark.parametrize(
    "current,new",
    [
        ("completed", "active"),
        ("cancelled", "active"),
        ("paused", "completed"),
    ],
)
def test_rejected(current, new):
    assert not can_transition(current, new)
    assert transition_error(current, new) == f"Invalid status transition from {current} to {new}"
