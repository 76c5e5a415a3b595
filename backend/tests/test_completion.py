import pytest

from app.core.errors import ConsistencyViolation, ValidationError
from app.schemas.goal import GoalStatus
from app.services.completion import assert_consistent, check_explicit_status, derive_goal_status, resolve_status


@pytest.mark.parametrize("current, flags, expected", [
    (GoalStatus.ACTIVE, [], GoalStatus.ACTIVE),
    (GoalStatus.COMPLETED, [], GoalStatus.COMPLETED),
    (GoalStatus.ACTIVE, [True, True], GoalStatus.COMPLETED),
    (GoalStatus.ACTIVE, [True, False], GoalStatus.ACTIVE),
    (GoalStatus.COMPLETED, [True, False], GoalStatus.ACTIVE),
    (GoalStatus.PAUSED, [True, True], GoalStatus.PAUSED),
    (GoalStatus.CANCELLED, [False], GoalStatus.CANCELLED),
])
def test_derive_goal_status(current, flags, expected):
    assert derive_goal_status(current, flags) == expected


def test_check_explicit_status_rejects_contradictions():
    with pytest.raises(ValidationError):
        check_explicit_status(GoalStatus.COMPLETED, [True, False])
    with pytest.raises(ValidationError):
        check_explicit_status(GoalStatus.ACTIVE, [True])


def test_check_explicit_status_accepts_overrides_and_empty_goals():
    check_explicit_status(GoalStatus.PAUSED, [True, True])
    check_explicit_status(GoalStatus.CANCELLED, [False])
    check_explicit_status(GoalStatus.COMPLETED, [])
    check_explicit_status(GoalStatus.COMPLETED, [True, True])


def test_resolve_status_reports_only_changes():
    assert resolve_status("g1", GoalStatus.ACTIVE, [False]) is None
    assert resolve_status("g1", GoalStatus.ACTIVE, [True]) == GoalStatus.COMPLETED
    assert resolve_status("g1", GoalStatus.COMPLETED, [True, False]) == GoalStatus.ACTIVE


def test_assert_consistent():
    assert_consistent("g1", GoalStatus.COMPLETED, [True])
    assert_consistent("g1", GoalStatus.PAUSED, [True])
    with pytest.raises(ConsistencyViolation):
        assert_consistent("g1", GoalStatus.ACTIVE, [True, True])
