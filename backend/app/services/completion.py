"""Goal status rollup from subtask completion.

A goal with at least one subtask is COMPLETED exactly when all of its
subtasks are. PAUSED and CANCELLED are set by the user and are never
overridden; a goal without subtasks is never touched.
"""
import logging
from typing import Iterable, Optional

from app.core.errors import ConsistencyViolation, ValidationError
from app.schemas.goal import GoalStatus

logger = logging.getLogger(__name__)

EXPLICIT_STATES = (GoalStatus.PAUSED, GoalStatus.CANCELLED)


def derive_goal_status(current: GoalStatus, completed_flags: Iterable[bool]) -> GoalStatus:
    flags = list(completed_flags)
    if current in EXPLICIT_STATES or not flags:
        return current
    if all(flags):
        return GoalStatus.COMPLETED
    if current == GoalStatus.COMPLETED:
        return GoalStatus.ACTIVE
    return current


def check_explicit_status(requested: GoalStatus, completed_flags: Iterable[bool]) -> None:
    """Reject a user-chosen ACTIVE/COMPLETED that contradicts the subtasks."""
    flags = list(completed_flags)
    if requested in EXPLICIT_STATES or not flags:
        return
    if requested == GoalStatus.COMPLETED and not all(flags):
        raise ValidationError("Goal cannot be completed while it has incomplete subtasks")
    if requested == GoalStatus.ACTIVE and all(flags):
        raise ValidationError("Goal cannot be active when all of its subtasks are completed")


def resolve_status(goal_id: str, current: GoalStatus, completed_flags: Iterable[bool]) -> Optional[GoalStatus]:
    """Return the new status if the rule changes it, else None. Logs the transition."""
    new_status = derive_goal_status(current, completed_flags)
    if new_status == current:
        return None
    if new_status == GoalStatus.COMPLETED:
        logger.info("Goal auto-completed: %s (all subtasks done)", goal_id)
    else:
        logger.info("Goal reactivated: %s (not all subtasks done)", goal_id)
    return new_status


def assert_consistent(goal_id: str, status: GoalStatus, completed_flags: Iterable[bool]) -> None:
    flags = list(completed_flags)
    if derive_goal_status(status, flags) != status:
        logger.error("Goal %s is %s but its subtasks say otherwise: %s", goal_id, status.value, flags)
        raise ConsistencyViolation(f"Goal {goal_id} status is inconsistent with its subtasks")
