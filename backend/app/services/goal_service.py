from datetime import date
from typing import Any, Dict, List, Mapping, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError as PydanticValidationError

from app.core.errors import ValidationError
from app.schemas.goal import (
    DashboardStats, Goal, GoalCreate, GoalFilters, GoalStatus, GoalUpdate, Priority, Subtask, SubtaskCreate,
    SubtaskUpdate, parse_due_date,
)
from app.services.store import GoalStore

M = TypeVar("M", bound=BaseModel)


def first_error_message(exc: PydanticValidationError) -> str:
    error = exc.errors()[0]
    field = ".".join(str(p) for p in error.get("loc", ()))
    msg = error.get("msg", "Invalid value").removeprefix("Value error, ")
    return f"{field}: {msg}" if field else msg


def parse_input(model: Type[M], data: Union[M, Mapping[str, Any]]) -> M:
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(first_error_message(e))


def percent(part: int, whole: int) -> int:
    if whole == 0:
        return 0
    return int(part * 100 / whole + 0.5)


class GoalService:
    """Goal and subtask commands for one store.

    Input may be a validated request model or a plain mapping; either way it
    is fully validated before the store is touched.
    """

    def __init__(self, store: GoalStore):
        self.store = store

    async def list_goals(self, owner_id: str, filters: Union[GoalFilters, Mapping[str, Any], None] = None) -> List[Goal]:
        return await self.store.list_goals(owner_id, parse_input(GoalFilters, filters or {}))

    async def get_goal(self, owner_id: str, goal_id: str) -> Goal:
        return await self.store.get_goal(owner_id, goal_id)

    async def goals_by_date(self, owner_id: str, day: Union[date, str]) -> List[Goal]:
        return await self.list_goals(owner_id, GoalFilters(due_date=self._parse_day(day)))

    async def goals_by_date_range(self, owner_id: str, start: Union[date, str],
                                  end: Union[date, str]) -> Dict[str, List[Goal]]:
        start_day, end_day = self._parse_day(start), self._parse_day(end)
        if start_day > end_day:
            raise ValidationError("startDate must not be after endDate")

        goals = await self.list_goals(owner_id, GoalFilters(due_from=start_day, due_to=end_day))
        grouped: Dict[str, List[Goal]] = {}
        for goal in sorted(goals, key=lambda g: g.due_date):
            grouped.setdefault(goal.due_date.isoformat(), []).append(goal)
        return grouped

    async def create_goal(self, owner_id: str, data: Union[GoalCreate, Mapping[str, Any]]) -> Goal:
        return await self.store.create_goal(owner_id, parse_input(GoalCreate, data))

    async def update_goal(self, owner_id: str, goal_id: str, data: Union[GoalUpdate, Mapping[str, Any]]) -> Goal:
        return await self.store.update_goal(owner_id, goal_id, parse_input(GoalUpdate, data))

    async def delete_goal(self, owner_id: str, goal_id: str) -> None:
        await self.store.delete_goal(owner_id, goal_id)

    async def add_subtask(self, owner_id: str, goal_id: str,
                          data: Union[SubtaskCreate, Mapping[str, Any]]) -> Subtask:
        subtask = parse_input(SubtaskCreate, data)
        # Added subtasks always start open
        if subtask.completed:
            subtask = subtask.model_copy(update={"completed": False})
        return await self.store.add_subtask(owner_id, goal_id, subtask)

    async def update_subtask(self, owner_id: str, goal_id: str, subtask_id: str,
                             data: Union[SubtaskUpdate, Mapping[str, Any]]) -> Subtask:
        return await self.store.update_subtask(owner_id, goal_id, subtask_id, parse_input(SubtaskUpdate, data))

    async def toggle_subtask(self, owner_id: str, subtask_id: str) -> Subtask:
        return await self.store.toggle_subtask(owner_id, subtask_id)

    async def delete_subtask(self, owner_id: str, goal_id: str, subtask_id: str) -> None:
        await self.store.delete_subtask(owner_id, goal_id, subtask_id)

    async def dashboard_stats(self, owner_id: str) -> DashboardStats:
        goals = await self.store.list_goals(owner_id)
        total_goals = len(goals)
        completed_goals = sum(1 for g in goals if g.status == GoalStatus.COMPLETED)
        total_subtasks = sum(len(g.subtasks) for g in goals)
        completed_subtasks = sum(1 for g in goals for s in g.subtasks if s.completed)

        return DashboardStats(
            total_goals=total_goals,
            active_goals=sum(1 for g in goals if g.status == GoalStatus.ACTIVE),
            completed_goals=completed_goals,
            high_priority_goals=sum(1 for g in goals if g.priority == Priority.HIGH),
            total_subtasks=total_subtasks,
            completed_subtasks=completed_subtasks,
            goal_completion_rate=percent(completed_goals, total_goals),
            subtask_completion_rate=percent(completed_subtasks, total_subtasks),
        )

    @staticmethod
    def _parse_day(value: Union[date, str, None]) -> date:
        try:
            day: Optional[date] = parse_due_date(value)
        except ValueError:
            raise ValidationError(f"Invalid date: {value}")
        if day is None:
            raise ValidationError("Date parameter is required")
        return day
