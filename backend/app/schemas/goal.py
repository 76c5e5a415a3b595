from datetime import date, datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Priority(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class GoalStatus(str, Enum):
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    PAUSED = "PAUSED"
    CANCELLED = "CANCELLED"


def parse_due_date(value):
    """Accept ``YYYY-MM-DD`` or a full ISO-8601 datetime; empty means no date."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            if "T" in text or " " in text:
                return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
            return date.fromisoformat(text)
        except ValueError:
            raise ValueError("Invalid date format")
    raise ValueError("Invalid date format")


def _required_title(value: Optional[str], what: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{what} title is required")
    return value.strip()


# --- Input ---

class SubtaskCreate(CamelModel):
    title: str
    description: Optional[str] = None
    completed: bool = False
    estimated_hours: Optional[float] = Field(default=None, ge=0)
    category: Optional[str] = None
    skills: List[str] = Field(default_factory=list)
    dependencies: List[str] = Field(default_factory=list)

    @field_validator("title", mode="before")
    @classmethod
    def _title(cls, v):
        return _required_title(v, "Subtask")


class SubtaskUpdate(CamelModel):
    """Partial update: only fields present in ``model_fields_set`` are applied."""

    title: Optional[str] = None
    description: Optional[str] = None
    completed: Optional[bool] = None
    estimated_hours: Optional[float] = Field(default=None, ge=0)
    category: Optional[str] = None

    @field_validator("title", mode="before")
    @classmethod
    def _title(cls, v):
        return _required_title(v, "Subtask")

    @field_validator("completed")
    @classmethod
    def _completed(cls, v):
        if v is None:
            raise ValueError("completed must be true or false")
        return v


class GoalCreate(CamelModel):
    title: str
    description: Optional[str] = None
    priority: Priority = Priority.MEDIUM
    status: GoalStatus = GoalStatus.ACTIVE
    due_date: Optional[date] = None
    subtasks: List[SubtaskCreate] = Field(default_factory=list)

    @field_validator("title", mode="before")
    @classmethod
    def _title(cls, v):
        return _required_title(v, "Goal")

    @field_validator("due_date", mode="before")
    @classmethod
    def _due_date(cls, v):
        return parse_due_date(v)


class GoalUpdate(CamelModel):
    """Partial update: only fields present in ``model_fields_set`` are applied.

    Sending ``null`` clears ``description`` or ``dueDate``; it is rejected for
    title, priority and status.
    """

    title: Optional[str] = None
    description: Optional[str] = None
    priority: Optional[Priority] = None
    status: Optional[GoalStatus] = None
    due_date: Optional[date] = None

    @field_validator("title", mode="before")
    @classmethod
    def _title(cls, v):
        return _required_title(v, "Goal")

    @field_validator("priority", "status")
    @classmethod
    def _not_null(cls, v, info):
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return v

    @field_validator("due_date", mode="before")
    @classmethod
    def _due_date(cls, v):
        return parse_due_date(v)


class GoalFilters(BaseModel):
    status: Optional[GoalStatus] = None
    priority: Optional[Priority] = None
    due_date: Optional[date] = None
    due_from: Optional[date] = None
    due_to: Optional[date] = None

    def matches(self, goal: "Goal") -> bool:
        if self.status is not None and goal.status != self.status:
            return False
        if self.priority is not None and goal.priority != self.priority:
            return False
        if self.due_date is None and self.due_from is None and self.due_to is None:
            return True
        if goal.due_date is None:
            return False
        if self.due_date is not None and goal.due_date != self.due_date:
            return False
        if self.due_from is not None and goal.due_date < self.due_from:
            return False
        if self.due_to is not None and goal.due_date > self.due_to:
            return False
        return True


# --- Records ---

class Subtask(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: str
    goal_id: str
    title: str
    description: Optional[str] = None
    completed: bool = False
    estimated_hours: Optional[float] = None
    category: Optional[str] = None
    skills: List[str] = Field(default_factory=list)
    dependencies: List[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class Goal(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: str
    owner_id: str
    title: str
    description: Optional[str] = None
    priority: Priority
    status: GoalStatus
    due_date: Optional[date] = None
    subtasks: List[Subtask] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class DashboardStats(CamelModel):
    total_goals: int
    active_goals: int
    completed_goals: int
    high_priority_goals: int
    total_subtasks: int
    completed_subtasks: int
    goal_completion_rate: int
    subtask_completion_rate: int
