from typing import Any, Dict, List, Literal, Optional

from pydantic import Field

from app.schemas.goal import CamelModel, Priority


class ChatMessage(CamelModel):
    role: str
    content: str


class SuggestionContext(CamelModel):
    """Advisory planning context; every field may be absent."""

    priority: Optional[Priority] = None
    due_date: Optional[str] = None
    project: Optional[str] = None
    team_size: Optional[int] = Field(default=None, ge=1, le=20)
    skill_level: Optional[Literal["beginner", "intermediate", "advanced"]] = None
    budget: Optional[Literal["low", "medium", "high", "unlimited"]] = None
    complexity: Optional[Literal["simple", "moderate", "complex"]] = None


class SuggestedTask(CamelModel):
    title: str
    description: str = ""
    estimated_hours: Optional[float] = None
    priority: Priority = Priority.MEDIUM
    dependencies: List[str] = Field(default_factory=list)
    skills: List[str] = Field(default_factory=list)
    category: str = "execution"


class SuggestionResult(CamelModel):
    success: bool = True
    subtasks: List[SuggestedTask]
    reasoning: str = ""
    estimated_total_hours: Optional[float] = None
    critical_path: List[str] = Field(default_factory=list)
    tips: List[str] = Field(default_factory=list)
    generated_by: str


class GenerateSubtasksRequest(CamelModel):
    goal_description: str = Field(min_length=1)
    context: SuggestionContext = Field(default_factory=SuggestionContext)


class TitleContext(CamelModel):
    max_length: int = Field(default=50, ge=10, le=100)
    tone: Literal["professional", "casual", "motivational", "technical"] = "professional"


class OptimizeTitleRequest(CamelModel):
    description: str = Field(min_length=1)
    context: TitleContext = Field(default_factory=TitleContext)


class TitleSuggestion(CamelModel):
    success: bool = True
    optimized_title: str
    alternatives: List[str] = Field(default_factory=list)
    reasoning: str = ""
    generated_by: str


class SuggestPriorityRequest(CamelModel):
    goal_description: str = Field(min_length=1)


class EstimateTask(CamelModel):
    title: Optional[str] = None
    estimated_hours: Optional[float] = Field(default=None, ge=0)


class EstimateTimeRequest(CamelModel):
    goal_description: str = Field(min_length=1)
    subtasks: List[EstimateTask] = Field(default_factory=list)
    context: SuggestionContext = Field(default_factory=SuggestionContext)


class ChatRequest(CamelModel):
    messages: List[ChatMessage] = Field(min_length=1)
    goal_context: Optional[Dict[str, Any]] = None
