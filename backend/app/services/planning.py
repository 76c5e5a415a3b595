import math
from datetime import datetime, timezone
from typing import List, Optional

from app.schemas.goal import Priority
from app.schemas.suggestion import ChatMessage, EstimateTask, SuggestionContext

HIGH_PRIORITY_WORDS = ("urgent", "deadline", "critical", "asap", "emergency")
LOW_PRIORITY_WORDS = ("someday", "eventually", "nice to have", "future")

SKILL_MULTIPLIER = {"beginner": 1.5, "intermediate": 1.0, "advanced": 0.8}
HOURS_PER_DAY = 8
DEFAULT_TASK_HOURS = 2

CHAT_SUGGESTIONS = [
    "Generate subtasks for this goal",
    "Optimize the goal title",
    "Get planning tips",
    "Estimate timeline",
]


def suggest_priority(description: str) -> dict:
    text = description.lower()
    if any(w in text for w in HIGH_PRIORITY_WORDS):
        priority, reasoning = Priority.HIGH, "Contains urgency indicators"
    elif any(w in text for w in LOW_PRIORITY_WORDS):
        priority, reasoning = Priority.LOW, "Contains low-urgency indicators"
    else:
        priority = Priority.MEDIUM
        reasoning = "No specific urgency indicators found, assigned medium priority"

    return {
        "suggestedPriority": priority.value,
        "reasoning": reasoning,
        "alternatives": [
            {"priority": "HIGH", "reason": "If this goal has urgent business impact"},
            {"priority": "MEDIUM", "reason": "For regular planned work"},
            {"priority": "LOW", "reason": "For future considerations or nice-to-have features"},
        ],
    }


def estimate_time(description: str, subtasks: List[EstimateTask], context: Optional[SuggestionContext] = None) -> dict:
    context = context or SuggestionContext()
    team_size = context.team_size or 1
    skill_level = context.skill_level or "intermediate"
    text = description.lower()

    base_hours: float = 8
    if any(w in text for w in ("complex", "advanced", "comprehensive")):
        base_hours *= 2
    elif any(w in text for w in ("simple", "quick", "basic")):
        base_hours *= 0.5

    if subtasks:
        base_hours = sum(t.estimated_hours if t.estimated_hours is not None else DEFAULT_TASK_HOURS
                         for t in subtasks)

    team_adjusted = max(base_hours / team_size, 2)
    final_hours = int(math.floor(team_adjusted * SKILL_MULTIPLIER[skill_level] + 0.5))

    if "complex" in text:
        complexity = "high"
    elif "simple" in text:
        complexity = "low"
    else:
        complexity = "medium"

    return {
        "estimatedHours": final_hours,
        "estimatedDays": math.ceil(final_hours / HOURS_PER_DAY),
        "breakdown": {
            "baseEstimate": base_hours,
            "teamAdjustment": team_adjusted,
            "skillAdjustment": final_hours,
        },
        "factors": {"teamSize": team_size, "skillLevel": skill_level, "complexity": complexity},
        "recommendations": [
            "Add 20-30% buffer time for unexpected challenges",
            "Consider breaking down large tasks into smaller chunks",
            "Plan regular check-ins to track progress",
        ],
    }


def chat_reply(messages: List[ChatMessage]) -> dict:
    last = messages[-1].content
    text = last.lower()

    if "help" in text or "stuck" in text:
        content = (
            "I can help you break down your goal into manageable tasks! Here are some ways I can assist:\n\n"
            "1. **Generate Subtasks**: I can analyze your goal and create a detailed action plan\n"
            "2. **Optimize Titles**: Make your goal titles more clear and motivating\n"
            "3. **Provide Guidance**: Offer tips and best practices for goal completion\n\n"
            "What specific aspect of your goal would you like help with?"
        )
    elif "subtask" in text or "task" in text or "break down" in text:
        content = (
            "Great! I can help you break down your goal into actionable subtasks. "
            "To generate the best recommendations, please provide:\n\n"
            "- Your main goal description\n- Timeline or deadline\n"
            "- Available resources/team size\n- Your experience level with similar goals\n\n"
            'Use the "Generate Subtasks" feature for a comprehensive breakdown!'
        )
    elif "title" in text or "name" in text:
        content = (
            "I can help optimize your goal title to make it more clear, actionable, and motivating. "
            "A good goal title should be specific, action-oriented and easy to remember.\n\n"
            'Try the "Optimize Title" feature to get suggestions!'
        )
    else:
        content = (
            f'I understand you\'re working on: "{last}"\n\n'
            "I'm here to help you plan and achieve your goals! I can:\n"
            "- Break down complex goals into manageable subtasks\n"
            "- Suggest optimized titles for better clarity\n"
            "- Provide planning guidance and tips\n\n"
            "What would you like help with first?"
        )

    return {
        "response": {
            "role": "assistant",
            "content": content,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
        "suggestions": list(CHAT_SUGGESTIONS),
    }
