"""Rule-based subtask suggestions used whenever the LLM provider can't answer.

Pure and total: the same description and context always give the same
result, and nothing in here raises for any string input.
"""
import re
from typing import List, Optional

from app.schemas.goal import Priority
from app.schemas.suggestion import SuggestedTask, SuggestionContext, SuggestionResult, TitleSuggestion

MAX_SUGGESTIONS = 6
GENERATED_BY = "fallback-algorithm"

SCOPE_TITLE = "Define project scope and requirements"
REVIEW_TITLE = "Final review and documentation"

FALLBACK_TIPS = [
    "Break down large tasks into smaller, manageable chunks",
    "Set clear deadlines for each subtask",
    "Review progress regularly and adjust as needed",
]

# (keywords, tasks) in the order the tasks are appended
KEYWORD_RULES = [
    (
        ("build", "develop", "create"),
        [
            dict(title="Set up development environment",
                 description="Prepare all necessary tools and configurations",
                 estimated_hours=2, priority=Priority.HIGH,
                 skills=["technical setup"], category="execution"),
            dict(title="Implement core functionality",
                 description="Build the main features and components",
                 estimated_hours=12, priority=Priority.HIGH,
                 skills=["development", "coding"], category="execution"),
        ],
    ),
    (
        ("test", "qa", "quality"),
        [
            dict(title="Conduct thorough testing",
                 description="Test all functionality and edge cases",
                 estimated_hours=4, priority=Priority.HIGH,
                 skills=["testing", "qa"], category="review"),
        ],
    ),
    (
        ("deploy", "launch", "release"),
        [
            dict(title="Prepare for deployment",
                 description="Set up production environment and deployment pipeline",
                 estimated_hours=3, priority=Priority.MEDIUM,
                 skills=["devops", "deployment"], category="execution"),
        ],
    ),
]

COORDINATION_TASK = dict(
    title="Coordinate team activities",
    description="Regular check-ins and progress updates with team members",
    estimated_hours=2, priority=Priority.MEDIUM,
    skills=["communication", "project management"], category="communication",
)


def generate_fallback_subtasks(description: str, context: Optional[SuggestionContext] = None) -> SuggestionResult:
    context = context or SuggestionContext()
    words = (description or "").lower()

    planned: List[dict] = [
        dict(title=SCOPE_TITLE,
             description=f"Clearly outline what needs to be accomplished for: {description}",
             estimated_hours=3, priority=Priority.HIGH,
             skills=["planning", "analysis"], category="planning"),
    ]
    for keywords, tasks in KEYWORD_RULES:
        if any(k in words for k in keywords):
            planned.extend(tasks)
    if (context.team_size or 1) > 1:
        planned.append(COORDINATION_TASK)
    planned.append(
        dict(title=REVIEW_TITLE,
             description="Review completed work and create necessary documentation",
             estimated_hours=2, priority=Priority.MEDIUM,
             skills=["documentation", "review"], category="review"),
    )

    planned = planned[:MAX_SUGGESTIONS]
    subtasks = []
    for i, item in enumerate(planned):
        dependencies = [planned[i - 1]["title"]] if i > 0 else []
        subtasks.append(SuggestedTask(**{**item, "skills": list(item["skills"]), "dependencies": dependencies}))

    return SuggestionResult(
        subtasks=subtasks,
        reasoning="Tasks generated using keyword analysis and best practices for goal completion",
        estimated_total_hours=sum(t.estimated_hours for t in subtasks),
        critical_path=[t.title for t in subtasks[:3]],
        tips=list(FALLBACK_TIPS),
        generated_by=GENERATED_BY,
    )


TITLE_VERB_RULES = [
    (re.compile(r"^(create|build|develop|make|implement)\b", re.IGNORECASE), "Build"),
    (re.compile(r"^(plan|design|strategy)\b", re.IGNORECASE), "Plan"),
    (re.compile(r"^(test|qa|verify)\b", re.IGNORECASE), "Test"),
]


def optimize_title_fallback(description: str, max_length: int = 50) -> TitleSuggestion:
    title = (description or "").strip()[:max_length - 3]
    for pattern, verb in TITLE_VERB_RULES:
        title = pattern.sub(verb, title)
    title = title.strip()
    if len(title) > max_length:
        title = title[:max_length - 3] + "..."
    title = title[:1].upper() + title[1:]

    return TitleSuggestion(
        optimized_title=title,
        alternatives=[
            f"Complete: {title[:max_length - 10]}",
            f"Achieve: {title[:max_length - 9]}",
            f"Deliver: {title[:max_length - 9]}",
        ],
        reasoning="Title optimized using basic text processing rules",
        generated_by=GENERATED_BY,
    )
