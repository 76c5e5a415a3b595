import httpx
import json
import asyncio
import logging
import math
from typing import List, Optional

from pydantic import ValidationError as PydanticValidationError

from app.core.config import Settings
from app.core.errors import ProviderFailure
from app.schemas.goal import Priority
from app.schemas.suggestion import SuggestedTask, SuggestionContext, SuggestionResult, TitleSuggestion
from app.services.suggestion_fallback import generate_fallback_subtasks, optimize_title_fallback

logger = logging.getLogger(__name__)

GROQ_CHAT_URL = "https://api.groq.com/openai/v1/chat/completions"

# --- PROMPTS ---
SUBTASK_SYSTEM_PROMPT = """
You are a project planning assistant. Break goals down into specific,
actionable subtasks and answer with raw JSON only.
"""

SUBTASK_PROMPT = """
Break down the following goal into specific, actionable subtasks.

**Goal:** {description}

**Context:**
- Priority: {priority}
- Due Date: {due_date}
- Project: {project}
- Team Size: {team_size} person(s)
- Skill Level: {skill_level}
- Budget: {budget}
- Complexity: {complexity}

**Requirements:**
1. Create 3-8 subtasks, ordered so that dependencies come first
2. Each subtask must be measurable and fit the timeframe
3. Include realistic estimated hours for each subtask

**Response Format (JSON only):**
{{
  "subtasks": [
    {{
      "title": "Task title (max 50 characters)",
      "description": "What needs to be done",
      "estimatedHours": 2,
      "priority": "HIGH|MEDIUM|LOW",
      "dependencies": ["Titles of tasks this depends on"],
      "skills": ["Skills needed"],
      "category": "planning|execution|review|communication"
    }}
  ],
  "reasoning": "Short explanation of the breakdown",
  "estimatedTotalHours": 24,
  "criticalPath": ["Titles on the critical path"],
  "tips": ["2-3 tips"]
}}
"""

TITLE_PROMPT = """
Create an optimized, compelling title for this goal.

**Description:** {description}

- Maximum {max_length} characters
- Tone: {tone}
- Clear, actionable and specific

**Response Format (JSON only):**
{{"optimizedTitle": "...", "alternatives": ["...", "...", "..."], "reasoning": "..."}}
"""


def _reject_constant(name: str):
    raise ValueError(f"Non-finite number {name} in provider JSON")


def load_json(content: str):
    """json.loads that refuses NaN and Infinity, which can't be sent back as JSON."""
    return json.loads(content, parse_constant=_reject_constant)


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _str_list(value) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(v) for v in value]


def parse_subtasks_response(content: str, generated_by: str) -> SuggestionResult:
    """Turn the provider's JSON into a SuggestionResult; ProviderFailure if it isn't usable."""
    try:
        parsed = load_json(content)
    except (TypeError, ValueError):
        raise ProviderFailure("Provider returned invalid JSON")

    if not isinstance(parsed, dict) or not isinstance(parsed.get("subtasks"), list) or not parsed["subtasks"]:
        raise ProviderFailure("Invalid response format: missing subtasks array")

    try:
        subtasks = []
        for index, task in enumerate(parsed["subtasks"]):
            if not isinstance(task, dict):
                raise ProviderFailure("Invalid response format: subtask is not an object")
            title = task.get("title")
            hours = task.get("estimatedHours")
            priority = task.get("priority")
            subtasks.append(SuggestedTask(
                title=title[:100] if isinstance(title, str) and title.strip() else f"Subtask {index + 1}",
                description=task.get("description") if isinstance(task.get("description"), str) else "",
                estimated_hours=hours if _is_number(hours) and hours >= 0 else None,
                priority=priority if isinstance(priority, str) and priority in Priority.__members__ else Priority.MEDIUM,
                dependencies=_str_list(task.get("dependencies")),
                skills=_str_list(task.get("skills")),
                category=task.get("category") if isinstance(task.get("category"), str) else "execution",
            ))

        total = parsed.get("estimatedTotalHours")
        reasoning = parsed.get("reasoning")
        return SuggestionResult(
            subtasks=subtasks,
            reasoning=reasoning if isinstance(reasoning, str) else "Tasks generated based on goal analysis",
            estimated_total_hours=total if _is_number(total) else None,
            critical_path=_str_list(parsed.get("criticalPath")),
            tips=_str_list(parsed.get("tips")),
            generated_by=generated_by,
        )
    except PydanticValidationError:
        raise ProviderFailure("Provider returned malformed subtasks")


class AIService:
    """Client for the Groq chat-completions API.

    Every public method answers even when Groq is unconfigured, slow or
    broken: ProviderFailure is caught here and the rule-based result is
    returned instead.
    """

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.key = settings.GROQ_API_KEY
        self.model = settings.GROQ_MODEL
        self.available = settings.llm_configured
        self.timeout_seconds = settings.SUGGESTION_TIMEOUT_SECONDS
        self.timeout = httpx.Timeout(self.timeout_seconds, connect=min(10.0, self.timeout_seconds))
        self._transport = transport
        if self.available:
            logger.info("🔧 [AI SERVICE] Initialized with Groq API (%s).", self.model)
        else:
            logger.warning("Groq API key not configured, using fallback responses")

    def _get_headers(self):
        return {
            "Authorization": f"Bearer {self.key}",
            "Content-Type": "application/json"
        }

    async def _complete(self, prompt: str, system: Optional[str] = None, max_tokens: int = 2048) -> str:
        messages = [{"role": "user", "content": prompt}]
        if system:
            messages.insert(0, {"role": "system", "content": system})
        payload = {
            "model": self.model,
            "messages": messages,
            "temperature": 0.6,
            "max_tokens": max_tokens,
            "response_format": {"type": "json_object"}
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await asyncio.wait_for(
                    client.post(GROQ_CHAT_URL, headers=self._get_headers(), json=payload),
                    timeout=self.timeout_seconds,
                )
        except asyncio.TimeoutError:
            raise ProviderFailure(f"Groq did not answer within {self.timeout_seconds}s")
        except httpx.HTTPError as e:
            raise ProviderFailure(f"Groq request failed: {e}")

        if resp.status_code != 200:
            raise ProviderFailure(f"Groq returned status {resp.status_code}")
        try:
            return resp.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError):
            raise ProviderFailure("Groq returned an unexpected payload")

    async def generate_subtasks(self, description: str, context: Optional[SuggestionContext] = None) -> SuggestionResult:
        context = context or SuggestionContext()
        if not self.available:
            return generate_fallback_subtasks(description, context)

        prompt = SUBTASK_PROMPT.format(
            description=description,
            priority=(context.priority or Priority.MEDIUM).value,
            due_date=context.due_date or "Not specified",
            project=context.project or "Personal",
            team_size=context.team_size or 1,
            skill_level=context.skill_level or "intermediate",
            budget=context.budget or "medium",
            complexity=context.complexity or "moderate",
        )
        try:
            content = await self._complete(prompt, system=SUBTASK_SYSTEM_PROMPT)
            return parse_subtasks_response(content, generated_by=self.model)
        except ProviderFailure as e:
            logger.warning("⚠️ [AI SERVICE] Subtask generation failed (%s), using fallback", e.message)
            return generate_fallback_subtasks(description, context)

    async def optimize_title(self, description: str, max_length: int = 50, tone: str = "professional") -> TitleSuggestion:
        if not self.available:
            return optimize_title_fallback(description, max_length)

        try:
            content = await self._complete(
                TITLE_PROMPT.format(description=description, max_length=max_length, tone=tone), max_tokens=300,
            )
            parsed = load_json(content)
            title = parsed["optimizedTitle"]
            if not isinstance(title, str) or not title.strip():
                raise ProviderFailure("Groq returned an empty title")
            return TitleSuggestion(
                optimized_title=title.strip()[:max_length],
                alternatives=_str_list(parsed.get("alternatives")),
                reasoning=parsed.get("reasoning") if isinstance(parsed.get("reasoning"), str) else "",
                generated_by=self.model,
            )
        except (ProviderFailure, ValueError, KeyError, TypeError) as e:
            logger.warning("⚠️ [AI SERVICE] Title optimization failed (%s), using fallback", e)
            return optimize_title_fallback(description, max_length)

    def status(self) -> dict:
        return {
            "groq": {
                "available": self.available,
                "configured": bool(self.key),
                "model": self.model,
            },
            "fallback": {
                "available": True,
                "description": "Rule-based task generation",
            },
        }
