"""
Suggestion generator backed by Claude.

Every call degrades to a neutral result on failure (API error, missing key,
unparseable or invalid JSON); nothing raised here reaches the engine.
"""
import json
import logging
from datetime import datetime

import anthropic
from pydantic import ValidationError

from config import get_settings
from models import AnalysisResult, SuggestedAction, Task
from prompts import ANALYZE_PROMPT, BRIEFING_PROMPT, COMMAND_PROMPT

logger = logging.getLogger(__name__)

_settings = get_settings()
ANTHROPIC_API_KEY = _settings.anthropic_api_key
MODEL = _settings.anthropic_model
client = anthropic.AsyncAnthropic(api_key=ANTHROPIC_API_KEY)

NO_TASKS_BRIEFING = "No tasks available for analysis."
EMPTY_BRIEFING = "Could not generate briefing."
UNAVAILABLE_BRIEFING = "AI Service unavailable for briefing."


class AssistantUnavailable(Exception):
    pass


def strip_code_fence(text: str) -> str:
    """Remove a surrounding ```json ... ``` block if present."""
    text = text.strip()
    if text.startswith("```"):
        lines = text.split("\n")
        lines = lines[1:]  # Remove first line (```json)
        if lines and lines[-1].strip() == "```":
            lines = lines[:-1]
        text = "\n".join(lines)
    return text


async def _ask(prompt: str, max_tokens: int) -> str:
    if not ANTHROPIC_API_KEY:
        raise AssistantUnavailable("API key not configured")
    response = await client.messages.create(
        model=MODEL,
        max_tokens=max_tokens,
        messages=[{"role": "user", "content": prompt}],
    )
    return response.content[0].text


async def analyze_task(text: str) -> AnalysisResult:
    """Priority, preparation checklist and an optional time for one task description."""
    if not text.strip():
        return AnalysisResult()
    try:
        raw = await _ask(ANALYZE_PROMPT.format(text=text), max_tokens=512)
        return AnalysisResult.model_validate(json.loads(strip_code_fence(raw)))
    except (anthropic.APIError, AssistantUnavailable, json.JSONDecodeError, ValidationError,
            IndexError, AttributeError) as e:
        logger.warning("Task analysis failed: %s", e)
        return AnalysisResult()


def _schedule_context(tasks: list[Task]) -> str:
    # Compact view of the collection to keep the prompt small
    return json.dumps([
        {
            "id": t.id,
            "text": t.text,
            "date": t.due_date.strftime("%Y-%m-%d"),
            "time": t.due_date.strftime("%H:%M") if t.is_time_set else "No time",
        }
        for t in tasks
    ])


async def process_command(text: str, current_tasks: list[Task]) -> list[SuggestedAction]:
    """Free-text command -> create/update suggestions. Invalid items are dropped."""
    if not text.strip():
        return []
    prompt = COMMAND_PROMPT.format(
        schedule=_schedule_context(current_tasks),
        today=datetime.now().strftime("%Y-%m-%d"),
        text=text,
    )
    try:
        raw = await _ask(prompt, max_tokens=2048)
        parsed = json.loads(strip_code_fence(raw))
    except (anthropic.APIError, AssistantUnavailable, json.JSONDecodeError, IndexError, AttributeError) as e:
        logger.warning("Command processing failed: %s", e)
        return []

    if isinstance(parsed, dict):
        parsed = [parsed]
    if not isinstance(parsed, list):
        logger.warning("Command response is not a list: %r", parsed)
        return []

    actions = []
    for item in parsed:
        try:
            actions.append(SuggestedAction.model_validate(item))
        except ValidationError as e:
            logger.warning("Dropping malformed suggestion %r: %s", item, e)
    return actions


def format_task_list(tasks: list[Task]) -> str:
    lines = []
    for t in tasks:
        time_str = f" at {t.due_date.strftime('%H:%M')}" if t.is_time_set else ""
        lines.append(f"- [{t.priority.upper()}] {t.text}{time_str}")
    return "\n".join(lines)


async def generate_briefing(active_tasks: list[Task]) -> str:
    if not active_tasks:
        return NO_TASKS_BRIEFING
    try:
        raw = await _ask(BRIEFING_PROMPT.format(task_list=format_task_list(active_tasks)), max_tokens=512)
    except (anthropic.APIError, AssistantUnavailable, IndexError, AttributeError) as e:
        logger.warning("Briefing failed: %s", e)
        return UNAVAILABLE_BRIEFING
    return raw.strip() or EMPTY_BRIEFING
