# Prompts for the assistant calls in assistant.py.
# Every prompt asks for JSON only; keys match the pydantic models in models.py.

ANALYZE_PROMPT = """Analyze the task: "{text}".

1. Assign a priority level ("high", "medium", "low").
2. Create a checklist of 3-5 preparation steps (mini-requirements) needed BEFORE doing this task.
   - Example for "Meeting": ["Prepare Agenda", "Read Brief", "Check Audio/Video"].
3. Extract a specific time (e.g., "at 5pm" -> "17:00"). If there is no time, use null.

Respond with this exact JSON format:
{{
    "checklist": ["step", "step", "step"],
    "priority": "high" | "medium" | "low",
    "suggested_time": "HH:MM" or null
}}

Only respond with valid JSON, no other text."""


COMMAND_PROMPT = """You are a scheduling assistant. The user either adds new tasks or changes existing ones.

Current schedule (JSON):
{schedule}

Today's date is: {today}

User command/input: "{text}"

Instructions:
1. Decide whether the input adds new tasks or modifies existing ones.
2. "Reschedule meeting to 10am": find the meeting in the current schedule and return an "update" action with its id as "original_id".
3. "Add a task to buy milk": return a "create" action.
4. If the user pastes a full new schedule, return one "create" action per task.
5. For "suggested_time", if NO time is given, pick a logical slot between 09:00 and 17:00 that doesn't conflict.
6. For every "create" action, generate a "checklist" of 3-5 preparation steps. Do NOT leave it empty.
7. "due_date_offset" is the number of days from today (0 = today, 1 = tomorrow).

Respond with a JSON array, each element in this format:
{{
    "action": "create" | "update",
    "original_id": "id of the task to update" or null,
    "text": "task text",
    "priority": "high" | "medium" | "low",
    "checklist": ["step", "step"],
    "due_date_offset": integer,
    "suggested_time": "HH:MM" or null,
    "reason": "why you did this, e.g. Rescheduled per request"
}}

Only respond with valid JSON, no other text."""


BRIEFING_PROMPT = """You are a strategic business manager. Review this task list:
{task_list}

Provide a concise 3-sentence "Morning Briefing".
1. Highlight the critical focus.
2. Identify bottlenecks.
3. Offer a motivating closing."""
