from datetime import datetime
from typing import Optional

from config import DEFAULT_POLICY, SchedulingPolicy
from models import Task


def due_reminders(
    tasks: list[Task],
    now: Optional[datetime] = None,
    policy: SchedulingPolicy = DEFAULT_POLICY,
) -> list[Task]:
    """
    Active time-set tasks due in the current minute.
    Only fires during the first `reminder_grace` of that minute so a poller
    running every few seconds reports each task once or twice, not all minute long.
    """
    now = now or datetime.now()
    if now.second + now.microsecond / 1_000_000 >= policy.reminder_grace.total_seconds():
        return []
    minute = now.replace(second=0, microsecond=0)
    return [
        t for t in tasks
        if not t.completed and t.is_time_set and t.due_date.replace(second=0, microsecond=0) == minute
    ]
