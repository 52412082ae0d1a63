import logging
from datetime import MAXYEAR, datetime, timedelta
from typing import Optional

from identity import IdProvider, default_ids
from models import Recurrence, Task
from tasks import find_task

logger = logging.getLogger(__name__)


def add_month(current: datetime) -> datetime:
    """
    Same day-of-month in the next calendar month.
    A day that doesn't exist there rolls over into the month after
    (Jan 31 -> Mar 3 in a non-leap year); no clamping.
    Raises OverflowError past December of the last representable year,
    like the daily and weekly steps do.
    """
    if current.month == 12:
        if current.year == MAXYEAR:
            raise OverflowError("date value out of range")
        first_of_next = current.replace(year=current.year + 1, month=1, day=1)
    else:
        first_of_next = current.replace(month=current.month + 1, day=1)
    return first_of_next + timedelta(days=current.day - 1)


def next_due_date(due: datetime, rule: Recurrence) -> Optional[datetime]:
    """Next occurrence of a repeating task, or None for rule 'none'."""
    if rule == "daily":
        return due + timedelta(days=1)
    if rule == "weekly":
        return due + timedelta(days=7)
    if rule == "monthly":
        return add_month(due)
    return None


def expand_recurrence(task: Task, ids: IdProvider = default_ids, now: Optional[datetime] = None) -> Task:
    """
    Next occurrence of a completed repeating task.
    Text, priority, is_time_set and recurrence carry over; the checklist is
    copied with fresh identities and every item reset.
    """
    next_due = next_due_date(task.due_date, task.recurrence)
    if next_due is None:
        raise ValueError(f"Task {task.id} does not repeat")
    checklist = [
        item.model_copy(update={"id": ids.new_id(), "completed": False})
        for item in task.checklist
    ]
    return task.model_copy(update={
        "id": ids.new_id(),
        "completed": False,
        "created_at": now or datetime.now(),
        "due_date": next_due,
        "checklist": checklist,
    })


def toggle_task(
    tasks: list[Task],
    task_id: str,
    ids: IdProvider = default_ids,
    now: Optional[datetime] = None,
) -> list[Task]:
    """
    Flip a task's completion flag.
    Completing a repeating task also prepends its next occurrence; the
    completed one stays in the collection.
    """
    task = find_task(tasks, task_id)
    if task is None:
        return list(tasks)

    completing = not task.completed
    result = [t.model_copy(update={"completed": completing}) if t.id == task_id else t for t in tasks]

    if completing and task.recurrence != "none":
        next_task = expand_recurrence(task, ids, now)
        logger.info("Task %s repeats %s, next occurrence %s at %s",
                    task.id, task.recurrence, next_task.id, next_task.due_date.isoformat())
        result.insert(0, next_task)
    return result
