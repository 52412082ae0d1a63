"""
Task construction and by-value edits of the task collection.
The caller owns the collection; every function here returns a new list.
"""
from datetime import datetime
from typing import Iterable, Optional

from identity import IdProvider, default_ids
from models import ChecklistItem, CreateTask, Priority, Recurrence, Task, TaskMutation, UpdateTask
from timeutil import end_of_day


def materialize_checklist(labels: Iterable[str], ids: IdProvider = default_ids) -> list[ChecklistItem]:
    """Plain text labels -> fresh, incomplete checklist items."""
    return [ChecklistItem(id=ids.new_id(), text=label, completed=False) for label in labels]


def new_task(
    text: str,
    ids: IdProvider = default_ids,
    now: Optional[datetime] = None,
    priority: Priority = "medium",
    due_date: Optional[datetime] = None,
    checklist: Iterable[str] = (),
    is_time_set: bool = False,
    recurrence: Recurrence = "none",
) -> Task:
    """
    Build a new task with a fresh identity.
    Without a due date the task is due by the end of today.
    """
    now = now or datetime.now()
    if due_date is None:
        due_date = end_of_day(now)
        is_time_set = False
    return Task(
        id=ids.new_id(),
        text=text,
        completed=False,
        created_at=now,
        due_date=due_date,
        priority=priority,
        checklist=materialize_checklist(checklist, ids),
        is_time_set=is_time_set,
        recurrence=recurrence,
    )


def find_task(tasks: list[Task], task_id: str) -> Optional[Task]:
    return next((t for t in tasks if t.id == task_id), None)


def apply_mutations(tasks: list[Task], mutations: Iterable[TaskMutation]) -> list[Task]:
    """
    Apply committed mutations in order.
    Creates go to the front of the collection; updates for unknown ids are ignored.
    """
    result = list(tasks)
    for mutation in mutations:
        if isinstance(mutation, CreateTask):
            result.insert(0, mutation.task)
        elif isinstance(mutation, UpdateTask):
            result = [
                t.model_copy(update=mutation.changes) if t.id == mutation.task_id else t
                for t in result
            ]
    return result


def update_task(tasks: list[Task], task_id: str, **changes) -> list[Task]:
    return apply_mutations(tasks, [UpdateTask(task_id=task_id, changes=changes)])


def delete_task(tasks: list[Task], task_id: str) -> list[Task]:
    return [t for t in tasks if t.id != task_id]


def toggle_checklist_item(tasks: list[Task], task_id: str, item_id: str) -> list[Task]:
    result = []
    for task in tasks:
        if task.id == task_id:
            checklist = [
                item.model_copy(update={"completed": not item.completed}) if item.id == item_id else item
                for item in task.checklist
            ]
            task = task.model_copy(update={"checklist": checklist})
        result.append(task)
    return result
