"""
Conflict detection, reconciliation of assistant suggestions, and conflict resolution.

All functions are pure: they read the collection they are given and return
mutations for the caller to apply (see tasks.apply_mutations).
"""
import logging
from datetime import datetime, timedelta
from typing import Optional, Sequence

from config import DEFAULT_POLICY, SchedulingPolicy
from identity import IdProvider, default_ids
from models import (
    CreateTask,
    PendingConflict,
    ReconcileResult,
    Strategy,
    SuggestedAction,
    Task,
    TaskMutation,
    UpdateTask,
)
from tasks import apply_mutations, find_task, new_task
from timeutil import at_time_of_day, day_floor, end_of_day, slot_distance

logger = logging.getLogger(__name__)


def find_conflict(
    candidate_time: datetime,
    candidate_is_time_set: bool,
    exclude_id: Optional[str],
    tasks: Sequence[Task],
    policy: SchedulingPolicy = DEFAULT_POLICY,
) -> Optional[Task]:
    """
    First active, time-set task due within the conflict window of candidate_time.
    Untimed candidates never conflict. Collection order breaks ties, so the
    result is not necessarily the closest match.
    """
    if not candidate_is_time_set:
        return None
    for task in tasks:
        if task.id == exclude_id or task.completed or not task.is_time_set:
            continue
        if slot_distance(task.due_date, candidate_time) < policy.conflict_window:
            return task
    return None


def _task_from_suggestion(
    item: SuggestedAction,
    due_date: datetime,
    is_time_set: bool,
    ids: IdProvider,
    now: datetime,
) -> Task:
    # Suggested tasks never repeat
    return new_task(
        item.text,
        ids=ids,
        now=now,
        priority=item.priority or "medium",
        due_date=due_date,
        checklist=item.checklist,
        is_time_set=is_time_set,
        recurrence="none",
    )


def _plan_update(item: SuggestedAction, tasks: Sequence[Task], policy: SchedulingPolicy) -> Optional[UpdateTask]:
    target = find_task(tasks, item.original_id) if item.original_id else None
    if target is None:
        logger.debug("Skipping update for unknown task %r", item.original_id)
        return None

    due_date = target.due_date
    is_time_set = target.is_time_set
    if item.suggested_time:
        # Only the time of day moves; the task keeps its day
        due_date = at_time_of_day(target.due_date, item.suggested_time)
        is_time_set = True

    # Rescheduling an existing task is deliberate, so a collision never blocks it
    clash = find_conflict(due_date, is_time_set, target.id, tasks, policy)
    if clash is not None:
        logger.info("Update of %s overlaps %s (%r); applying anyway", target.id, clash.id, clash.text)

    return UpdateTask(task_id=target.id, changes={
        "text": item.text or target.text,
        "due_date": due_date,
        "is_time_set": is_time_set,
        "priority": item.priority or target.priority,
    })


def suggested_due_date(item: SuggestedAction, now: datetime) -> tuple[datetime, bool]:
    """Due date for a create suggestion: today + offset, at the suggested time or end of day."""
    day = day_floor(now) + timedelta(days=item.due_date_offset)
    if item.suggested_time:
        return at_time_of_day(day, item.suggested_time), True
    return end_of_day(day), False


def reconcile(
    actions: Sequence[SuggestedAction],
    tasks: Sequence[Task],
    ids: IdProvider = default_ids,
    policy: SchedulingPolicy = DEFAULT_POLICY,
    now: Optional[datetime] = None,
) -> ReconcileResult:
    """
    Turn a batch of suggestions into committed mutations, in order.

    Updates always apply. A time-set create that collides with an active
    time-set task halts the batch: it becomes the pending conflict and every
    action after it is dropped (reported in `dropped`, not deferred).
    Each item is checked against the collection with the batch's earlier
    commits applied.
    """
    now = now or datetime.now()
    working = list(tasks)
    commits: list[TaskMutation] = []

    for index, item in enumerate(actions):
        if item.action == "update":
            mutation = _plan_update(item, working, policy)
            if mutation is None:
                continue
        else:
            due_date, is_time_set = suggested_due_date(item, now)
            existing = find_conflict(due_date, is_time_set, None, working, policy)
            if existing is not None:
                dropped = list(actions[index + 1:])
                logger.info("Suggestion %r at %s collides with %s (%r); halting batch, %d dropped",
                            item.text, due_date.isoformat(), existing.id, existing.text, len(dropped))
                return ReconcileResult(
                    commits=commits,
                    conflict=PendingConflict(new_item=item, existing_item=existing),
                    dropped=dropped,
                )
            mutation = CreateTask(task=_task_from_suggestion(item, due_date, is_time_set, ids, now))

        commits.append(mutation)
        working = apply_mutations(working, [mutation])

    return ReconcileResult(commits=commits)


def resolve_conflict(
    conflict: PendingConflict,
    strategy: Strategy,
    ids: IdProvider = default_ids,
    policy: SchedulingPolicy = DEFAULT_POLICY,
    now: Optional[datetime] = None,
) -> list[TaskMutation]:
    """
    Mutations for the user's decision on a pending conflict.

    replace: existing task moves forward by replace_shift, the new task takes
             the original slot.
    auto:    new task goes to the existing slot + auto_shift; that slot is not
             re-checked.
    keep / cancel: new task is discarded.
    """
    now = now or datetime.now()
    existing = conflict.existing_item
    collision_time = existing.due_date

    if strategy == "replace":
        return [
            UpdateTask(task_id=existing.id, changes={"due_date": collision_time + policy.replace_shift}),
            CreateTask(task=_task_from_suggestion(conflict.new_item, collision_time, True, ids, now)),
        ]
    if strategy == "auto":
        return [
            CreateTask(task=_task_from_suggestion(
                conflict.new_item, collision_time + policy.auto_shift, True, ids, now)),
        ]
    return []
