from datetime import datetime, timedelta
from functools import cmp_to_key
from typing import Optional

from models import PRIORITY_WEIGHT, CalendarGroups, Insights, Task, TodayView
from timeutil import day_floor, is_overdue, is_today, is_tomorrow


def _today_order(a: Task, b: Task) -> int:
    # Priority first; due time only decides between two time-set tasks
    weight_a, weight_b = PRIORITY_WEIGHT[a.priority], PRIORITY_WEIGHT[b.priority]
    if weight_a != weight_b:
        return weight_b - weight_a
    if a.is_time_set and b.is_time_set:
        return (a.due_date > b.due_date) - (a.due_date < b.due_date)
    return 0


def today_bucket(tasks: list[Task], now: Optional[datetime] = None) -> list[Task]:
    """Active tasks due today or earlier, highest priority first."""
    now = now or datetime.now()
    active = [t for t in tasks if not t.completed and (is_today(t.due_date, now) or is_overdue(t.due_date, now))]
    return sorted(active, key=cmp_to_key(_today_order))


def split_today(bucket: list[Task]) -> tuple[list[Task], list[Task]]:
    critical = [t for t in bucket if t.priority == "high"]
    routine = [t for t in bucket if t.priority != "high"]
    return critical, routine


def today_view(tasks: list[Task], now: Optional[datetime] = None) -> TodayView:
    critical, routine = split_today(today_bucket(tasks, now))
    return TodayView(critical=critical, routine=routine)


def calendar_buckets(tasks: list[Task], now: Optional[datetime] = None) -> CalendarGroups:
    """
    Calendar groups: overdue (active only), today, tomorrow, upcoming, completed.
    Day groups include completed tasks and are sorted by due time; completed
    holds every completed task regardless of date.
    """
    now = now or datetime.now()
    by_due = lambda t: t.due_date
    tomorrow_floor = day_floor(now) + timedelta(days=1)
    return CalendarGroups(
        overdue=[t for t in tasks if is_overdue(t.due_date, now) and not t.completed],
        today=sorted((t for t in tasks if is_today(t.due_date, now)), key=by_due),
        tomorrow=sorted((t for t in tasks if is_tomorrow(t.due_date, now)), key=by_due),
        upcoming=sorted((t for t in tasks if day_floor(t.due_date) > tomorrow_floor), key=by_due),
        completed=[t for t in tasks if t.completed],
    )


def insights(tasks: list[Task]) -> Insights:
    total = len(tasks)
    completed = sum(1 for t in tasks if t.completed)
    active_high = sum(1 for t in tasks if t.priority == "high" and not t.completed)
    # Half-up rounding to whole percent
    rate = 0 if total == 0 else int(completed * 100 / total + 0.5)
    return Insights(total=total, completed=completed, active_high=active_high, completion_rate=rate)
