import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

import assistant
from config import get_settings
from database import init_db, load_tasks, save_tasks
from identity import default_ids
from models import (
    AnalysisResult,
    AnalyzeRequest,
    CalendarGroups,
    CommandRequest,
    Insights,
    PendingConflict,
    ResolveRequest,
    Task,
    TaskCreate,
    TaskUpdate,
    TodayView,
)
from recurrence import toggle_task
from reminders import due_reminders
from scheduling import reconcile, resolve_conflict
from tasks import apply_mutations, delete_task, find_task, new_task, toggle_checklist_item, update_task
from timeutil import at_time_of_day, day_floor, end_of_day, parse_date
from views import calendar_buckets, insights, today_view

logger = logging.getLogger(__name__)

settings = get_settings()
policy = settings.policy
ids = default_ids


@asynccontextmanager
async def lifespan(_app: FastAPI):
    # Startup
    init_db()
    # At most one conflict waits for a decision; command_lock serializes batches
    _app.state.pending_conflict = None
    _app.state.command_lock = asyncio.Lock()
    yield
    # Shutdown (nothing to do)

app = FastAPI(lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _due_date(day: datetime, time: Optional[str]) -> tuple[datetime, bool]:
    """Day + optional "HH:MM"; without a time the task is due at 23:59 and untimed."""
    try:
        if time:
            return at_time_of_day(day, time), True
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return end_of_day(day), False


def _parse_day(value: str) -> datetime:
    try:
        return parse_date(value)
    except ValueError:
        raise HTTPException(status_code=422, detail=f"Invalid date: {value!r}")


def _get_task(tasks: list[Task], task_id: str) -> Task:
    task = find_task(tasks, task_id)
    if task is None:
        raise HTTPException(status_code=404, detail="Task not found")
    return task


@app.get("/tasks")
def get_tasks() -> list[Task]:
    return load_tasks()


@app.post("/tasks")
async def create_task(task_data: TaskCreate) -> Task:
    """Manual add. With analyze=true the assistant fills priority, checklist and (if missing) the time."""
    if not task_data.text.strip():
        raise HTTPException(status_code=422, detail="Task text is empty")
    now = datetime.now()
    day = _parse_day(task_data.date) if task_data.date else day_floor(now)
    time = task_data.time
    priority = task_data.priority
    checklist: list[str] = []

    if task_data.analyze:
        analysis = await assistant.analyze_task(task_data.text)
        priority = analysis.priority
        checklist = analysis.checklist
        if analysis.suggested_time and not time:
            time = analysis.suggested_time

    due_date, is_time_set = _due_date(day, time)
    task = new_task(
        task_data.text.strip(),
        ids=ids,
        now=now,
        priority=priority,
        due_date=due_date,
        checklist=checklist,
        is_time_set=is_time_set,
        recurrence=task_data.recurrence,
    )
    save_tasks([task] + load_tasks())
    return task


@app.patch("/tasks/{task_id}")
def edit_task(task_id: str, task_data: TaskUpdate) -> Task:
    """
    Manual edit. A date alone keeps the current time of day; time "" makes
    the task untimed (due end of day).
    """
    tasks = load_tasks()
    task = _get_task(tasks, task_id)

    changes = task_data.model_dump(exclude_unset=True, exclude={"date", "time"})
    changes = {k: v for k, v in changes.items() if v is not None}

    if task_data.date is not None or task_data.time is not None:
        day = _parse_day(task_data.date) if task_data.date else task.due_date
        if task_data.time is None:
            due_date = day.replace(hour=task.due_date.hour, minute=task.due_date.minute,
                                   second=task.due_date.second, microsecond=task.due_date.microsecond)
            is_time_set = task.is_time_set
        else:
            due_date, is_time_set = _due_date(day, task_data.time)
        changes["due_date"] = due_date
        changes["is_time_set"] = is_time_set

    tasks = update_task(tasks, task_id, **changes)
    save_tasks(tasks)
    return find_task(tasks, task_id)


@app.delete("/tasks/{task_id}")
def remove_task(task_id: str) -> dict:
    tasks = load_tasks()
    _get_task(tasks, task_id)
    save_tasks(delete_task(tasks, task_id))
    return {"status": "deleted"}


@app.post("/tasks/{task_id}/toggle")
def toggle(task_id: str) -> list[Task]:
    """Flip completion; completing a repeating task adds its next occurrence."""
    tasks = load_tasks()
    _get_task(tasks, task_id)
    tasks = toggle_task(tasks, task_id, ids=ids)
    save_tasks(tasks)
    return tasks


@app.post("/tasks/{task_id}/checklist/{item_id}/toggle")
def toggle_item(task_id: str, item_id: str) -> Task:
    tasks = load_tasks()
    task = _get_task(tasks, task_id)
    if not any(item.id == item_id for item in task.checklist):
        raise HTTPException(status_code=404, detail="Checklist item not found")
    tasks = toggle_checklist_item(tasks, task_id, item_id)
    save_tasks(tasks)
    return find_task(tasks, task_id)


@app.post("/command")
async def command(request: CommandRequest) -> dict:
    """Free-text command through the assistant, reconciled against the current tasks."""
    async with app.state.command_lock:
        if app.state.pending_conflict is not None:
            raise HTTPException(status_code=409, detail="Resolve the pending conflict first")

        actions = await assistant.process_command(request.text, load_tasks())
        # Reconcile against the stored collection as it is after the await
        tasks = load_tasks()
        result = reconcile(actions, tasks, ids=ids, policy=policy)

        if result.commits:
            tasks = apply_mutations(tasks, result.commits)
            save_tasks(tasks)
        app.state.pending_conflict = result.conflict

    return {"tasks": tasks, "conflict": result.conflict, "dropped": result.dropped}


@app.get("/conflict")
def get_conflict() -> Optional[PendingConflict]:
    return app.state.pending_conflict


@app.post("/conflict/resolve")
def resolve(request: ResolveRequest) -> list[Task]:
    conflict = app.state.pending_conflict
    if conflict is None:
        raise HTTPException(status_code=404, detail="No pending conflict")

    mutations = resolve_conflict(conflict, request.strategy, ids=ids, policy=policy)
    app.state.pending_conflict = None

    tasks = load_tasks()
    if mutations:
        tasks = apply_mutations(tasks, mutations)
        save_tasks(tasks)
    logger.info("Conflict with %s resolved: %s", conflict.existing_item.id, request.strategy)
    return tasks


@app.get("/views/today")
def get_today() -> TodayView:
    return today_view(load_tasks())


@app.get("/views/calendar")
def get_calendar() -> CalendarGroups:
    return calendar_buckets(load_tasks())


@app.get("/insights")
def get_insights() -> Insights:
    return insights(load_tasks())


@app.get("/reminders")
def get_reminders() -> list[Task]:
    return due_reminders(load_tasks(), policy=policy)


@app.post("/briefing")
async def briefing() -> dict:
    active = [t for t in load_tasks() if not t.completed]
    return {"briefing": await assistant.generate_briefing(active)}


@app.post("/analyze")
async def analyze(request: AnalyzeRequest) -> AnalysisResult:
    return await assistant.analyze_task(request.text)


if __name__ == "__main__":
    import uvicorn
    logging.basicConfig(level=logging.INFO)
    uvicorn.run(app, host="0.0.0.0", port=8000)
