from datetime import datetime
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

from timeutil import parse_time_of_day

Priority = Literal["high", "medium", "low"]
Recurrence = Literal["none", "daily", "weekly", "monthly"]
Strategy = Literal["replace", "auto", "keep", "cancel"]

PRIORITY_WEIGHT = {"high": 3, "medium": 2, "low": 1}

# Suggested day offsets beyond a century are rejected as malformed
MAX_DAY_OFFSET = 36500


class ChecklistItem(BaseModel):
    id: str
    text: str
    completed: bool = False


class Task(BaseModel):
    id: str
    text: str
    completed: bool = False
    created_at: datetime
    due_date: datetime
    priority: Priority = "medium"
    checklist: list[ChecklistItem] = []
    is_time_set: bool = False  # False means "due by end of day" (23:59)
    recurrence: Recurrence = "none"


class SuggestedAction(BaseModel):
    """One create/update suggestion from the assistant. Consumed once, never stored."""
    action: Literal["create", "update"]
    original_id: Optional[str] = None
    text: str = ""
    priority: Optional[Priority] = None
    checklist: list[str] = []
    due_date_offset: int = Field(default=0, ge=-MAX_DAY_OFFSET, le=MAX_DAY_OFFSET)
    suggested_time: Optional[str] = None  # "HH:MM" 24h
    reason: Optional[str] = None

    @field_validator("suggested_time")
    @classmethod
    def check_time(cls, value: Optional[str]) -> Optional[str]:
        if value is None or value == "":
            return None
        parse_time_of_day(value)
        return value

    @field_validator("due_date_offset", mode="before")
    @classmethod
    def default_offset(cls, value):
        return 0 if value is None else value

    @field_validator("checklist", mode="before")
    @classmethod
    def default_checklist(cls, value):
        return [] if value is None else value


class PendingConflict(BaseModel):
    new_item: SuggestedAction
    existing_item: Task


class CreateTask(BaseModel):
    kind: Literal["create"] = "create"
    task: Task


class UpdateTask(BaseModel):
    kind: Literal["update"] = "update"
    task_id: str
    changes: dict


TaskMutation = Annotated[Union[CreateTask, UpdateTask], Field(discriminator="kind")]


class ReconcileResult(BaseModel):
    commits: list[TaskMutation] = []
    conflict: Optional[PendingConflict] = None
    dropped: list[SuggestedAction] = []  # not processed because the batch halted


class AnalysisResult(BaseModel):
    checklist: list[str] = []
    priority: Priority = "medium"
    suggested_time: Optional[str] = None

    @field_validator("suggested_time")
    @classmethod
    def check_time(cls, value: Optional[str]) -> Optional[str]:
        if value is None or value == "":
            return None
        parse_time_of_day(value)
        return value


class TodayView(BaseModel):
    critical: list[Task]
    routine: list[Task]


class CalendarGroups(BaseModel):
    overdue: list[Task]
    today: list[Task]
    tomorrow: list[Task]
    upcoming: list[Task]
    completed: list[Task]


class Insights(BaseModel):
    total: int
    completed: int
    active_high: int
    completion_rate: int  # whole percent


# Request bodies

class TaskCreate(BaseModel):
    text: str
    date: Optional[str] = None  # YYYY-MM-DD, defaults to today
    time: Optional[str] = None  # HH:MM; absent means end of day
    priority: Priority = "medium"
    recurrence: Recurrence = "none"
    analyze: bool = False


class TaskUpdate(BaseModel):
    text: Optional[str] = None
    date: Optional[str] = None
    time: Optional[str] = None
    priority: Optional[Priority] = None
    recurrence: Optional[Recurrence] = None


class CommandRequest(BaseModel):
    text: str


class AnalyzeRequest(BaseModel):
    text: str


class ResolveRequest(BaseModel):
    strategy: Strategy
