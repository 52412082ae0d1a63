import os
from dataclasses import dataclass
from datetime import timedelta

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict

load_dotenv()


class SchedulingPolicy(BaseModel):
    """Policy values for conflict detection and resolution."""
    model_config = ConfigDict(frozen=True)

    conflict_window: timedelta = timedelta(minutes=30)
    replace_shift: timedelta = timedelta(hours=1)
    auto_shift: timedelta = timedelta(hours=2)
    reminder_grace: timedelta = timedelta(seconds=10)


DEFAULT_POLICY = SchedulingPolicy()


@dataclass(frozen=True)
class Settings:
    """
    Settings read from the environment (and .env).

    Env vars:
    - DATABASE_PATH: sqlite file, default 'dailydesk.db'
    - ANTHROPIC_API_KEY: key for the assistant; unset disables AI features
    - ANTHROPIC_MODEL: default 'claude-sonnet-4-5'
    - CORS_ALLOW_ORIGINS: comma-separated, default 'http://localhost:5173'
    - CONFLICT_WINDOW_MINUTES / REPLACE_SHIFT_MINUTES / AUTO_SHIFT_MINUTES /
      REMINDER_GRACE_SECONDS: scheduling policy overrides
    """
    database_path: str
    anthropic_api_key: str | None
    anthropic_model: str
    cors_allow_origins: list[str]
    policy: SchedulingPolicy


def _get_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def get_settings() -> Settings:
    api_key = os.getenv("ANTHROPIC_API_KEY")
    if api_key == "your-api-key-here":
        api_key = None
    origins = os.getenv("CORS_ALLOW_ORIGINS", "http://localhost:5173")
    policy = SchedulingPolicy(
        conflict_window=timedelta(minutes=_get_int("CONFLICT_WINDOW_MINUTES", 30)),
        replace_shift=timedelta(minutes=_get_int("REPLACE_SHIFT_MINUTES", 60)),
        auto_shift=timedelta(minutes=_get_int("AUTO_SHIFT_MINUTES", 120)),
        reminder_grace=timedelta(seconds=_get_int("REMINDER_GRACE_SECONDS", 10)),
    )
    return Settings(
        database_path=os.getenv("DATABASE_PATH", "dailydesk.db"),
        anthropic_api_key=api_key or None,
        anthropic_model=os.getenv("ANTHROPIC_MODEL", "claude-sonnet-4-5"),
        cors_allow_origins=[o.strip() for o in origins.split(",") if o.strip()],
        policy=policy,
    )
