from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine

from config import get_settings

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# Same DATABASE_PATH the app reads, so migrations and app never disagree
db_url = f"sqlite:///{get_settings().database_path}"


def run_migrations_offline() -> None:
    """Emit SQL for the task schema without a database connection."""
    context.configure(url=db_url, target_metadata=None, literal_binds=True)
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Apply migrations to the sqlite task store."""
    engine = create_engine(db_url)
    with engine.connect() as connection:
        # Batch mode: SQLite can't ALTER most column definitions in place
        context.configure(connection=connection, target_metadata=None, render_as_batch=True)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
