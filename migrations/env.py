"""Alembic environment for the ranch trade schema.

The URL is the server's own DATABASE_URL (or `sqlalchemy.url` from an ini
file, when set). Alembic runs synchronously, so async drivers are swapped for
their blocking counterparts before an engine is built.
"""
from __future__ import annotations

from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine, pool
from sqlalchemy.engine import make_url

from ranchtrade.core.config import DATABASE_URL
from ranchtrade.models.database import Base

SYNC_DRIVERS = {
    "postgresql+asyncpg": "postgresql+psycopg2",
    "sqlite+aiosqlite": "sqlite+pysqlite",
}

alembic_config = context.config
if alembic_config.config_file_name is not None:
    fileConfig(alembic_config.config_file_name)


def migration_url() -> str:
    url = make_url(alembic_config.get_main_option("sqlalchemy.url") or DATABASE_URL)
    driver = SYNC_DRIVERS.get(url.drivername)
    if driver is not None:
        url = url.set(drivername=driver)
    return url.render_as_string(hide_password=False)


def configure_options(url: str) -> dict:
    # SQLite cannot ALTER most constraints in place
    return {
        "target_metadata": Base.metadata,
        "compare_type": True,
        "render_as_batch": url.startswith("sqlite"),
    }


def migrate_offline(url: str) -> None:
    context.configure(url=url, literal_binds=True, dialect_opts={"paramstyle": "named"}, **configure_options(url))
    with context.begin_transaction():
        context.run_migrations()


def migrate_online(url: str) -> None:
    engine = create_engine(url, poolclass=pool.NullPool)
    try:
        with engine.connect() as connection:
            context.configure(connection=connection, **configure_options(url))
            with context.begin_transaction():
                context.run_migrations()
    finally:
        engine.dispose()


if context.is_offline_mode():
    migrate_offline(migration_url())
else:
    migrate_online(migration_url())
