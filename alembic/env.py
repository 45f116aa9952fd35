"""Alembic environment for the blog API's async SQLAlchemy engine.

``alembic upgrade head`` runs online against ``settings.DATABASE_URL``;
``alembic upgrade head --sql`` renders the DDL instead.
"""

import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy.ext.asyncio import create_async_engine

from blog_api.config import settings
from blog_api.database import Base

# Registers every table on Base.metadata for autogenerate.
import blog_api.models  # noqa: F401

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# The URL always comes from Settings (.env / environment), never alembic.ini.
config.set_main_option("sqlalchemy.url", settings.DATABASE_URL)

target_metadata = Base.metadata


def _configure(**kwargs) -> None:
    context.configure(
        target_metadata=target_metadata,
        compare_type=True,
        # SQLite needs batch mode to ALTER tables.
        render_as_batch=settings.DATABASE_URL.startswith("sqlite"),
        **kwargs,
    )


def run_migrations_offline() -> None:
    _configure(
        url=config.get_main_option("sqlalchemy.url"),
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection) -> None:
    _configure(connection=connection)
    with context.begin_transaction():
        context.run_migrations()


async def run_async_migrations() -> None:
    """Hand a sync connection from the async engine to Alembic's runner."""
    connectable = create_async_engine(settings.DATABASE_URL, pool_pre_ping=True)
    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)
    await connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_async_migrations())
