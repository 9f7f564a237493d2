"""
splitease/migrations/env.py — Alembic environment.

The database URL comes from splitease.config, so migrations see the same
.env values and postgres:// normalisation as the app. TEST_RUN=1 targets
TEST_DATABASE_URL instead of DATABASE_URL.

    alembic upgrade head
    TEST_RUN=1 alembic upgrade head
"""

from __future__ import annotations

import os
from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine, pool

from splitease.app.extensions import db
from splitease.app.models import friend, split, transaction, user  # noqa: F401
from splitease.config import config_by_name

_config_name = "testing" if os.getenv("TEST_RUN") else "development"
database_url: str = config_by_name[_config_name].SQLALCHEMY_DATABASE_URI

if context.config.config_file_name is not None:
    fileConfig(context.config.config_file_name)

_options = {"target_metadata": db.metadata, "compare_type": True}

if context.is_offline_mode():
    # Emit SQL for review instead of touching the database.
    context.configure(
        url=database_url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **_options,
    )
    with context.begin_transaction():
        context.run_migrations()
else:
    engine = create_engine(database_url, poolclass=pool.NullPool)
    with engine.connect() as connection:
        context.configure(connection=connection, **_options)
        with context.begin_transaction():
            context.run_migrations()
