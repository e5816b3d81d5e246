# src/inkwell/scripts/migrate.py
"""Upgrade the configured database to the latest alembic revision."""
from __future__ import annotations

import os

from alembic import command
from alembic.config import Config

from inkwell.core.logging_config import configure_logging
from inkwell.core.settings import settings

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "..", ".."))
MIGRATIONS_DIR = os.path.join(PROJECT_ROOT, "migrations")


def build_config(database_url: str | None = None) -> Config:
    """Return an alembic config pointed at ``migrations/`` and the settings URL."""
    cfg = Config(os.path.join(PROJECT_ROOT, "alembic.ini"))
    cfg.set_main_option("script_location", MIGRATIONS_DIR)
    cfg.set_main_option("sqlalchemy.url", database_url or settings.database_url)
    return cfg


def run_upgrade_head() -> None:
    configure_logging(settings.log_level)
    command.upgrade(build_config(), "head")


if __name__ == "__main__":
    run_upgrade_head()
