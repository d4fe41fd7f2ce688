"""Alembic migrations upgrade and downgrade cleanly.

Runs against a throwaway SQLite file.
"""

import os

import pytest
from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect

pytestmark = pytest.mark.integration

ALEMBIC_INI = os.path.join(os.path.dirname(__file__), "..", "..", "alembic.ini")

EXPECTED_TABLES = {"users", "theses", "thesis_transitions"}


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite:///{tmp_path / 'migrations.db'}"


def _alembic_cfg(database_url: str) -> Config:
    cfg = Config(ALEMBIC_INI)
    cfg.set_main_option("sqlalchemy.url", database_url)
    return cfg


class TestMigrations:

    def test_upgrade_creates_tables(self, database_url):
        command.upgrade(_alembic_cfg(database_url), "head")

        engine = create_engine(database_url)
        try:
            inspector = inspect(engine)
            assert EXPECTED_TABLES <= set(inspector.get_table_names())
            columns = {c["name"] for c in inspector.get_columns("theses")}
            assert {"status", "current_stage", "approvals", "version"} <= columns
            columns = {c["name"] for c in inspector.get_columns("thesis_transitions")}
            assert {"approval_key", "approval_record"} <= columns
        finally:
            engine.dispose()

    def test_downgrade_drops_tables(self, database_url):
        cfg = _alembic_cfg(database_url)
        command.upgrade(cfg, "head")
        command.downgrade(cfg, "base")

        engine = create_engine(database_url)
        try:
            assert not EXPECTED_TABLES & set(inspect(engine).get_table_names())
        finally:
            engine.dispose()
