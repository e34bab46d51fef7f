"""Tests for the Alembic migration chain."""

from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect

MIGRATIONS_DIR = Path(__file__).resolve().parents[1] / "migrations"


def _alembic_config(url: str) -> Config:
    # No ini file, so env.py leaves the test run's logging setup alone.
    cfg = Config()
    cfg.set_main_option("script_location", str(MIGRATIONS_DIR))
    cfg.set_main_option("sqlalchemy.url", url)
    return cfg


def test_upgrade_and_downgrade_account_table(tmp_path: Path) -> None:
    url = f"sqlite:///{tmp_path}/migrated.db"
    cfg = _alembic_config(url)

    command.upgrade(cfg, "head")
    engine = create_engine(url)
    columns = {c["name"]: c for c in inspect(engine).get_columns("autobet")}
    assert set(columns) == {"id", "balance"}
    assert columns["balance"]["nullable"] is False

    command.downgrade(cfg, "base")
    assert "autobet" not in inspect(engine).get_table_names()
    engine.dispose()
