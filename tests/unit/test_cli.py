from unittest.mock import patch

import pytest
from sqlalchemy import create_engine, inspect
from typer.testing import CliRunner

from bizforge.cli import app
from bizforge.config import get_settings

runner = CliRunner()


@pytest.fixture(autouse=True)
def fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_serve_runs_uvicorn():
    with patch("bizforge.cli.uvicorn.run") as run:
        result = runner.invoke(app, ["serve", "--port", "9000"])

    assert result.exit_code == 0
    run.assert_called_once_with(
        "bizforge.main:app", host="0.0.0.0", port=9000, reload=False  # noqa: S104
    )


def test_init_db_creates_tables(tmp_path, monkeypatch):
    db_path = tmp_path / "bizforge.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{db_path}")

    result = runner.invoke(app, ["init-db"])

    assert result.exit_code == 0, result.output
    assert "Database tables created" in result.output

    engine = create_engine(f"sqlite:///{db_path}")
    tables = inspect(engine).get_table_names()
    engine.dispose()
    assert {"users", "versions", "token_ledger", "deployments"} <= set(tables)
