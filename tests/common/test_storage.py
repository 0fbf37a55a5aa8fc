from __future__ import annotations

from pathlib import Path  # noqa: TC003

import pytest  # noqa: TC002

from soulsmith.config import storage


def test_storage_config_prefers_explicit_env(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    custom = tmp_path / "custom-data"
    monkeypatch.setenv("SOULSMITH_DATA_DIR", str(custom))

    result = storage.get_storage_config().resolve_data_dir()

    assert result == custom.resolve()


def test_storage_config_falls_back_to_xdg_data_home(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    monkeypatch.delenv("SOULSMITH_DATA_DIR", raising=False)
    monkeypatch.setattr(storage.os, "name", "posix")
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path))

    result = storage.get_storage_config().resolve_data_dir()

    assert result == (tmp_path / storage.APP_DIR_NAME).resolve()


def test_database_uri_uses_env_override(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URI", "postgresql+psycopg://souls@db/souls")

    database = storage.get_database_config()

    assert database.uri == "postgresql+psycopg://souls@db/souls"
    assert not database.is_sqlite


def test_database_uri_creates_data_dir(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.delenv("DATABASE_URI", raising=False)
    monkeypatch.setenv("SOULSMITH_DATA_DIR", str(tmp_path / "data-dir"))

    database = storage.get_database_config()

    expected_path = (tmp_path / "data-dir" / storage.DEFAULT_DB_FILENAME).resolve()
    assert database.uri == f"sqlite+pysqlite:///{expected_path}"
    assert database.is_sqlite
    assert expected_path.parent.exists()
