from __future__ import annotations

from pathlib import Path  # noqa: TC003

import pytest

from conformity.config import ConfigurationError, get_database_config, get_storage_config
from conformity.config.storage import DEFAULT_DB_FILENAME


def test_get_storage_config_prefers_explicit_env(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    custom = tmp_path / "custom-data"
    monkeypatch.setenv("CONFORMITY_DATA_DIR", str(custom))

    config = get_storage_config()

    assert config.database_path(ensure=False) == custom.resolve() / DEFAULT_DB_FILENAME


def test_get_database_config_uses_env_override(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URI", "sqlite:///override.db")
    monkeypatch.delenv("CONFORMITY_DATABASE_ECHO", raising=False)

    config = get_database_config()

    assert config.uri == "sqlite:///override.db"
    assert config.echo is False


def test_get_database_config_creates_data_dir(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    monkeypatch.delenv("DATABASE_URI", raising=False)
    monkeypatch.setenv("CONFORMITY_DATA_DIR", str(tmp_path / "data-dir"))

    config = get_database_config()

    expected_path = (tmp_path / "data-dir" / DEFAULT_DB_FILENAME).resolve()
    assert config.uri == f"sqlite+pysqlite:///{expected_path}"
    assert expected_path.parent.exists()


def test_get_database_config_reads_echo_flag(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URI", "sqlite:///override.db")
    monkeypatch.setenv("CONFORMITY_DATABASE_ECHO", "yes")

    assert get_database_config().echo is True

    monkeypatch.setenv("CONFORMITY_DATABASE_ECHO", "sometimes")
    with pytest.raises(ConfigurationError):
        get_database_config()
