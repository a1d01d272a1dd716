from __future__ import annotations

from pathlib import Path

import pytest

from policy_ledger.core import config as app_config


def test_get_required_env_loads_from_local_env_file(monkeypatch, tmp_path: Path) -> None:
    env_file = tmp_path / ".env.local"
    env_file.write_text("LEDGER_DB_KEY='db-from-file'\n", encoding="utf-8")

    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("LEDGER_DB_KEY", raising=False)
    monkeypatch.setattr(app_config, "_RUNTIME_ENV_LOADED", False)
    monkeypatch.setattr(app_config, "_iter_env_candidates", lambda: [env_file])

    assert app_config.get_required_env("LEDGER_DB_KEY") == "db-from-file"


def test_get_required_env_bootstraps_db_key(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("LEDGER_DB_KEY", raising=False)
    monkeypatch.setattr(app_config, "_RUNTIME_ENV_LOADED", False)
    monkeypatch.setattr(app_config, "_runtime_root", lambda: tmp_path)
    monkeypatch.setattr(app_config, "_iter_env_candidates", lambda: [])

    db_key = app_config.get_required_env("LEDGER_DB_KEY")

    runtime_env = tmp_path / "config" / "runtime.env"
    assert runtime_env.exists()
    assert "LEDGER_DB_KEY='" in runtime_env.read_text(encoding="utf-8")
    assert db_key


def test_bootstrap_refuses_when_database_exists_without_key_file(monkeypatch, tmp_path: Path) -> None:
    db_file = tmp_path / "existing.db"
    db_file.write_bytes(b"")
    monkeypatch.delenv("LEDGER_DB_KEY", raising=False)
    monkeypatch.setattr(app_config, "_RUNTIME_ENV_LOADED", False)
    monkeypatch.setattr(app_config, "_runtime_root", lambda: tmp_path)
    monkeypatch.setattr(app_config, "_iter_env_candidates", lambda: [])

    with pytest.raises(RuntimeError):
        app_config.get_required_env("LEDGER_DB_KEY", str(db_file))


def test_missing_non_key_env_raises(monkeypatch) -> None:
    monkeypatch.delenv("LEDGER_SOMETHING_ELSE", raising=False)
    monkeypatch.setattr(app_config, "_RUNTIME_ENV_LOADED", True)

    with pytest.raises(RuntimeError):
        app_config.get_required_env("LEDGER_SOMETHING_ELSE")


def test_load_config_reads_yaml_with_defaults(tmp_path: Path) -> None:
    config_file = tmp_path / "ledger.yaml"
    config_file.write_text(
        "db:\n  path: data/x.db\n  allow_sqlite_fallback: true\nidentifiers:\n  max_attempts: 3\n",
        encoding="utf-8",
    )

    config = app_config.load_config(config_file)

    assert config.database.path == "data/x.db"
    assert config.database.key_env == "LEDGER_DB_KEY"
    assert config.database.allow_sqlite_fallback is True
    assert config.identifiers.max_attempts == 3
    assert config.identifiers.width == 4
    assert config.pagination.default_limit == 10
    assert config.logging.level == "INFO"


def test_config_path_from_environment(monkeypatch, tmp_path: Path) -> None:
    target = tmp_path / "custom.yaml"
    monkeypatch.setenv("LEDGER_CONFIG_PATH", str(target))

    assert app_config.resolve_default_config_path() == target
