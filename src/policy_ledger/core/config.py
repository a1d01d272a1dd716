"""Configuration loader for database, logging, and ledger settings."""

from __future__ import annotations

import os
import secrets
import sys
from dataclasses import dataclass
from pathlib import Path

import yaml


@dataclass(frozen=True)
class DatabaseConfig:
    path: str
    key_env: str
    allow_sqlite_fallback: bool


@dataclass(frozen=True)
class LoggingConfig:
    level: str
    format: str


@dataclass(frozen=True)
class IdentifierConfig:
    width: int
    max_attempts: int


@dataclass(frozen=True)
class PaginationConfig:
    default_limit: int
    max_limit: int


@dataclass(frozen=True)
class ServerConfig:
    host: str
    port: int


@dataclass(frozen=True)
class AppConfig:
    database: DatabaseConfig
    logging: LoggingConfig
    identifiers: IdentifierConfig
    pagination: PaginationConfig
    server: ServerConfig


DEFAULT_CONFIG_REL_PATH = Path("config/ledger.yaml")
DEFAULT_DB_KEY_ENV = "LEDGER_DB_KEY"
RUNTIME_ENV_REL_PATH = Path("config/runtime.env")
_RUNTIME_ENV_LOADED = False


def _split_key_value(raw_line: str) -> tuple[str, str] | None:
    """Parse a shell-style KEY=VALUE line."""
    line = raw_line.strip()
    if not line or line.startswith("#"):
        return None

    if line.startswith("export "):
        line = line[len("export ") :]

    if "=" not in line:
        return None

    key, value = line.split("=", 1)
    key = key.strip()
    value = value.strip()
    if not key:
        return None

    if (value.startswith("'") and value.endswith("'")) or (
        value.startswith('"') and value.endswith('"')
    ):
        value = value[1:-1]

    return key, value


def _runtime_root() -> Path:
    """Return the repository root, or the executable folder when frozen."""
    if getattr(sys, "frozen", False):
        return Path(sys.executable).resolve().parent
    return Path(__file__).resolve().parents[3]


def _iter_env_candidates() -> list[Path]:
    """Return candidate files that may hold the database key."""
    paths: list[Path] = []
    for root in (Path.cwd(), _runtime_root()):
        paths.extend([root / ".env.local", root / RUNTIME_ENV_REL_PATH])

    unique: list[Path] = []
    seen: set[Path] = set()
    for path in paths:
        resolved = path.resolve()
        if resolved in seen:
            continue
        seen.add(resolved)
        unique.append(resolved)
    return unique


def _load_env_from_file(path: Path) -> None:
    """Load KEY=VALUE lines into the process environment without overriding."""
    if not path.exists() or not path.is_file():
        return
    with path.open("r", encoding="utf-8") as file:
        for line in file:
            parsed = _split_key_value(line)
            if not parsed:
                continue
            key, value = parsed
            if key not in os.environ:
                os.environ[key] = value


def _ensure_runtime_env_loaded() -> None:
    """Load local env files once per process."""
    global _RUNTIME_ENV_LOADED
    if _RUNTIME_ENV_LOADED:
        return
    for path in _iter_env_candidates():
        _load_env_from_file(path)
    _RUNTIME_ENV_LOADED = True


def _bootstrap_db_key_if_needed(db_path: str | None = None) -> None:
    """Generate and persist a database key on first run."""
    if os.getenv(DEFAULT_DB_KEY_ENV):
        return

    runtime_env = _runtime_root() / RUNTIME_ENV_REL_PATH
    if db_path and Path(db_path).exists() and not runtime_env.exists():
        raise RuntimeError(
            "Runtime key file is missing while database file exists. "
            f"Restore the key file or set {DEFAULT_DB_KEY_ENV}."
        )

    db_key = secrets.token_urlsafe(48)
    os.environ[DEFAULT_DB_KEY_ENV] = db_key
    runtime_env.parent.mkdir(parents=True, exist_ok=True)
    runtime_env.write_text(f"{DEFAULT_DB_KEY_ENV}='{db_key}'\n", encoding="utf-8")


def resolve_default_config_path() -> Path:
    """Resolve the configuration file for source and packaged execution."""
    env_path = os.getenv("LEDGER_CONFIG_PATH")
    if env_path:
        return Path(env_path)

    candidates = [
        Path.cwd() / DEFAULT_CONFIG_REL_PATH,
        _runtime_root() / DEFAULT_CONFIG_REL_PATH,
    ]
    for candidate in candidates:
        if candidate.exists():
            return candidate
    return candidates[0]


def load_config(config_path: Path | None = None) -> AppConfig:
    """Load the app configuration from YAML."""
    path = config_path or resolve_default_config_path()
    with path.open("r", encoding="utf-8") as file:
        raw = yaml.safe_load(file) or {}

    db = raw["db"]
    log = raw.get("logging", {})
    ids = raw.get("identifiers", {})
    paging = raw.get("pagination", {})
    server = raw.get("server", {})

    return AppConfig(
        database=DatabaseConfig(
            path=str(db["path"]),
            key_env=str(db.get("key_env", DEFAULT_DB_KEY_ENV)),
            allow_sqlite_fallback=bool(db.get("allow_sqlite_fallback", False)),
        ),
        logging=LoggingConfig(
            level=str(log.get("level", "INFO")),
            format=str(log.get("format", "standard")),
        ),
        identifiers=IdentifierConfig(
            width=int(ids.get("width", 4)),
            max_attempts=int(ids.get("max_attempts", 5)),
        ),
        pagination=PaginationConfig(
            default_limit=int(paging.get("default_limit", 10)),
            max_limit=int(paging.get("max_limit", 100)),
        ),
        server=ServerConfig(
            host=str(server.get("host", "127.0.0.1")),
            port=int(server.get("port", 8000)),
        ),
    )


def get_required_env(name: str, db_path: str | None = None) -> str:
    """Return a required environment variable or raise a clear error."""
    _ensure_runtime_env_loaded()
    if name == DEFAULT_DB_KEY_ENV:
        _bootstrap_db_key_if_needed(db_path)
    value = os.getenv(name)
    if not value:
        raise RuntimeError(f"Required environment variable is missing: {name}")
    return value
