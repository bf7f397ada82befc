from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Mapping
import logging
import os

from firestore_reader.paths import DEFAULT_DATABASE_ID


DEFAULT_TIMEOUT_SEC = 30.0
DEFAULT_LOG_LEVEL = "INFO"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class SettingsError(ValueError):
    """Raised when settings values are invalid."""


@dataclass(frozen=True)
class AppSettings:
    firestore_project_id: str
    firestore_database_id: str
    firestore_emulator_host: str
    credentials_path: str
    timeout_sec: float
    max_pages: int | None
    log_level: str

    @property
    def log_level_value(self) -> int:
        return getattr(logging, self.log_level)


def _read_dotenv(dotenv_path: Path) -> dict[str, str]:
    values: dict[str, str] = {}
    if not dotenv_path.exists():
        return values

    for raw_line in dotenv_path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip("'").strip('"')
        if key:
            values[key] = value
    return values


def _get_str(values: Mapping[str, str], key: str, default: str) -> str:
    value = values.get(key, default).strip()
    if not value:
        raise SettingsError(f"{key} must not be empty.")
    return value


def _get_optional_str(values: Mapping[str, str], key: str) -> str:
    return values.get(key, "").strip()


def _get_float(values: Mapping[str, str], key: str, default: float) -> float:
    raw_value = values.get(key)
    if raw_value is None or raw_value.strip() == "":
        return default
    try:
        value = float(raw_value)
    except ValueError as exc:
        raise SettingsError(f"{key} must be number: {raw_value}") from exc
    if value <= 0:
        raise SettingsError(f"{key} must be > 0: {value}")
    return value


def _get_page_limit(values: Mapping[str, str], key: str) -> int | None:
    raw_value = values.get(key)
    if raw_value is None or raw_value.strip() == "":
        return None
    try:
        value = int(raw_value)
    except ValueError as exc:
        raise SettingsError(f"{key} must be integer: {raw_value}") from exc
    if value < 0:
        raise SettingsError(f"{key} must be >= 0: {value}")
    # 0 means unlimited.
    return value or None


def load_settings(
    *,
    env: Mapping[str, str] | None = None,
    dotenv_path: str | Path = ".env",
) -> AppSettings:
    """Load settings from .env and environment variables.

    Priority: OS environment > .env > default.
    """

    env_values = dict(env) if env is not None else dict(os.environ)
    dotenv_values = _read_dotenv(Path(dotenv_path))
    merged: dict[str, str] = {**dotenv_values, **env_values}

    log_level = _get_str(merged, "LOG_LEVEL", DEFAULT_LOG_LEVEL).upper()
    if log_level not in LOG_LEVELS:
        raise SettingsError(f"LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}: {log_level}")

    return AppSettings(
        firestore_project_id=_get_optional_str(merged, "FIRESTORE_PROJECT_ID"),
        firestore_database_id=_get_str(merged, "FIRESTORE_DATABASE_ID", DEFAULT_DATABASE_ID),
        firestore_emulator_host=_get_optional_str(merged, "FIRESTORE_EMULATOR_HOST"),
        credentials_path=_get_optional_str(merged, "GOOGLE_APPLICATION_CREDENTIALS"),
        timeout_sec=_get_float(merged, "FIRESTORE_TIMEOUT_SEC", DEFAULT_TIMEOUT_SEC),
        max_pages=_get_page_limit(merged, "FIRESTORE_MAX_PAGES"),
        log_level=log_level,
    )
