"""
Settings loaded from environment variables (+ optional .env file).

Variables (all optional):

    WEEKTRACK_DATA_DIR      base directory             (default: ~/.weektrack)
    WEEKTRACK_STORAGE_PATH  JSON file with all data    (default: <data_dir>/tracker.json)
    WEEKTRACK_LOG_DIR       where weektrack.log goes   (default: <data_dir>)
    WEEKTRACK_LOG_LEVEL     console log level          (default: WARNING)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "WEEKTRACK"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None or v.strip() == "" else v.strip()


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw.strip()).expanduser()


def _log_level(raw: str) -> int:
    level = logging.getLevelName(raw.upper())
    return level if isinstance(level, int) else logging.WARNING


@dataclass(frozen=True)
class Settings:
    data_dir: Path
    storage_path: Path
    log_dir: Path
    log_level: int

    @staticmethod
    def from_env() -> "Settings":
        data_dir = _env_path(_k("DATA_DIR"), Path.home() / ".weektrack")
        return Settings(
            data_dir=data_dir,
            storage_path=_env_path(_k("STORAGE_PATH"), data_dir / "tracker.json"),
            log_dir=_env_path(_k("LOG_DIR"), data_dir),
            log_level=_log_level(_env(_k("LOG_LEVEL"), "WARNING")),
        )


def get_settings() -> Settings:
    """
    Read settings fresh from the environment.

    A .env file in the working directory is loaded first; variables that
    are already set win over it.
    """
    load_dotenv(override=False)
    return Settings.from_env()
