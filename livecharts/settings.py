"""Centralised settings and logging for the livecharts service."""
from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parents[1]
LOG_DIR = BASE_DIR / "logs"
LOG_FILE = LOG_DIR / "livecharts.log"
DEFAULT_CONFIG_PATH = BASE_DIR / "config" / "charts.yaml"
CONFIG_ENV_VAR = "LIVECHARTS_CONFIG"
DEFAULT_VARIANT = "heating"


class ConfigurationError(RuntimeError):
    """Raised when the chart configuration is invalid."""


def setup_logging(level: int = logging.INFO) -> None:
    """Configure a rotating file logger plus console echo."""
    LOG_DIR.mkdir(parents=True, exist_ok=True)

    handler = RotatingFileHandler(
        LOG_FILE,
        maxBytes=1_000_000,
        backupCount=3,
        encoding="utf-8",
    )
    console_handler = logging.StreamHandler()
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        handlers=[handler, console_handler],
        force=True,
    )


def resolve_log_level(value: Any) -> int:
    if isinstance(value, int):
        return value
    if value is None:
        return logging.INFO
    level = logging.getLevelName(str(value).upper())
    if not isinstance(level, int):
        raise ConfigurationError(f"Unknown log level '{value}'")
    return level


def load_config(path: Optional[Path | str] = None) -> Dict[str, Any]:
    """Read the YAML chart configuration.

    An explicit ``path`` (or one named by ``LIVECHARTS_CONFIG``) must exist.
    When neither is given and the bundled default is missing, an empty
    mapping is returned so built-in variants still apply.
    """
    load_dotenv()
    explicit = path or os.environ.get(CONFIG_ENV_VAR)
    cfg_path = Path(explicit) if explicit else DEFAULT_CONFIG_PATH
    if not cfg_path.exists():
        if explicit:
            raise FileNotFoundError(f"Chart config not found at {cfg_path}")
        return {}
    with cfg_path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Chart config {cfg_path} must be a mapping")
    return data
