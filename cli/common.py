from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterator, Tuple

from rich.console import Console

from . import APP_ROOT

_CONSOLE = Console()
LOG_DIR = APP_ROOT / "logs" / "cli"


def console() -> Console:
    return _CONSOLE


def ensure_dir(path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


def configure_logging(name: str, level: int = logging.INFO) -> None:
    LOG_DIR.mkdir(parents=True, exist_ok=True)
    log_path = LOG_DIR / f"{name}.log"
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.FileHandler(log_path, encoding="utf-8"),
            logging.StreamHandler(),
        ],
    )


def iter_jsonl(path: Path) -> Iterator[Tuple[int, Any]]:
    """Yield ``(line_number, record)``; undecodable lines yield the raw text."""
    with path.open("r", encoding="utf-8") as handle:
        for number, raw_line in enumerate(handle, start=1):
            line = raw_line.strip()
            if not line or line.startswith("#"):
                continue
            try:
                yield number, json.loads(line)
            except json.JSONDecodeError:
                yield number, line


def envelope(record: Any) -> Tuple[str, Any]:
    """Split a recorded stream entry into ``(event, payload)``."""
    if not isinstance(record, dict):
        return "invalid", record
    event = record.get("event")
    if event not in {"mount", "update"}:
        return "invalid", record
    return event, record.get("payload")


def summary_rows(points: Dict[str, int]) -> str:
    return ", ".join(f"{role}={count}" for role, count in points.items())
