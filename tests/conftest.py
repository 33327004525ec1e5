"""Shared pytest configuration and fixtures for livecharts."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Tuple

import pytest

from livecharts.merge import MergeEngine
from livecharts.store import ChartInstance
from livecharts.variants import BUILTIN_VARIANTS, ChartVariant

LOGS_ROOT = Path(__file__).resolve().parents[1] / "logs" / "tests"
SESSION_LOG = LOGS_ROOT / "pytest.session.log"
_MODULE_HANDLERS: Dict[str, logging.Handler] = {}


def _initialise_logging() -> None:
    LOGS_ROOT.mkdir(parents=True, exist_ok=True)
    (LOGS_ROOT / ".gitkeep").touch(exist_ok=True)

    handler = logging.FileHandler(SESSION_LOG, mode="w", encoding="utf-8")
    formatter = logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.setLevel(logging.INFO)
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)


def get_test_logger(module_name: str) -> logging.Logger:
    """Return a logger writing into ``logs/tests/<module>.log``."""
    normalised = module_name.replace("tests.", "")
    logger = logging.getLogger(f"tests.{normalised}")
    logger.setLevel(logging.INFO)
    if normalised not in _MODULE_HANDLERS:
        LOGS_ROOT.mkdir(parents=True, exist_ok=True)
        log_path = LOGS_ROOT / f"{normalised}.log"
        handler = logging.FileHandler(log_path, mode="a", encoding="utf-8")
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(message)s"))
        logger.addHandler(handler)
        _MODULE_HANDLERS[normalised] = handler
    return logger


@pytest.hookimpl(tryfirst=True)
def pytest_configure(config: pytest.Config) -> None:  # noqa: D401 - pytest hook
    _initialise_logging()


@pytest.hookimpl(hookwrapper=True)
def pytest_runtest_makereport(item: pytest.Item, call: pytest.CallInfo[None]) -> Iterable[pytest.TestReport]:
    outcome = yield
    report = outcome.get_result()
    if report.outcome != "failed":
        return
    module = getattr(item, "module", None)
    module_name = getattr(module, "__name__", "tests")
    target = LOGS_ROOT / f"{module_name.split('.')[-1]}.log"
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("a", encoding="utf-8") as handle:
        handle.write("\n=== TEST FAILURE ===\n")
        handle.write(f"nodeid: {item.nodeid}\n")
        handle.write(f"phase: {report.when}\n")
        handle.write(str(report.longrepr))
        handle.write("\n")


@pytest.fixture(scope="session")
def project_root() -> Path:
    return Path(__file__).resolve().parents[1]


class RecordingRenderer:
    """Renderer double counting redraw calls per chart."""

    def __init__(self) -> None:
        self.calls: List[str] = []

    def redraw(self, instance: ChartInstance) -> None:
        self.calls.append(instance.id)

    def count(self, chart_id: str) -> int:
        return self.calls.count(chart_id)


@pytest.fixture
def renderer() -> RecordingRenderer:
    return RecordingRenderer()


@pytest.fixture
def reported() -> List[Tuple[str, Exception, Any]]:
    return []


@pytest.fixture
def engine(renderer: RecordingRenderer, reported: List[Tuple[str, Exception, Any]]) -> MergeEngine:
    return MergeEngine(
        renderer=renderer,
        variants=BUILTIN_VARIANTS,
        on_error=lambda kind, exc, raw: reported.append((kind, exc, raw)),
    )


@pytest.fixture
def heating_variant() -> ChartVariant:
    return BUILTIN_VARIANTS["heating"]


@pytest.fixture(autouse=True)
def clear_config_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("LIVECHARTS_CONFIG", raising=False)


__all__ = [
    "RecordingRenderer",
    "get_test_logger",
]
