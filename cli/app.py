from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Optional

import typer
from rich.table import Table

from livecharts.export import instance_frame
from livecharts.merge import MergeEngine
from livecharts.settings import ConfigurationError, load_config, resolve_log_level
from livecharts.variants import describe, load_variants

from .common import configure_logging, console, ensure_dir, envelope, iter_jsonl, summary_rows

LOGGER = logging.getLogger(__name__)

app = typer.Typer(help="livecharts command line interface")


def _load(config: Optional[Path]) -> dict:
    try:
        return load_config(config)
    except (FileNotFoundError, ConfigurationError) as exc:
        raise typer.BadParameter(str(exc), param_hint="--config") from exc


def _export_target(out: Path, chart_id: str, total: int) -> Path:
    if total == 1:
        return out
    safe_id = re.sub(r"[^\w.-]", "_", chart_id).strip(".") or "chart"
    return out.with_name(f"{out.stem}_{safe_id}{out.suffix}")


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug output")) -> None:
    configure_logging("cli", logging.DEBUG if verbose else logging.INFO)


@app.command("replay")
def replay(
    stream: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSONL file of mount/update entries"),
    variant: Optional[str] = typer.Option(None, help="Variant used for mounted charts"),
    config: Optional[Path] = typer.Option(None, help="Optional chart config override"),
    out: Optional[Path] = typer.Option(None, help="Write each chart to CSV or parquet"),
    strict: bool = typer.Option(False, "--strict", help="Exit with status 1 if any entry was dropped"),
) -> None:
    """Feed a recorded stream through the merge engine and summarise the charts."""
    cfg = _load(config)
    logging.getLogger().setLevel(resolve_log_level(cfg.get("log_level")))
    try:
        engine = MergeEngine.from_config(cfg)
        chart_variant = engine.resolve_variant(variant)
    except ConfigurationError as exc:
        raise typer.BadParameter(str(exc)) from exc

    invalid = 0
    for number, record in iter_jsonl(stream):
        event, payload = envelope(record)
        if event == "mount":
            engine.receive_bulk(payload, chart_variant)
        elif event == "update":
            engine.receive_update(payload)
        else:
            invalid += 1
            LOGGER.warning("Line %d of %s is not a mount/update entry", number, stream)

    table = Table(title=f"Charts replayed from {stream.name}")
    table.add_column("Chart")
    table.add_column("Title")
    table.add_column("Variant")
    table.add_column("Points")
    for chart_id in engine.store.ids():
        instance = engine.store.get(chart_id)
        if instance is None:
            continue
        points = {role: len(series) for role, series in instance.series.items()}
        table.add_row(instance.id, instance.title, instance.variant.name, summary_rows(points))
    console().print(table)

    stats = engine.stats
    dropped = stats.malformed + stats.unknown + invalid
    console().print(
        f"mounts={stats.bulk} updates={stats.updates} malformed={stats.malformed} "
        f"unknown={stats.unknown} invalid={invalid}"
    )

    if out is not None:
        ids = engine.store.ids()
        for chart_id in ids:
            instance = engine.store.get(chart_id)
            if instance is None:
                continue
            target = _export_target(out, chart_id, len(ids))
            frame = instance_frame(instance)
            ensure_dir(target)
            if target.suffix.lower() == ".parquet":
                frame.to_parquet(target)
            else:
                frame.to_csv(target)
            console().print(f"[green]{target}[/] ready with {len(frame)} rows")

    if strict and dropped:
        raise typer.Exit(code=1)


@app.command("variants")
def variants(config: Optional[Path] = typer.Option(None, help="Optional chart config override")) -> None:
    """List the chart variants known to this deployment."""
    cfg = _load(config)
    try:
        table_rows = describe(load_variants(cfg).values())
    except ConfigurationError as exc:
        raise typer.BadParameter(str(exc)) from exc
    table = Table(title="Chart variants")
    for column in ("Name", "Roles", "Bulk shape", "NaN placeholder", "Continuation"):
        table.add_column(column, no_wrap=column == "Name")
    for row in table_rows:
        table.add_row(
            row["name"],
            ", ".join(row["roles"]),
            row["bulk_shape"],
            "yes" if row["expected_placeholder"] else "no",
            row["continuation"],
        )
    console().print(table)


@app.command("serve")
def serve(
    host: str = typer.Option("127.0.0.1", "--host", "-h"),
    port: int = typer.Option(8090, "--port", "-p"),
    open_browser: bool = typer.Option(False, "--open/--no-open", help="Open browser automatically"),
    config: Optional[Path] = typer.Option(None, help="Optional chart config override"),
) -> None:
    """Start the live chart API."""
    from ui.server import start_ui

    cfg = _load(config)
    console().print(f"Starting live chart API on {host}:{port}")
    try:
        start_ui(host, port, open_browser=open_browser, config=cfg)
    except KeyboardInterrupt:
        console().print("Shutting down")


if __name__ == "__main__":
    app()
