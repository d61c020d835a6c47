# oil_monitor/cli/runner.py

"""Headless CLI: one-off scrape and snapshot history."""

import logging

from rich.console import Console
from rich.table import Table

from oil_monitor.config.settings import Settings
from oil_monitor.errors import PersistenceError
from oil_monitor.models.price_record import PriceRecord
from oil_monitor.services.history_limit import parse_limit
from oil_monitor.services.price_monitor import OilPriceMonitor, RunOutcome
from oil_monitor.storage.price_history_db import PriceHistoryDB

logger = logging.getLogger("oil_monitor.cli")

# Stderr console for status messages so stdout stays clean for tables
_err = Console(stderr=True)


def _fmt_change(value: float | None, suffix: str = "") -> str:
    if value is None:
        return "-"
    colour = "green" if value < 0 else "red" if value > 0 else "white"
    return f"[{colour}]{value:+.2f}{suffix}[/{colour}]"


def _print_outcome(outcome: RunOutcome) -> None:
    """Render a one-run summary table."""
    summary = outcome.summary
    trend = outcome.trend
    if summary is None or trend is None:
        return

    table = Table(
        title="Heating Oil Daily",
        show_header=False,
        title_style="bold cyan",
    )
    table.add_column("Field", style="bold")
    table.add_column("Value", justify="right")
    table.add_row(
        "Cheapest 900L",
        f"£{summary.cheapest_price_900l:,.2f} ({summary.cheapest_supplier})",
    )
    table.add_row("Average 900L", f"£{summary.avg_price_900l:,.2f}")
    table.add_row("Average ppl", f"{summary.avg_ppl:.2f}")
    table.add_row("Cheapest ppl", f"{summary.cheapest_ppl:.2f}")
    table.add_row("Suppliers", str(summary.supplier_count))
    table.add_row("Change vs prev", _fmt_change(trend.daily_change))
    table.add_row("Change %", _fmt_change(trend.daily_change_pct, "%"))
    table.add_row(
        "Alert",
        f"[bold green]{trend.alert_reason}[/bold green]"
        if trend.alert_triggered
        else "no",
    )
    Console().print(table)


def run_scrape() -> int:
    """Run one scrape and return an exit code (0=ok, 1=fail)."""
    settings = Settings()
    db = PriceHistoryDB(settings.PRICE_DB_PATH)
    try:
        _err.print(f"[bold]Scraping:[/bold] {settings.TARGET_URL}")
        outcome = OilPriceMonitor(db, settings=settings).run()
    finally:
        db.close()

    if not outcome.ok:
        _err.print(f"[red]Scrape failed: {outcome.error}[/red]")
        return 1

    _err.print(
        f"[green]✓ Snapshot {outcome.record_id} recorded[/green]"
    )
    _print_outcome(outcome)
    return 0


def _print_history(records: list[PriceRecord]) -> None:
    table = Table(
        title="Recent Snapshots",
        show_lines=False,
        title_style="bold cyan",
    )
    table.add_column("Recorded", style="dim")
    table.add_column("Cheapest 900L", justify="right", style="green")
    table.add_column("Supplier", style="magenta")
    table.add_column("Avg 900L", justify="right")
    table.add_column("Avg ppl", justify="right")
    table.add_column("Change", justify="right")
    table.add_column("#", justify="right", style="dim")

    for r in records:
        s = r.summary
        table.add_row(
            r.recorded_at.strftime("%Y-%m-%d %H:%M"),
            f"£{s.cheapest_price_900l:,.2f}",
            s.cheapest_supplier,
            f"£{s.avg_price_900l:,.2f}",
            f"{s.avg_ppl:.2f}",
            _fmt_change(r.daily_change),
            str(s.supplier_count),
        )
    Console().print(table)


def run_history(limit: int | None = None) -> int:
    """Print the most recent snapshots."""
    settings = Settings()
    n = parse_limit(
        limit, settings.HISTORY_DEFAULT_LIMIT, settings.HISTORY_MAX_LIMIT,
    )
    db = PriceHistoryDB(settings.PRICE_DB_PATH)
    try:
        records = db.get_recent_records(n)
    except PersistenceError as exc:
        logger.error("History read failed: %s", exc)
        _err.print(f"[red]Could not read history: {exc}[/red]")
        return 1
    finally:
        db.close()

    if not records:
        _err.print("[yellow]No snapshots recorded yet.[/yellow]")
        return 0
    _print_history(records)
    return 0
