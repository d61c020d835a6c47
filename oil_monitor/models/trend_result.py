# oil_monitor/models/trend_result.py

"""Day-over-day comparison between two aggregate summaries."""

from dataclasses import dataclass


@dataclass(frozen=True)
class TrendResult:
    """Deltas against the previous snapshot and the alert decision."""

    daily_change: float | None = None
    daily_change_pct: float | None = None
    drop_ppl: float | None = None
    alert_triggered: bool = False
    alert_reason: str | None = None
