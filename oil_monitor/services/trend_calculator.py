# oil_monitor/services/trend_calculator.py

"""Day-over-day deltas and the ppl-drop alert."""

from oil_monitor.models.aggregate_summary import AggregateSummary
from oil_monitor.models.trend_result import TrendResult

DEFAULT_ALERT_DROP_PPL = 5.0


def compute_trend(
    current: AggregateSummary,
    previous: AggregateSummary | None,
    alert_threshold_ppl: float = DEFAULT_ALERT_DROP_PPL,
) -> TrendResult:
    """Compare *current* with the previous snapshot's summary.

    Without a previous snapshot every delta is None and no alert fires.
    The percentage change is left as None when the previous average
    900L price is zero.
    """
    if previous is None:
        return TrendResult()

    daily_change = current.avg_price_900l - previous.avg_price_900l
    daily_change_pct = (
        daily_change / previous.avg_price_900l * 100
        if previous.avg_price_900l
        else None
    )

    drop_ppl = previous.avg_ppl - current.avg_ppl
    alert_triggered = drop_ppl >= alert_threshold_ppl
    alert_reason = (
        f"Avg ppl dropped by {drop_ppl:.2f}p vs previous"
        if alert_triggered
        else None
    )

    return TrendResult(
        daily_change=daily_change,
        daily_change_pct=daily_change_pct,
        drop_ppl=drop_ppl,
        alert_triggered=alert_triggered,
        alert_reason=alert_reason,
    )
