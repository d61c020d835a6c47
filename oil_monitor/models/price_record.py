# oil_monitor/models/price_record.py

"""Persisted daily snapshot as read back from the price history DB."""

from dataclasses import dataclass, field
from datetime import datetime

from oil_monitor.models.aggregate_summary import AggregateSummary
from oil_monitor.models.supplier_row import SupplierRow


@dataclass
class PriceRecord:
    """One stored scrape run."""

    id: int
    recorded_at: datetime
    summary: AggregateSummary
    daily_change: float | None = None
    daily_change_pct: float | None = None
    week_ago_price: float | None = None
    month_ago_price: float | None = None
    suppliers: list[SupplierRow] = field(
        default_factory=lambda: list[SupplierRow]()
    )
    scrape_duration_ms: int | None = None
    scrape_success: bool = True
    error_message: str | None = None

    def to_dict(self) -> dict[str, object]:
        """JSON-friendly form, keyed the way the history API returns it."""
        s = self.summary
        return {
            "id": self.id,
            "recordedAt": self.recorded_at.isoformat(),
            "avgPrice900L": s.avg_price_900l,
            "cheapestPrice900L": s.cheapest_price_900l,
            "cheapestSupplier": s.cheapest_supplier,
            "supplierCount": s.supplier_count,
            "avgPpl": s.avg_ppl,
            "cheapestPpl": s.cheapest_ppl,
            "dailyChange": self.daily_change,
            "dailyChangePct": self.daily_change_pct,
            "weekAgoPrice": self.week_ago_price,
            "monthAgoPrice": self.month_ago_price,
            "suppliersRaw": [r.to_dict() for r in self.suppliers],
            "scrapeDurationMs": self.scrape_duration_ms,
            "scrapeSuccess": self.scrape_success,
            "errorMessage": self.error_message,
        }
