# oil_monitor/models/aggregate_summary.py

"""Statistical rollup over one scrape's supplier rows."""

from dataclasses import dataclass


@dataclass(frozen=True)
class AggregateSummary:
    """Averages and minimums over a non-empty set of supplier rows.

    ``cheapest_ppl`` is its own minimum and need not belong to
    ``cheapest_supplier``.
    """

    avg_price_900l: float
    cheapest_price_900l: float
    cheapest_supplier: str
    supplier_count: int
    avg_ppl: float
    cheapest_ppl: float
