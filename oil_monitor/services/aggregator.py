# oil_monitor/services/aggregator.py

"""Summary statistics over one scrape's supplier rows."""

import logging
from collections.abc import Sequence

from oil_monitor.errors import NoDataError
from oil_monitor.models.aggregate_summary import AggregateSummary
from oil_monitor.models.supplier_row import SupplierRow

logger = logging.getLogger("oil_monitor.aggregator")


def aggregate(rows: Sequence[SupplierRow]) -> AggregateSummary:
    """Reduce rows to averages and minimums in one pass.

    Tie-break rule: the cheapest supplier is replaced only on a strictly
    lower ``price_900l``, so among equal prices the row extracted first
    wins.  ``cheapest_ppl`` is a separate minimum over every row.

    Raises:
        NoDataError: if *rows* is empty.
    """
    if not rows:
        raise NoDataError("No suppliers parsed")

    cheapest = rows[0]
    cheapest_ppl = rows[0].ppl
    total_price = 0.0
    total_ppl = 0.0

    for row in rows:
        total_price += row.price_900l
        total_ppl += row.ppl
        if row.price_900l < cheapest.price_900l:
            cheapest = row
        if row.ppl < cheapest_ppl:
            cheapest_ppl = row.ppl

    count = len(rows)
    summary = AggregateSummary(
        avg_price_900l=total_price / count,
        cheapest_price_900l=cheapest.price_900l,
        cheapest_supplier=cheapest.name,
        supplier_count=count,
        avg_ppl=total_ppl / count,
        cheapest_ppl=cheapest_ppl,
    )
    logger.info(
        "Aggregated %d suppliers: cheapest %s at %.2f, avg %.2f",
        count,
        summary.cheapest_supplier,
        summary.cheapest_price_900l,
        summary.avg_price_900l,
    )
    return summary
