# oil_monitor/services/price_monitor.py

"""Runs one scrape: fetch, extract, aggregate, compare, store, notify."""

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timedelta

from oil_monitor.config.settings import Settings
from oil_monitor.errors import (
    FetchError,
    NoDataError,
    NotificationError,
    PersistenceError,
)
from oil_monitor.models.aggregate_summary import AggregateSummary
from oil_monitor.models.supplier_row import SupplierRow
from oil_monitor.models.trend_result import TrendResult
from oil_monitor.notifications.email_notifier import (
    EmailContext,
    EmailNotifier,
    build_subject,
)
from oil_monitor.scrapers.cheapest_oil_parser import extract
from oil_monitor.scrapers.page_fetcher import PageFetcher
from oil_monitor.services.aggregator import aggregate
from oil_monitor.services.trend_calculator import compute_trend
from oil_monitor.storage.price_history_db import PriceHistoryDB

logger = logging.getLogger("oil_monitor.monitor")


@dataclass
class RunOutcome:
    """What the trigger surface reports back for one run."""

    ok: bool
    record_id: int | None = None
    email_log_id: int | None = None
    alert_triggered: bool = False
    error: str | None = None
    summary: AggregateSummary | None = None
    trend: TrendResult | None = None

    def to_dict(self) -> dict[str, object]:
        """Response body for the scrape endpoint."""
        if not self.ok:
            return {"error": self.error}
        return {
            "ok": True,
            "recordId": self.record_id,
            "emailLogId": self.email_log_id,
            "alertTriggered": self.alert_triggered,
        }


def cheapest_preview(
    rows: list[SupplierRow], limit: int,
) -> list[SupplierRow]:
    """Top *limit* rows by ascending 900L price, stable on ties."""
    return sorted(rows, key=lambda r: r.price_900l)[:limit]


class OilPriceMonitor:
    """Coordinates the extraction core with its collaborators."""

    def __init__(
        self,
        db: PriceHistoryDB,
        fetcher: PageFetcher | None = None,
        notifier: EmailNotifier | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.settings = settings or Settings()
        self.db = db
        self.fetcher = fetcher or PageFetcher(self.settings)
        self.notifier = notifier or EmailNotifier(self.settings)

    def run(self) -> RunOutcome:
        """Execute one scrape run.

        Fetch, no-data and persistence failures end the run with
        ``ok=False`` and no snapshot written.  Email failures are logged
        and recorded but leave the run successful.
        """
        started = time.monotonic()

        try:
            markup = self.fetcher.fetch(self.settings.TARGET_URL)
            rows = extract(markup)
            summary = aggregate(rows)
        except (FetchError, NoDataError) as exc:
            logger.error("Scrape failed: %s", exc)
            return RunOutcome(ok=False, error=str(exc))

        now = datetime.now()
        try:
            previous = self.db.get_latest_record()
            week_ago = self.db.get_avg_price_before(
                now - timedelta(days=self.settings.WEEK_AGO_DAYS)
            )
            month_ago = self.db.get_avg_price_before(
                now - timedelta(days=self.settings.MONTH_AGO_DAYS)
            )
        except PersistenceError as exc:
            logger.error("History lookup failed: %s", exc, exc_info=True)
            return RunOutcome(ok=False, error=str(exc))

        trend = compute_trend(
            summary,
            previous.summary if previous else None,
            self.settings.ALERT_DROP_PPL,
        )
        if trend.alert_triggered:
            logger.warning("Price alert: %s", trend.alert_reason)

        try:
            record_id = self.db.record_snapshot(
                summary,
                trend,
                rows,
                scrape_duration_ms=int(
                    (time.monotonic() - started) * 1000
                ),
                week_ago_price=week_ago,
                month_ago_price=month_ago,
                recorded_at=now,
            )
        except PersistenceError as exc:
            logger.error("Snapshot write failed: %s", exc, exc_info=True)
            return RunOutcome(ok=False, error=str(exc))

        email_log_id = self._notify(record_id, summary, trend, rows)

        return RunOutcome(
            ok=True,
            record_id=record_id,
            email_log_id=email_log_id,
            alert_triggered=trend.alert_triggered,
            summary=summary,
            trend=trend,
        )

    def _notify(
        self,
        record_id: int,
        summary: AggregateSummary,
        trend: TrendResult,
        rows: list[SupplierRow],
    ) -> int | None:
        """Send the daily email and log the attempt; returns the log id."""
        recipient = self.settings.EMAIL_TO
        if not recipient:
            logger.info("EMAIL_TO not set, skipping notification")
            return None

        ctx = EmailContext(
            to=recipient,
            summary=summary,
            trend=trend,
            suppliers_preview=cheapest_preview(
                rows, self.settings.EMAIL_PREVIEW_LIMIT,
            ),
        )
        subject = build_subject(summary)
        success = False
        error_message: str | None = None
        response_id: str | None = None
        try:
            result = self.notifier.send_daily_email(ctx)
            if result.skipped:
                return None
            success = result.success
            response_id = result.response_id
        except NotificationError as exc:
            logger.warning("Daily email not delivered: %s", exc)
            error_message = str(exc)

        try:
            return self.db.log_email(
                recipient=recipient,
                subject=subject,
                success=success,
                error_message=error_message,
                price_record_id=record_id,
                response_id=response_id,
            )
        except PersistenceError as exc:
            logger.error("Email log write failed: %s", exc)
            return None
