# tests/test_price_monitor.py

"""Tests for the end-to-end scrape run."""

import tempfile
import unittest
from datetime import datetime, timedelta
from pathlib import Path
from unittest.mock import MagicMock, patch

from oil_monitor.config.settings import Settings
from oil_monitor.errors import FetchError, NotificationError, PersistenceError
from oil_monitor.models.aggregate_summary import AggregateSummary
from oil_monitor.models.supplier_row import SupplierRow
from oil_monitor.models.trend_result import TrendResult
from oil_monitor.notifications.email_notifier import EmailNotifier, EmailResult
from oil_monitor.services.price_monitor import (
    OilPriceMonitor,
    RunOutcome,
    cheapest_preview,
)
from oil_monitor.storage.price_history_db import PriceHistoryDB


def _page(*suppliers: tuple[str, float, float]) -> str:
    """Render a minimal listing page for the given suppliers."""
    rows = "".join(
        f"<tr><td><a href='/distributors/{i}'>{name}</a></td>"
        f"<td>\n£{price:.2f}\n</td><td>\n{ppl:.2f}ppl\n</td></tr>"
        for i, (name, price, ppl) in enumerate(suppliers)
    )
    return f"<html><body><table>{rows}</table></body></html>"


PAGE_DAY_ONE = _page(
    ("Acme", 324.0, 36.0),
    ("Best", 320.0, 35.5),
    ("Cosy", 330.0, 36.5),
)
PAGE_DAY_TWO = _page(
    ("Acme", 270.0, 30.0),
    ("Best", 268.0, 29.5),
    ("Cosy", 275.0, 30.5),
)
PAGE_SMALL_DROP = _page(
    ("Acme", 297.0, 33.0),
    ("Best", 295.0, 32.5),
    ("Cosy", 300.0, 33.5),
)


class TestOilPriceMonitor(unittest.TestCase):
    """Runs against a real temp DB with fetch and email mocked."""

    def setUp(self) -> None:
        self.tmp_dir = tempfile.mkdtemp()
        self.db = PriceHistoryDB(db_path=Path(self.tmp_dir) / "oil.db")
        self.settings = Settings()
        self.settings.EMAIL_TO = "me@example.com"
        self.settings.ALERT_DROP_PPL = 5.0
        self.fetcher = MagicMock()
        self.notifier = MagicMock()
        self.notifier.send_daily_email.return_value = EmailResult(
            success=True, response_id="msg_1",
        )
        self.monitor = OilPriceMonitor(
            self.db,
            fetcher=self.fetcher,
            notifier=self.notifier,
            settings=self.settings,
        )

    def tearDown(self) -> None:
        self.db.close()

    def _run(self, page: str) -> RunOutcome:
        self.fetcher.fetch.return_value = page
        return self.monitor.run()

    def test_first_run_records_snapshot(self) -> None:
        """First run succeeds with no deltas and no alert."""
        outcome = self._run(PAGE_DAY_ONE)

        self.assertTrue(outcome.ok)
        self.assertIsNotNone(outcome.record_id)
        self.assertFalse(outcome.alert_triggered)

        latest = self.db.get_latest_record()
        assert latest is not None
        self.assertEqual(latest.id, outcome.record_id)
        self.assertEqual(latest.summary.cheapest_supplier, "Best")
        self.assertEqual(latest.summary.supplier_count, 3)
        self.assertIsNone(latest.daily_change)
        self.assertEqual(len(latest.suppliers), 3)
        self.assertIsNotNone(latest.scrape_duration_ms)

    def test_fetches_configured_target(self) -> None:
        """The monitor asks the fetcher for TARGET_URL."""
        self._run(PAGE_DAY_ONE)
        self.fetcher.fetch.assert_called_once_with(self.settings.TARGET_URL)

    def test_second_run_big_drop_alerts(self) -> None:
        """A 6p average drop triggers the alert and is emailed."""
        self._run(PAGE_DAY_ONE)
        outcome = self._run(PAGE_DAY_TWO)

        self.assertTrue(outcome.ok)
        self.assertTrue(outcome.alert_triggered)
        assert outcome.trend is not None
        self.assertAlmostEqual(outcome.trend.drop_ppl or 0.0, 6.0)
        self.assertAlmostEqual(
            outcome.trend.daily_change or 0.0, -53.667, places=2,
        )

        ctx = self.notifier.send_daily_email.call_args.args[0]
        self.assertTrue(ctx.trend.alert_triggered)
        self.assertEqual(
            ctx.trend.alert_reason, "Avg ppl dropped by 6.00p vs previous",
        )

    def test_second_run_small_drop_no_alert(self) -> None:
        """A 3p drop records deltas but raises no alert."""
        self._run(PAGE_DAY_ONE)
        outcome = self._run(PAGE_SMALL_DROP)

        self.assertTrue(outcome.ok)
        self.assertFalse(outcome.alert_triggered)
        latest = self.db.get_latest_record()
        assert latest is not None
        self.assertAlmostEqual(latest.daily_change or 0.0, -27.333, places=2)

    def test_fetch_error_writes_nothing(self) -> None:
        """A failed fetch fails the run without a snapshot."""
        self.fetcher.fetch.side_effect = FetchError("HTTP 503")
        outcome = self.monitor.run()

        self.assertFalse(outcome.ok)
        self.assertEqual(outcome.error, "HTTP 503")
        self.assertIsNone(self.db.get_latest_record())
        self.notifier.send_daily_email.assert_not_called()

    def test_no_suppliers_writes_nothing(self) -> None:
        """A page without valid rows fails with the no-data error."""
        outcome = self._run("<html><body><p>Maintenance</p></body></html>")

        self.assertFalse(outcome.ok)
        self.assertEqual(outcome.error, "No suppliers parsed")
        self.assertIsNone(self.db.get_latest_record())

    def test_persistence_error_fails_run(self) -> None:
        """Snapshot write failures fail the run before notifying."""
        db = MagicMock()
        db.get_latest_record.return_value = None
        db.get_avg_price_before.return_value = None
        db.record_snapshot.side_effect = PersistenceError("disk full")
        monitor = OilPriceMonitor(
            db, fetcher=self.fetcher, notifier=self.notifier,
            settings=self.settings,
        )
        self.fetcher.fetch.return_value = PAGE_DAY_ONE

        outcome = monitor.run()

        self.assertFalse(outcome.ok)
        self.assertEqual(outcome.error, "disk full")
        self.notifier.send_daily_email.assert_not_called()

    def test_email_logged_on_success(self) -> None:
        """A delivered email is logged against the snapshot."""
        outcome = self._run(PAGE_DAY_ONE)
        assert outcome.record_id is not None

        self.assertIsNotNone(outcome.email_log_id)
        logs = self.db.get_email_logs(outcome.record_id)
        self.assertEqual(len(logs), 1)
        self.assertTrue(logs[0]["success"])
        self.assertEqual(logs[0]["response_id"], "msg_1")
        self.assertEqual(logs[0]["recipient"], "me@example.com")
        self.assertEqual(
            logs[0]["subject"], "Heating Oil Daily: £320.00 (cheapest)",
        )

    def test_notification_error_is_not_fatal(self) -> None:
        """Delivery failures are logged but the run still succeeds."""
        self.notifier.send_daily_email.side_effect = NotificationError(
            "Missing RESEND_API_KEY",
        )
        outcome = self._run(PAGE_DAY_ONE)
        assert outcome.record_id is not None

        self.assertTrue(outcome.ok)
        logs = self.db.get_email_logs(outcome.record_id)
        self.assertEqual(len(logs), 1)
        self.assertFalse(logs[0]["success"])
        self.assertEqual(logs[0]["error_message"], "Missing RESEND_API_KEY")

    @patch("oil_monitor.notifications.email_notifier.curl_requests.Session")
    def test_unreadable_provider_reply_is_not_fatal(
        self, mock_session_cls: MagicMock,
    ) -> None:
        """A 200 with a non-JSON body is logged as a failed delivery."""
        mock_resp = MagicMock()
        mock_resp.status_code = 200
        mock_resp.json.side_effect = ValueError("Expecting value")
        mock_session_cls.return_value.post.return_value = mock_resp
        self.settings.EMAIL_ENABLED = True
        self.settings.RESEND_API_KEY = "re_test"
        monitor = OilPriceMonitor(
            self.db,
            fetcher=self.fetcher,
            notifier=EmailNotifier(self.settings),
            settings=self.settings,
        )
        self.fetcher.fetch.return_value = PAGE_DAY_ONE

        outcome = monitor.run()
        assert outcome.record_id is not None

        self.assertTrue(outcome.ok)
        self.assertIsNotNone(outcome.email_log_id)
        logs = self.db.get_email_logs(outcome.record_id)
        self.assertEqual(len(logs), 1)
        self.assertFalse(logs[0]["success"])
        self.assertIn("unreadable", logs[0]["error_message"])

    def test_history_read_failure_fails_run(self) -> None:
        """A failed lookup of earlier snapshots ends the run cleanly."""
        self.db.close()

        outcome = self._run(PAGE_DAY_ONE)

        self.assertFalse(outcome.ok)
        self.assertIsNone(outcome.record_id)
        self.assertIn("closed", outcome.error or "")
        self.notifier.send_daily_email.assert_not_called()

    def test_skipped_email_not_logged(self) -> None:
        """Disabled email leaves no log entry."""
        self.notifier.send_daily_email.return_value = EmailResult(
            success=True, skipped=True,
        )
        outcome = self._run(PAGE_DAY_ONE)

        self.assertTrue(outcome.ok)
        self.assertIsNone(outcome.email_log_id)

    def test_no_recipient_skips_notification(self) -> None:
        """Without EMAIL_TO nothing is sent."""
        self.settings.EMAIL_TO = ""
        outcome = self._run(PAGE_DAY_ONE)

        self.assertTrue(outcome.ok)
        self.assertIsNone(outcome.email_log_id)
        self.notifier.send_daily_email.assert_not_called()

    def test_preview_is_cheapest_first_and_limited(self) -> None:
        """The email gets the N cheapest suppliers only."""
        self.settings.EMAIL_PREVIEW_LIMIT = 2
        self._run(PAGE_DAY_ONE)

        ctx = self.notifier.send_daily_email.call_args.args[0]
        self.assertEqual(
            [s.name for s in ctx.suppliers_preview], ["Best", "Acme"],
        )

    def test_raw_rows_keep_page_order(self) -> None:
        """Sorting the preview does not reorder the stored rows."""
        self._run(PAGE_DAY_ONE)
        latest = self.db.get_latest_record()
        assert latest is not None
        self.assertEqual(
            [s.name for s in latest.suppliers], ["Acme", "Best", "Cosy"],
        )

    def test_week_and_month_ago_prices(self) -> None:
        """Older snapshots fill in week/month-ago comparison prices."""
        old = AggregateSummary(
            avg_price_900l=350.0,
            cheapest_price_900l=340.0,
            cheapest_supplier="Old",
            supplier_count=1,
            avg_ppl=39.0,
            cheapest_ppl=38.0,
        )
        self.db.record_snapshot(
            old, TrendResult(), [],
            recorded_at=datetime.now() - timedelta(days=40),
        )
        self._run(PAGE_DAY_ONE)

        latest = self.db.get_latest_record()
        assert latest is not None
        self.assertEqual(latest.week_ago_price, 350.0)
        self.assertEqual(latest.month_ago_price, 350.0)


class TestHelpers(unittest.TestCase):
    """Small pure helpers."""

    def test_cheapest_preview_stable_on_ties(self) -> None:
        """Equal prices keep their page order."""
        rows = [
            SupplierRow("A", 310.0, 34.4),
            SupplierRow("B", 305.0, 33.9),
            SupplierRow("C", 305.0, 33.9),
        ]
        self.assertEqual(
            [r.name for r in cheapest_preview(rows, 5)], ["B", "C", "A"],
        )

    def test_outcome_to_dict(self) -> None:
        """Success and failure bodies match the endpoint contract."""
        ok = RunOutcome(ok=True, record_id=7, email_log_id=None)
        self.assertEqual(
            ok.to_dict(),
            {
                "ok": True,
                "recordId": 7,
                "emailLogId": None,
                "alertTriggered": False,
            },
        )
        self.assertEqual(
            RunOutcome(ok=False, error="boom").to_dict(), {"error": "boom"},
        )


if __name__ == "__main__":
    unittest.main()
