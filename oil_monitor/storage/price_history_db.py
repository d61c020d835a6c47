# oil_monitor/storage/price_history_db.py

"""SQLite-backed store for daily oil price snapshots and email logs."""

import json
import logging
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any

from oil_monitor.config.settings import Settings
from oil_monitor.errors import PersistenceError
from oil_monitor.models.aggregate_summary import AggregateSummary
from oil_monitor.models.price_record import PriceRecord
from oil_monitor.models.supplier_row import SupplierRow
from oil_monitor.models.trend_result import TrendResult

logger = logging.getLogger("oil_monitor.price_history")

_SCHEMA = """\
CREATE TABLE IF NOT EXISTS oil_prices (
    id                  INTEGER PRIMARY KEY AUTOINCREMENT,
    recorded_at         TEXT    NOT NULL,
    avg_price_900l      REAL    NOT NULL,
    cheapest_price_900l REAL    NOT NULL,
    cheapest_supplier   TEXT    NOT NULL,
    supplier_count      INTEGER NOT NULL,
    avg_ppl             REAL    NOT NULL,
    cheapest_ppl        REAL    NOT NULL,
    daily_change        REAL,
    daily_change_pct    REAL,
    week_ago_price      REAL,
    month_ago_price     REAL,
    suppliers_raw       TEXT    NOT NULL,
    scrape_duration_ms  INTEGER,
    scrape_success      INTEGER NOT NULL DEFAULT 1,
    error_message       TEXT
);

CREATE INDEX IF NOT EXISTS idx_oil_prices_recorded_at
    ON oil_prices(recorded_at);

CREATE TABLE IF NOT EXISTS email_logs (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    sent_at         TEXT    NOT NULL,
    recipient       TEXT    NOT NULL,
    subject         TEXT    NOT NULL,
    success         INTEGER NOT NULL,
    error_message   TEXT,
    price_record_id INTEGER
                    REFERENCES oil_prices(id) ON DELETE SET NULL,
    response_id     TEXT
);
"""

_RECORD_COLUMNS = (
    "id, recorded_at, avg_price_900l, cheapest_price_900l, "
    "cheapest_supplier, supplier_count, avg_ppl, cheapest_ppl, "
    "daily_change, daily_change_pct, week_ago_price, month_ago_price, "
    "suppliers_raw, scrape_duration_ms, scrape_success, error_message"
)


def _row_to_record(r: tuple[Any, ...]) -> PriceRecord:
    """Map an ``oil_prices`` row (in _RECORD_COLUMNS order) to a record."""
    raw: object = json.loads(r[12]) if r[12] else []
    suppliers = [
        SupplierRow.from_dict(item)
        for item in (raw if isinstance(raw, list) else [])
        if isinstance(item, dict)
    ]
    return PriceRecord(
        id=r[0],
        recorded_at=datetime.fromisoformat(r[1]),
        summary=AggregateSummary(
            avg_price_900l=r[2],
            cheapest_price_900l=r[3],
            cheapest_supplier=r[4],
            supplier_count=r[5],
            avg_ppl=r[6],
            cheapest_ppl=r[7],
        ),
        daily_change=r[8],
        daily_change_pct=r[9],
        week_ago_price=r[10],
        month_ago_price=r[11],
        suppliers=suppliers,
        scrape_duration_ms=r[13],
        scrape_success=bool(r[14]),
        error_message=r[15],
    )


class PriceHistoryDB:
    """SQLite-backed store for oil price snapshots."""

    def __init__(
        self, db_path: Path | None = None,
    ) -> None:
        path = db_path or Settings.PRICE_DB_PATH
        path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(
            str(path), check_same_thread=False,
        )
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA foreign_keys=ON")
        self._conn.executescript(_SCHEMA)
        logger.debug("PriceHistoryDB opened at %s", path)

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    # ── Recording ────────────────────────────────────────

    def record_snapshot(
        self,
        summary: AggregateSummary,
        trend: TrendResult,
        suppliers: list[SupplierRow],
        scrape_duration_ms: int | None = None,
        week_ago_price: float | None = None,
        month_ago_price: float | None = None,
        recorded_at: datetime | None = None,
    ) -> int:
        """Insert one successful scrape run and return its id.

        Raises:
            PersistenceError: if the insert fails.
        """
        ts = (recorded_at or datetime.now()).isoformat()
        suppliers_raw = json.dumps(
            [r.to_dict() for r in suppliers], ensure_ascii=False,
        )
        try:
            with self._conn:
                cur = self._conn.execute(
                    "INSERT INTO oil_prices ("
                    "recorded_at, avg_price_900l, cheapest_price_900l, "
                    "cheapest_supplier, supplier_count, avg_ppl, "
                    "cheapest_ppl, daily_change, daily_change_pct, "
                    "week_ago_price, month_ago_price, suppliers_raw, "
                    "scrape_duration_ms, scrape_success) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, 1)",
                    (
                        ts,
                        summary.avg_price_900l,
                        summary.cheapest_price_900l,
                        summary.cheapest_supplier,
                        summary.supplier_count,
                        summary.avg_ppl,
                        summary.cheapest_ppl,
                        trend.daily_change,
                        trend.daily_change_pct,
                        week_ago_price,
                        month_ago_price,
                        suppliers_raw,
                        scrape_duration_ms,
                    ),
                )
        except sqlite3.Error as exc:
            raise PersistenceError(
                f"Failed to record snapshot: {exc}"
            ) from exc

        record_id = cur.lastrowid
        if record_id is None:
            raise PersistenceError("Snapshot insert returned no id")
        logger.info(
            "Recorded snapshot %d at %s (%d suppliers)",
            record_id,
            ts,
            summary.supplier_count,
        )
        return record_id

    def log_email(
        self,
        recipient: str,
        subject: str,
        success: bool,
        error_message: str | None = None,
        price_record_id: int | None = None,
        response_id: str | None = None,
        sent_at: datetime | None = None,
    ) -> int:
        """Insert an email delivery attempt and return its id."""
        ts = (sent_at or datetime.now()).isoformat()
        try:
            with self._conn:
                cur = self._conn.execute(
                    "INSERT INTO email_logs (sent_at, recipient, subject, "
                    "success, error_message, price_record_id, response_id) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?)",
                    (
                        ts,
                        recipient,
                        subject,
                        int(success),
                        error_message,
                        price_record_id,
                        response_id,
                    ),
                )
        except sqlite3.Error as exc:
            raise PersistenceError(
                f"Failed to log email: {exc}"
            ) from exc
        log_id = cur.lastrowid
        if log_id is None:
            raise PersistenceError("Email log insert returned no id")
        return log_id

    # ── Querying ─────────────────────────────────────────

    def get_latest_record(self) -> PriceRecord | None:
        """Return the most recently recorded snapshot, if any."""
        try:
            row = self._conn.execute(
                f"SELECT {_RECORD_COLUMNS} FROM oil_prices "
                "ORDER BY recorded_at DESC, id DESC LIMIT 1",
            ).fetchone()
        except sqlite3.Error as exc:
            raise PersistenceError(
                f"Failed to read latest snapshot: {exc}"
            ) from exc
        return _row_to_record(row) if row else None

    def get_recent_records(self, limit: int) -> list[PriceRecord]:
        """Return up to *limit* snapshots, newest first."""
        try:
            rows = self._conn.execute(
                f"SELECT {_RECORD_COLUMNS} FROM oil_prices "
                "ORDER BY recorded_at DESC, id DESC LIMIT ?",
                (limit,),
            ).fetchall()
        except sqlite3.Error as exc:
            raise PersistenceError(
                f"Failed to read snapshot history: {exc}"
            ) from exc
        return [_row_to_record(r) for r in rows]

    def get_avg_price_before(self, when: datetime) -> float | None:
        """Average 900L price of the latest snapshot at or before *when*."""
        try:
            row = self._conn.execute(
                "SELECT avg_price_900l FROM oil_prices "
                "WHERE recorded_at <= ? "
                "ORDER BY recorded_at DESC, id DESC LIMIT 1",
                (when.isoformat(),),
            ).fetchone()
        except sqlite3.Error as exc:
            raise PersistenceError(
                f"Failed to read price before {when:%Y-%m-%d}: {exc}"
            ) from exc
        return row[0] if row else None

    def get_email_logs(
        self, price_record_id: int,
    ) -> list[dict[str, object]]:
        """Return delivery attempts linked to one snapshot."""
        try:
            rows = self._conn.execute(
                "SELECT id, sent_at, recipient, subject, success, "
                "       error_message, response_id "
                "FROM email_logs WHERE price_record_id = ? "
                "ORDER BY id",
                (price_record_id,),
            ).fetchall()
        except sqlite3.Error as exc:
            raise PersistenceError(
                f"Failed to read email logs: {exc}"
            ) from exc
        return [
            {
                "id": r[0],
                "sent_at": r[1],
                "recipient": r[2],
                "subject": r[3],
                "success": bool(r[4]),
                "error_message": r[5],
                "response_id": r[6],
            }
            for r in rows
        ]
