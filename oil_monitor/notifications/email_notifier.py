# oil_monitor/notifications/email_notifier.py

"""Daily summary email delivered through the Resend HTTP API."""

import html
import logging
from dataclasses import dataclass, field

from curl_cffi import requests as curl_requests

from oil_monitor.config.settings import Settings
from oil_monitor.errors import NotificationError
from oil_monitor.models.aggregate_summary import AggregateSummary
from oil_monitor.models.supplier_row import SupplierRow
from oil_monitor.models.trend_result import TrendResult

logger = logging.getLogger("oil_monitor.email")

_CELL = 'style="padding:6px 8px;border-bottom:1px solid #eee;"'
_HEAD = 'align="left" style="padding:6px 8px;border-bottom:2px solid #222;"'


@dataclass
class EmailContext:
    """Everything the daily email needs from one run."""

    to: str
    summary: AggregateSummary
    trend: TrendResult
    suppliers_preview: list[SupplierRow] = field(
        default_factory=lambda: list[SupplierRow]()
    )


@dataclass
class EmailResult:
    """Outcome of a delivery attempt that did not raise."""

    success: bool
    skipped: bool = False
    response_id: str | None = None


def build_subject(summary: AggregateSummary) -> str:
    """Subject line leading with the cheapest 900L price."""
    return (
        f"Heating Oil Daily: £{summary.cheapest_price_900l:.2f} (cheapest)"
    )


def _supplier_rows_html(suppliers: list[SupplierRow]) -> str:
    return "\n".join(
        "<tr>"
        f"<td {_CELL}>{html.escape(s.name)}</td>"
        f"<td {_CELL}>£{s.price_900l:.2f}</td>"
        f"<td {_CELL}>{s.ppl:.2f} ppl</td>"
        f"<td {_CELL}>{html.escape(s.updated)}</td>"
        "</tr>"
        for s in suppliers
    )


def build_html(ctx: EmailContext) -> str:
    """Render the summary body: alert, headline prices, trend, preview."""
    summary = ctx.summary
    trend = ctx.trend

    if trend.daily_change is not None and trend.daily_change_pct is not None:
        trend_line = (
            f"Change vs prev: £{trend.daily_change:.2f} "
            f"({trend.daily_change_pct:.2f}%)"
        )
    elif trend.daily_change is not None:
        trend_line = f"Change vs prev: £{trend.daily_change:.2f}"
    else:
        trend_line = "First run; no previous comparison."

    alert_line = ""
    if trend.alert_triggered and trend.alert_reason:
        alert_line = (
            '<p style="color:#16a34a;font-weight:600">'
            f"Alert: {html.escape(trend.alert_reason)}</p>"
        )

    return f"""
    <div style="font-family:Arial, sans-serif;">
      <h2>Heating Oil Daily</h2>
      {alert_line}
      <p><strong>Cheapest:</strong> £{summary.cheapest_price_900l:.2f} ({html.escape(summary.cheapest_supplier)})</p>
      <p><strong>Average 900L:</strong> £{summary.avg_price_900l:.2f} | <strong>Avg ppl:</strong> {summary.avg_ppl:.2f}</p>
      <p>{trend_line}</p>
      <table cellpadding="0" cellspacing="0" style="border-collapse:collapse;min-width:400px;margin-top:12px;">
        <thead>
          <tr>
            <th {_HEAD}>Supplier</th>
            <th {_HEAD}>900L</th>
            <th {_HEAD}>ppl</th>
            <th {_HEAD}>Updated</th>
          </tr>
        </thead>
        <tbody>
          {_supplier_rows_html(ctx.suppliers_preview)}
        </tbody>
      </table>
    </div>
    """


class EmailNotifier:
    """Send the daily summary through Resend."""

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or Settings()
        self.session = curl_requests.Session()

    def send_daily_email(self, ctx: EmailContext) -> EmailResult:
        """Deliver the summary email.

        Returns a skipped result when email is disabled.

        Raises:
            NotificationError: on missing API key or a failed request.
        """
        if not self.settings.EMAIL_ENABLED:
            logger.info("Email sending disabled via EMAIL_ENABLED=false")
            return EmailResult(success=True, skipped=True)

        if not self.settings.RESEND_API_KEY:
            raise NotificationError("Missing RESEND_API_KEY")

        payload = {
            "from": self.settings.EMAIL_FROM,
            "to": [ctx.to],
            "subject": build_subject(ctx.summary),
            "html": build_html(ctx),
        }
        try:
            resp = self.session.post(
                self.settings.RESEND_API_URL,
                headers={
                    "Authorization": f"Bearer {self.settings.RESEND_API_KEY}",
                    "Content-Type": "application/json",
                },
                json=payload,
                timeout=self.settings.EMAIL_TIMEOUT,
            )
        except Exception as exc:
            raise NotificationError(f"Email send failed: {exc}") from exc

        if resp.status_code != 200:
            raise NotificationError(
                f"Resend returned HTTP {resp.status_code}: {resp.text[:200]}"
            )

        try:
            data = resp.json()
        except ValueError as exc:
            raise NotificationError(
                f"Resend returned an unreadable body: {exc}"
            ) from exc
        if not isinstance(data, dict):
            raise NotificationError(
                f"Resend returned unexpected JSON: {type(data).__name__}"
            )
        response_id = data.get("id")
        logger.info("Email sent to %s (id=%s)", ctx.to, response_id)
        return EmailResult(
            success=True,
            response_id=str(response_id) if response_id else None,
        )
