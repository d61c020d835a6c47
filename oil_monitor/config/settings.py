# oil_monitor/config/settings.py

"""Central configuration for the oil price monitor."""

import os
from pathlib import Path

from curl_cffi.requests import BrowserTypeLiteral
from dotenv import load_dotenv

load_dotenv()


def _env_float(name: str, default: float) -> float:
    """Read a float from the environment, ignoring unparsable values."""
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


class Settings:
    """Central configuration for the oil price monitor."""

    # --- Source ---
    TARGET_URL: str = os.getenv(
        "OIL_TARGET_URL",
        "https://www.cheapestoil.co.uk/Heating-Oil-NI",
    )

    # --- Fetching ---
    REQUEST_DELAY: float = 2.0          # Base backoff between retries (secs)
    REQUEST_TIMEOUT: int = 10           # Seconds before a request times out
    MAX_RETRIES: int = 3                # Retry count on transient failures
    MAX_DELAY_MULTIPLIER: int = 8       # Cap for adaptive backoff
    IMPERSONATE_BROWSER: BrowserTypeLiteral = "chrome131"
    USER_AGENT: str = "OilPriceMonitor/0.1"
    DEFAULT_HEADERS: dict[str, str] = {
        "Accept": (
            "text/html,application/xhtml+xml,"
            "application/xml;q=0.9,*/*;q=0.8"
        ),
        "Accept-Language": "en-GB,en;q=0.9",
    }

    # --- Trend / alerting ---
    ALERT_DROP_PPL: float = _env_float("ALERT_DROP_PPL", 5.0)
    EMAIL_PREVIEW_LIMIT: int = 5        # Cheapest suppliers shown in email
    WEEK_AGO_DAYS: int = 7
    MONTH_AGO_DAYS: int = 30

    # --- History endpoint ---
    HISTORY_DEFAULT_LIMIT: int = 30
    HISTORY_MAX_LIMIT: int = 90

    # --- Access control ---
    CRON_SECRET_TOKEN: str = os.getenv("CRON_SECRET_TOKEN", "")

    # --- Email (Resend) ---
    EMAIL_ENABLED: bool = os.getenv("EMAIL_ENABLED", "true") != "false"
    RESEND_API_KEY: str = os.getenv("RESEND_API_KEY", "")
    RESEND_API_URL: str = "https://api.resend.com/emails"
    EMAIL_FROM: str = os.getenv("EMAIL_FROM", "oil-monitor@localhost")
    EMAIL_TO: str = os.getenv("EMAIL_TO", "")
    EMAIL_TIMEOUT: int = 30

    # --- Paths ---
    BASE_DIR: Path = Path(__file__).resolve().parent.parent.parent
    PRICE_DB_PATH: Path = Path(
        os.getenv(
            "OIL_PRICE_DB",
            str(BASE_DIR / "data" / "oil_prices.db"),
        )
    )
    LOGS_DIR: Path = BASE_DIR / "logs"

    # --- Logging ---
    LOG_CONSOLE_LEVEL: str = os.getenv("OIL_LOG_LEVEL", "WARNING").upper()
