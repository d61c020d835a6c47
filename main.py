# main.py

"""Entry point for the oil price monitor (one-off scrape, history, API)."""

import argparse
import logging
import sys
from pathlib import Path

from oil_monitor.config.logging_config import setup_logging
from oil_monitor.config.settings import Settings

logger = logging.getLogger("oil_monitor.main")


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="oil_monitor",
        description="Northern Ireland heating oil price monitor.",
        epilog=f"Source page: {Settings.TARGET_URL}",
    )
    parser.add_argument(
        "--history",
        action="store_true",
        default=False,
        help="Show recent snapshots instead of scraping.",
    )
    parser.add_argument(
        "-n",
        "--limit",
        type=int,
        default=None,
        help=(
            f"Snapshots to show with --history "
            f"(default {Settings.HISTORY_DEFAULT_LIMIT}, "
            f"max {Settings.HISTORY_MAX_LIMIT})."
        ),
    )
    parser.add_argument(
        "--db",
        default=None,
        dest="db_path",
        help="Custom SQLite database path (default: data/oil_prices.db).",
    )
    parser.add_argument(
        "--serve",
        action="store_true",
        default=False,
        help="Run the HTTP trigger/history API.",
    )
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    return parser


def _run_server(host: str, port: int) -> None:
    """Serve the FastAPI app with uvicorn."""
    import uvicorn

    from oil_monitor.api.app import create_app

    try:
        uvicorn.run(create_app(), host=host, port=port)
    except Exception:
        logger.critical("Fatal error while serving API", exc_info=True)
        raise
    finally:
        logger.info("oil_monitor API shutting down")


def _run_scrape() -> None:
    """Run a single scrape and exit."""
    from oil_monitor.cli.runner import run_scrape

    sys.exit(run_scrape())


def _run_history(limit: int | None) -> None:
    """Print recent snapshots and exit."""
    from oil_monitor.cli.runner import run_history

    sys.exit(run_history(limit))


def main() -> None:
    """Route to scrape (default), history, or API server."""
    parser = _build_parser()
    args = parser.parse_args()

    if args.db_path is not None:
        Settings.PRICE_DB_PATH = Path(args.db_path)

    if args.serve:
        log_file = setup_logging("serve", extra_loggers=("uvicorn",))
    elif args.history:
        log_file = setup_logging("history")
    else:
        log_file = setup_logging("scrape")
    logger.debug("Log file: %s", log_file)

    if args.serve:
        _run_server(args.host, args.port)
    elif args.history:
        _run_history(args.limit)
    else:
        _run_scrape()


if __name__ == "__main__":
    main()
