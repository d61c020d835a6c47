# oil_monitor/scrapers/cheapest_oil_parser.py

"""Supplier row extraction for the CheapestOil NI listing page.

Extraction runs in two stages:

1. :func:`locate_supplier_blocks` finds every distributor link and the
   nearest enclosing ``tr`` / ``li`` / ``div``, yielding the link text
   and that block's flattened text.
2. :func:`parse_supplier_text` pulls price, ppl, postcode and update
   fields out of the block text with fixed regular expressions.

:func:`extract` chains the two and never raises on an empty page.
"""

import logging
import math
import re
from collections.abc import Iterator

from bs4 import BeautifulSoup

from oil_monitor.models.supplier_row import SupplierRow

logger = logging.getLogger("oil_monitor.parser")

SUPPLIER_LINK_SELECTOR = 'a[href^="/distributors/"]'
BLOCK_TAGS: list[str] = ["tr", "li", "div"]

_PRICE_RE = re.compile(r"£\s*(\d+(?:\.\d+)?)")
_PPL_RE = re.compile(r"(\d+(?:\.\d+)?)\s*ppl")
_UPDATED_RE = re.compile(r"Updated[^\n]*", re.IGNORECASE)
_POSTCODE_RE = re.compile(r"BT\S[^\n]*")


def locate_supplier_blocks(
    soup: BeautifulSoup,
) -> Iterator[tuple[str, str]]:
    """Yield ``(supplier_name, block_text)`` in document order.

    Links without an enclosing block, or whose trimmed text is empty,
    are skipped.
    """
    for link in soup.select(SUPPLIER_LINK_SELECTOR):
        block = link.find_parent(BLOCK_TAGS)
        name = link.get_text().strip()
        if block is None or not name:
            logger.debug(
                "Skipping distributor link %s (no block or name)",
                link.get("href"),
            )
            continue
        yield name, block.get_text()


def _parse_number(match: re.Match[str] | None) -> float | None:
    """Return the first group as a finite float, else None."""
    if match is None:
        return None
    try:
        value = float(match.group(1))
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def _first_line(pattern: re.Pattern[str], text: str) -> str:
    match = pattern.search(text)
    return match.group(0).strip() if match else ""


def parse_supplier_text(name: str, text: str) -> SupplierRow | None:
    """Build a row from one block's text, or None without price and ppl."""
    price_900l = _parse_number(_PRICE_RE.search(text))
    ppl = _parse_number(_PPL_RE.search(text))
    if price_900l is None or ppl is None:
        logger.debug(
            "Dropping supplier '%s': price=%s ppl=%s",
            name,
            price_900l,
            ppl,
        )
        return None

    return SupplierRow(
        name=name,
        price_900l=price_900l,
        ppl=ppl,
        postcodes=_first_line(_POSTCODE_RE, text),
        updated=_first_line(_UPDATED_RE, text),
    )


def extract(markup: str) -> list[SupplierRow]:
    """Parse listing markup into supplier rows, preserving page order."""
    soup = BeautifulSoup(markup, "lxml")
    rows: list[SupplierRow] = []
    candidates = 0
    for name, text in locate_supplier_blocks(soup):
        candidates += 1
        row = parse_supplier_text(name, text)
        if row is not None:
            rows.append(row)

    logger.info(
        "Extracted %d supplier rows from %d candidates",
        len(rows),
        candidates,
    )
    return rows
