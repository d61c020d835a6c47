# oil_monitor/services/history_limit.py

"""Bounds for how many snapshots a history query may return."""


def parse_limit(raw: str | int | None, default: int, maximum: int) -> int:
    """Parse a requested history size, capped at *maximum*.

    Missing, non-numeric and non-positive values fall back to *default*.
    """
    try:
        value = int(raw) if raw is not None else default
    except ValueError:
        value = default
    if value < 1:
        value = default
    return min(value, maximum)
