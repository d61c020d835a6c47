# oil_monitor/errors.py

"""Exception taxonomy for a scrape run."""


class OilMonitorError(Exception):
    """Base class for all oil_monitor failures."""


class FetchError(OilMonitorError):
    """The price page could not be retrieved."""


class NoDataError(OilMonitorError):
    """Extraction produced zero valid supplier rows."""


class PersistenceError(OilMonitorError):
    """A snapshot or email log could not be written."""


class NotificationError(OilMonitorError):
    """The daily email could not be delivered.

    Never fatal to a run: the snapshot is already stored by the time
    delivery is attempted.
    """
