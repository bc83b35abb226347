"""
Log formatter that stamps every record with an ISO-8601 UTC timestamp.
"""

import logging
from datetime import datetime, timezone


class UTCTimestampFormatter(logging.Formatter):
    """
    Formatter prefixing each line with a UTC timestamp, e.g.
    ``2025-01-30T10:15:00.123Z INFO: backend.api.devices: Device created``.
    """

    def formatTime(self, record, datefmt=None):  # noqa: N802
        moment = datetime.fromtimestamp(record.created, tz=timezone.utc)
        if datefmt:
            return moment.strftime(datefmt)
        return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{int(record.msecs):03d}Z"

    def format(self, record):
        message = super().format(record)
        if "%(asctime)" in (self._fmt or ""):
            return message
        return f"{self.formatTime(record)} {message}"
