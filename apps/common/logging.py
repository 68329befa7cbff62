"""
Logging helpers for the promotions platform.

Services log with ``extra={"promotion_id": ..., "order_id": ...}``; the filter
below fills those attributes for every other record so one formatter can
render all of them.
"""

from __future__ import annotations

import logging
from typing import ClassVar


class LogContextFilter(logging.Filter):
    """
    Add default context attributes to log records.

    Records that already carry a value (passed through ``extra``) keep it.
    """

    CONTEXT_FIELDS: ClassVar[tuple[str, ...]] = ("promotion_id", "order_id", "actor")
    DEFAULT_VALUE = "-"

    def filter(self, record: logging.LogRecord) -> bool:
        for name in self.CONTEXT_FIELDS:
            if not hasattr(record, name):
                setattr(record, name, self.DEFAULT_VALUE)
        return True
