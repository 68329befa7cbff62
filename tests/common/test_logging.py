"""
Tests for logging helpers.
"""

import logging

from django.test import SimpleTestCase

from apps.common.logging import LogContextFilter


class LogContextFilterTests(SimpleTestCase):
    """Tests for LogContextFilter."""

    def _record(self, **extra):
        record = logging.LogRecord("apps.promotions", logging.INFO, __file__, 1, "message", (), None)
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_missing_context_gets_placeholder(self):
        record = self._record()
        self.assertTrue(LogContextFilter().filter(record))
        self.assertEqual(record.promotion_id, "-")
        self.assertEqual(record.order_id, "-")
        self.assertEqual(record.actor, "-")

    def test_existing_context_is_kept(self):
        record = self._record(promotion_id="abc", order_id="ORD-1")
        LogContextFilter().filter(record)
        self.assertEqual(record.promotion_id, "abc")
        self.assertEqual(record.order_id, "ORD-1")
