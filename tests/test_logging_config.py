"""
Tests for structured logging
"""

import io
import json
import logging

from boapay.logging_config import (
    JSONFormatter, correlation_context, get_correlation_id, log_action, mask_account_number
)


class TestLogging:
    """Test JSON output, masking and correlation ids"""

    def setup_method(self):
        """Set up a logger writing JSON into a buffer"""
        self.stream = io.StringIO()
        handler = logging.StreamHandler(self.stream)
        handler.setFormatter(JSONFormatter())
        self.logger = logging.getLogger("boapay.tests.logging")
        self.logger.handlers = [handler]
        self.logger.setLevel(logging.INFO)
        self.logger.propagate = False

    def _lines(self):
        return [json.loads(line) for line in self.stream.getvalue().splitlines()]

    def test_mask_account_number(self):
        assert mask_account_number("1000123456") == "******3456"
        assert mask_account_number("123") == "123"
        assert mask_account_number(None) is None

    def test_log_action_fields(self):
        log_action(
            self.logger, "info", "Transfer completed",
            user_id=3, action="transfer_funds", resource="account",
            extra={"from_account": "1000123456", "amount": "40.00", "password": "hunter22"}
        )

        entry = self._lines()[0]
        assert entry["message"] == "Transfer completed"
        assert entry["level"] == "INFO"
        assert entry["user_id"] == 3
        assert entry["action"] == "transfer_funds"
        assert entry["extra"] == {"from_account": "******3456", "amount": "40.00"}
        assert "correlation_id" not in entry

    def test_below_level_is_skipped(self):
        log_action(self.logger, "debug", "noise")
        assert self.stream.getvalue() == ""

    def test_correlation_context(self):
        with correlation_context("req-123"):
            assert get_correlation_id() == "req-123"
            self.logger.info("inside")
        self.logger.info("outside")

        inside, outside = self._lines()
        assert inside["correlation_id"] == "req-123"
        assert "correlation_id" not in outside
        assert get_correlation_id() is None

    def test_exception_is_included(self):
        try:
            raise ValueError("bad input")
        except ValueError:
            self.logger.exception("failed")

        assert "ValueError: bad input" in self._lines()[0]["exception"]
