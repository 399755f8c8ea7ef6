"""Unit tests for correlation IDs and structured log helpers."""

import logging

import pytest

from stripe_checkout.utils.logging import (
    StructuredFormatter,
    clear_correlation_id,
    get_correlation_id,
    get_logger,
    log_payment_operation,
    log_webhook_event,
    set_correlation_id,
)


@pytest.fixture(autouse=True)
def _clear_correlation() -> None:
    clear_correlation_id()


class TestCorrelationId:
    def test_set_and_get(self):
        assert set_correlation_id("abc-123") == "abc-123"
        assert get_correlation_id() == "abc-123"

    def test_generated_when_missing(self):
        cid = set_correlation_id()
        assert cid
        assert get_correlation_id() == cid

    def test_formatter_prefixes_correlation_id(self):
        set_correlation_id("req-1")
        record = logging.LogRecord("test", logging.INFO, __file__, 1, "hello", None, None)

        assert StructuredFormatter("%(message)s").format(record) == "[req-1] hello"


class TestLogHelpers:
    def test_payment_operation_error_logged_at_error(self, caplog: pytest.LogCaptureFixture):
        logger = get_logger("test.payments")

        with caplog.at_level(logging.INFO, logger="test.payments"):
            log_payment_operation(
                logger,
                "Stripe - CapturePayment",
                order_reference="o:1",
                error="declined",
            )

        assert caplog.records[-1].levelno == logging.ERROR
        assert "order_reference=o:1" in caplog.records[-1].getMessage()

    @pytest.mark.parametrize(
        ("result", "level"),
        [
            ("accepted", logging.INFO),
            ("no_outcome", logging.WARNING),
            ("fetch_failed", logging.ERROR),
        ],
    )
    def test_webhook_event_level(self, caplog: pytest.LogCaptureFixture, result: str, level: int):
        logger = get_logger("test.webhooks")

        with caplog.at_level(logging.INFO, logger="test.webhooks"):
            log_webhook_event(logger, "review.closed", "evt_1", result=result)

        assert caplog.records[-1].levelno == level
        assert f"result={result}" in caplog.records[-1].getMessage()
