"""Tests for the structlog setup."""

import json

import pytest
import structlog

from tillflow import configure_logging, get_logger


@pytest.fixture
def reset_structlog():
    yield
    structlog.reset_defaults()


class TestConfigureLogging:
    def test_json_lines(self, capsys, reset_structlog):
        configure_logging("debug")

        get_logger("tillflow.test").info("checkout.transition", order_ref="ord_1", target="CONFIRMED")

        record = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
        assert record["event"] == "checkout.transition"
        assert record["level"] == "info"
        assert record["order_ref"] == "ord_1"
        assert record["logger"] == "tillflow.test"
        assert "timestamp" in record

    def test_level_filter(self, capsys, reset_structlog):
        configure_logging("warning")

        get_logger("tillflow.test").info("payment.dispatch")

        assert capsys.readouterr().out == ""
