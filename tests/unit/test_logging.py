"""Unit tests for logging configuration."""

import logging

import pytest

from dvf_metrics.processing.metrics import run_metrics
from dvf_metrics.utils.logging import configure_logging, get_logger


class TestConfigureLogging:

    def test_sets_level(self):
        configure_logging("DEBUG")
        assert logging.getLogger().level == logging.DEBUG

    def test_json_output(self, capsys):
        configure_logging("INFO", json_output=True)
        get_logger("dvf_metrics.test").info("Metrics computed", transaction_count=3)

        err = capsys.readouterr().err
        assert '"transaction_count": 3' in err
        assert '"event": "Metrics computed"' in err

    def test_httpx_is_quieter(self):
        configure_logging("DEBUG")
        assert logging.getLogger("httpx").level == logging.WARNING

    def test_unknown_level(self):
        with pytest.raises(AttributeError):
            configure_logging("LOUD")

    def test_module_loggers_are_named(self, capsys):
        configure_logging("INFO", json_output=True)
        run_metrics([])

        err = capsys.readouterr().err
        assert '"logger": "dvf_metrics.processing.metrics"' in err
