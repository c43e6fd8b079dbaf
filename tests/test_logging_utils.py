from __future__ import annotations

import logging

from housing_models.logging_utils import configure_logging


def test_level_falls_back_to_environment(monkeypatch):
    monkeypatch.setenv("HOUSING_LOG_LEVEL", "warning")

    assert configure_logging() == "WARNING"
    assert configure_logging("debug") == "DEBUG"


def test_third_party_loggers_are_quieted_unless_debugging():
    configure_logging("INFO")
    assert logging.getLogger("mlflow").level == logging.WARNING
    assert logging.getLogger("matplotlib").level == logging.WARNING

    configure_logging("DEBUG")
    assert logging.getLogger("mlflow").level == logging.NOTSET
