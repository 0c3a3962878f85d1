# tests/test_logging.py
import json
import logging

from qubilab.logging import get_logger, setup_logging


def test_json_logs_carry_service_and_event(capsys):
    setup_logging(level="INFO", log_format="json")
    logging.getLogger("qubilab.test").info("plain stdlib record")
    out = capsys.readouterr().err.strip().splitlines()
    rec = json.loads(out[-1])
    assert rec["service"] == "qubilab"
    assert rec["event"] == "plain stdlib record"
    assert rec["level"] == "info"


def test_console_format_and_logger_factory():
    setup_logging(level="DEBUG", log_format="console")
    assert logging.getLogger().level == logging.DEBUG
    assert get_logger("qubilab.test") is not None
    setup_logging()
