import json
import logging

import pytest

from discverify import logging_cfg
from discverify.logging_cfg import (JsonFormatter, get_correlation_id,
                                    get_logger, log_call, set_correlation_id)


@pytest.fixture
def clean_root():
    root = logging.getLogger()
    for handler in list(root.handlers):
        if handler.name == "discverify_console":
            root.removeHandler(handler)
    return root


def test_get_logger_prefix_and_single_handler(clean_root):
    logger = get_logger("tests.console")
    try:
        assert logger.name == "discverify.tests.console"
        assert len(logger.handlers) == 1

        again = get_logger("tests.console")
        assert again is logger
        assert len(again.handlers) == 1
    finally:
        for handler in list(logger.handlers):
            logger.removeHandler(handler)


def test_get_logger_defers_to_root_console(clean_root):
    logging_cfg.configure_logging("json")
    logger = get_logger("tests.rooted")
    assert logger.handlers == []


def test_correlation_id():
    cid = set_correlation_id()
    assert get_correlation_id() == cid
    assert set_correlation_id("abc") == "abc"
    assert get_correlation_id() == "abc"


def test_json_formatter():
    set_correlation_id("cid-1")
    record = logging.LogRecord("discverify.x", logging.WARNING, __file__, 1, "msg %s", ("a",), None)
    payload = json.loads(JsonFormatter().format(record))
    assert payload["level"] == "WARNING"
    assert payload["message"] == "msg a"
    assert payload["correlation_id"] == "cid-1"


def test_log_call(caplog):
    @log_call(level=logging.INFO)
    def add(a, b):
        return a + b

    @log_call()
    def boom():
        raise ValueError("nope")

    with caplog.at_level(logging.DEBUG):
        assert add(1, 2) == 3
        with pytest.raises(ValueError):
            boom()

    messages = [r.getMessage() for r in caplog.records]
    assert any(m.startswith("Exited") and "add" in m for m in messages)
    assert any(m.startswith("Exception in") and "boom" in m for m in messages)


def test_configure_logging_json(clean_root):
    root = logging_cfg.configure_logging("json")
    consoles = [h for h in root.handlers if h.name == "discverify_console"]
    assert len(consoles) == 1
    assert isinstance(consoles[0].formatter, JsonFormatter)

    logging_cfg.configure_logging("human")
    assert len([h for h in root.handlers if h.name == "discverify_console"]) == 1


def test_configure_logging_env(clean_root, monkeypatch):
    monkeypatch.setenv("DISCVERIFY_LOG_FORMAT", "human")
    root = logging_cfg.configure_logging("auto")
    console = next(h for h in root.handlers if h.name == "discverify_console")
    assert not isinstance(console.formatter, JsonFormatter)
