import logging

import pytest


@pytest.fixture(autouse=True)
def _reset_root_console():
    """configure_logging() attaches a console handler to the root logger; drop it after each test."""
    root = logging.getLogger()
    level = root.level
    yield
    for handler in list(root.handlers):
        if handler.name == "discverify_console":
            root.removeHandler(handler)
    root.setLevel(level)
