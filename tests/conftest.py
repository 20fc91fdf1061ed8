import logging

import pytest


@pytest.fixture(autouse=True)
def _restore_logging():
    "configure_logging() replaces root handlers; undo that after each test"
    root = logging.getLogger()
    original_handlers = root.handlers[:]
    original_level = root.level
    package_logger = logging.getLogger('combindex')
    package_level = package_logger.level
    yield
    root.handlers = original_handlers
    root.setLevel(original_level)
    package_logger.setLevel(package_level)
