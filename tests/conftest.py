import logging

import pytest


@pytest.fixture
def restore_root_logger():
    """Undoes setup_logging(): closes the handlers it added and restores the old ones."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
