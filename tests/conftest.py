import logging

import pytest

from licensedetect.core.log import PACKAGE_LOGGER_NAME


@pytest.fixture(autouse=True)
def _reset_package_logger():
    """Undo handlers and propagation changes made by CLI or logging tests."""
    logger = logging.getLogger(PACKAGE_LOGGER_NAME)
    level, propagate = logger.level, logger.propagate
    handlers = list(logger.handlers)
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = propagate
