"""Global pytest configuration."""

import logging

import pytest


@pytest.fixture(autouse=True)
def _reset_app_loggers():
    """Keep handlers installed by configure_logging() from leaking between tests."""
    yield
    for name in ("pfsifter", "pfsifter.console"):
        logger = logging.getLogger(name)
        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)
