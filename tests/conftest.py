import logging

import pytest


def _reset_press_loggers():
    names = ["press"] + [n for n in logging.Logger.manager.loggerDict if n.startswith("press.")]
    for name in names:
        logger = logging.getLogger(name)
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
        logger.setLevel(logging.NOTSET)
        logger.propagate = True
        logger.disabled = False


@pytest.fixture(autouse=True)
def clean_press_logger():
    """Every test starts and ends with an unconfigured 'press' logger tree."""
    _reset_press_loggers()
    yield
    _reset_press_loggers()
