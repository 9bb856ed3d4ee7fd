import logging

import pytest

from log import setup_logger


@pytest.fixture
def logger_name(request):
    name = f"intersection-test-{request.node.name}"
    yield name
    logging.getLogger(name).handlers.clear()


@pytest.mark.parametrize("level, expected", [
    ("debug", logging.DEBUG),
    ("WARNING", logging.WARNING),
    (logging.ERROR, logging.ERROR),
    ("basic_format", logging.INFO),
    ("nonsense", logging.INFO),
])
def test_level_names(logger_name, level, expected):
    assert setup_logger(logger_name, level).level == expected


def test_single_handler(logger_name):
    setup_logger(logger_name)
    logger = setup_logger(logger_name, "DEBUG")
    assert len(logger.handlers) == 1
    assert logger.level == logging.DEBUG
