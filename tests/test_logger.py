import logging

import pytest

from videoport.core.logger import setup_logger


@pytest.fixture
def package_logger():
    logger = logging.getLogger("videoport")
    saved = (list(logger.handlers), logger.level, logger.propagate)
    logger.handlers.clear()
    yield logger
    for handler in logger.handlers:
        handler.close()
    logger.handlers[:] = saved[0]
    logger.setLevel(saved[1])
    logger.propagate = saved[2]


def test_setup_logger_writes_to_file(tmp_path, package_logger):
    setup_logger({"level": "debug", "filename": "test.log"}, tmp_path / "logs")

    assert package_logger.level == logging.DEBUG
    assert len(package_logger.handlers) == 2
    logging.getLogger("videoport.core.capture").debug("hello from capture")
    for handler in package_logger.handlers:
        handler.flush()
    assert "hello from capture" in (tmp_path / "logs" / "test.log").read_text()


def test_setup_logger_is_idempotent(tmp_path, package_logger):
    setup_logger({}, tmp_path)
    setup_logger({}, tmp_path)
    assert len(package_logger.handlers) == 2
