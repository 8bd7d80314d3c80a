import io
import logging

from licensedetect.core.log import PACKAGE_LOGGER_NAME, configure_logging, get_logger, temp_level


def test_get_logger_defaults_to_package_logger():
    assert get_logger().name == PACKAGE_LOGGER_NAME
    assert get_logger("licensedetect.core.pipeline").parent.name in {"licensedetect.core", PACKAGE_LOGGER_NAME}


def test_package_logger_has_null_handler():
    logger = logging.getLogger(PACKAGE_LOGGER_NAME)
    assert any(isinstance(h, logging.NullHandler) for h in logger.handlers)


def test_configure_logging_sets_logger_level():
    logger = logging.getLogger(PACKAGE_LOGGER_NAME)
    logger.setLevel(logging.WARNING)

    configure_logging(level="DEBUG")

    assert logger.level == logging.DEBUG


def test_configure_logging_writes_to_stream_once():
    stream = io.StringIO()
    logger = configure_logging(level="INFO", stream=stream, fmt="%(levelname)s %(message)s", propagate=False)
    configure_logging(level="INFO", stream=stream, propagate=False)

    get_logger("licensedetect.core.pipeline").info("stage done")

    assert stream.getvalue() == "INFO stage done\n"
    stream_handlers = [
        h for h in logger.handlers if isinstance(h, logging.StreamHandler) and not isinstance(h, logging.NullHandler)
    ]
    assert len(stream_handlers) == 1


def test_temp_level_changes_and_restores():
    logger = logging.getLogger("licensedetect.test.temp")
    logger.setLevel(logging.WARNING)
    original_level = logger.level

    with temp_level(logging.DEBUG, name=logger.name):
        assert logger.level == logging.DEBUG

    assert logger.level == original_level
