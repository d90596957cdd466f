"""
Logging tests for flowlens.log.
"""
from loguru import logger

from flowlens.log import configure_logging
from flowlens.strip import strip_types


def test_package_logs_after_opt_in(capsys):
    sink = configure_logging("DEBUG")
    try:
        strip_types("function workflow( {")
    finally:
        logger.remove(sink)
    err = capsys.readouterr().err
    assert "not stripping types" in err
    assert "flowlens.strip" in err


def test_level_filters_messages(capsys):
    sink = configure_logging("WARNING")
    try:
        strip_types("function workflow( {")
    finally:
        logger.remove(sink)
    assert "not stripping types" not in capsys.readouterr().err
