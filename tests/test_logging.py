import logging

from qnopt.logging import get_logger, set_log_level


def test_loggers_live_under_package_namespace():
    assert get_logger("solvers.custom").name == "qnopt.solvers.custom"
    assert get_logger("qnopt.optimize.sr1").name == "qnopt.optimize.sr1"
    assert get_logger().name == "qnopt"


def test_loggers_are_cached():
    assert get_logger("cache_check") is get_logger("cache_check")
    assert len(get_logger("cache_check").handlers) == 1


def test_set_log_level_accepts_names():
    logger = get_logger("level_check")
    try:
        set_log_level("debug")
        assert logger.level == logging.DEBUG
    finally:
        set_log_level(logging.WARNING)
    assert logger.level == logging.WARNING
