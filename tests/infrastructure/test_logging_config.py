import logging
import logging.handlers

import pytest

from lingocards.infrastructure.logging_config import level_for, setup_logging


@pytest.mark.parametrize(
    "verbose,expected",
    [(0, logging.WARNING), (1, logging.INFO), (2, logging.DEBUG), (5, logging.DEBUG)],
)
def test_level_for(verbose, expected):
    assert level_for(verbose) == expected


def _file_handler(logger):
    return next(
        h for h in logger.handlers if isinstance(h, logging.handlers.RotatingFileHandler)
    )


def test_file_handler_follows_verbose(tmp_path):
    logger = setup_logging(tmp_path / "logs", verbose=2)

    assert (tmp_path / "logs" / "lingocards.log").exists()
    assert _file_handler(logger).level == logging.DEBUG
    assert logger.level == logging.DEBUG
    assert not logger.propagate


def test_child_loggers_reach_the_file(tmp_path):
    setup_logging(tmp_path, verbose=1)

    logging.getLogger("lingocards.application.study_service").info("rated card_1")
    logging.getLogger("lingocards.application.study_service").debug("hidden detail")

    text = (tmp_path / "lingocards.log").read_text()
    assert "[INFO] lingocards.application.study_service: rated card_1" in text
    assert "hidden detail" not in text


def test_setup_replaces_previous_handlers(tmp_path):
    setup_logging(tmp_path / "a")
    logger = setup_logging(tmp_path / "b", verbose=0)

    assert len(logger.handlers) == 2
    assert _file_handler(logger).baseFilename == str(tmp_path / "b" / "lingocards.log")
    assert _file_handler(logger).level == logging.WARNING


def test_unwritable_log_dir_keeps_console(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("not a directory")

    logger = setup_logging(blocker / "logs")

    assert [type(h) for h in logger.handlers] == [logging.StreamHandler]
