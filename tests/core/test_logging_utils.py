import logging

from hyprlang_provisioner.core.config import LogConfig
from hyprlang_provisioner.core.logging_utils import (
    log_event,
    sanitize_log_value,
    setup_rotating_logger,
)


def test_sanitize_log_value_quotes_and_collapses():
    assert sanitize_log_value("plain") == "plain"
    assert sanitize_log_value("two  words\n here") == '"two words here"'
    assert sanitize_log_value('say "hi"') == '"say \\"hi\\""'
    assert sanitize_log_value("") == '""'


def test_sanitize_log_value_formats_exceptions_and_truncates():
    assert sanitize_log_value(ValueError("bad")) == '"ValueError: bad"'
    long_value = sanitize_log_value("x" * 1000)
    assert len(long_value) == 400
    assert long_value.endswith("...")


def test_log_event_skips_none_fields(caplog):
    logger = logging.getLogger("test.log_event")
    caplog.set_level(logging.INFO, logger="test.log_event")

    log_event(logger, logging.INFO, "grammar.ready", commit="abc1234", detail=None)

    assert caplog.records[-1].getMessage() == "grammar.ready commit=abc1234"


def test_log_event_respects_level(caplog):
    logger = logging.getLogger("test.log_event.level")
    caplog.set_level(logging.WARNING, logger="test.log_event.level")

    log_event(logger, logging.INFO, "ignored")

    assert caplog.records == []


def test_setup_rotating_logger_is_idempotent(tmp_path):
    log_config = LogConfig(
        path=tmp_path / "logs" / "hyprlang.log",
        level=logging.DEBUG,
        max_bytes=1024,
        backup_count=1,
    )
    logger = setup_rotating_logger("test.rotating", log_config)
    try:
        setup_rotating_logger("test.rotating", log_config)
        assert len(logger.handlers) == 1
        log_event(logger, logging.INFO, "language_server.status", status="downloading")
        logger.handlers[0].flush()
        text = log_config.path.read_text(encoding="utf-8")
        assert "language_server.status status=downloading" in text
    finally:
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()
