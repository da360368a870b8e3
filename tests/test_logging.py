import logging
from logging.handlers import RotatingFileHandler

from tcgpairing.constants import ENV_LOG_DIR, ENV_LOG_LEVEL
from tcgpairing.utils import setup_logger


def _close(lgr):
    for handler in list(lgr.handlers):
        handler.close()
        lgr.removeHandler(handler)


def test_console_only_by_default(monkeypatch):
    monkeypatch.delenv(ENV_LOG_DIR, raising=False)
    monkeypatch.delenv(ENV_LOG_LEVEL, raising=False)
    lgr = setup_logger("tcgpairing.test.console")

    assert lgr.level == logging.INFO
    assert len(lgr.handlers) == 1
    assert not isinstance(lgr.handlers[0], RotatingFileHandler)
    _close(lgr)


def test_file_handler_and_level_from_environment(tmp_path, monkeypatch):
    monkeypatch.setenv(ENV_LOG_DIR, str(tmp_path / "logs"))
    monkeypatch.setenv(ENV_LOG_LEVEL, "debug")
    lgr = setup_logger("tcgpairing.test.file")
    lgr.info("hello from the test")

    assert lgr.level == logging.DEBUG
    assert any(isinstance(h, RotatingFileHandler) for h in lgr.handlers)
    for handler in lgr.handlers:
        handler.flush()
    assert "hello from the test" in (tmp_path / "logs" / "tcg-pairing.log").read_text(
        encoding="utf-8"
    )
    _close(lgr)


def test_repeated_setup_does_not_duplicate_handlers(monkeypatch):
    monkeypatch.delenv(ENV_LOG_DIR, raising=False)
    setup_logger("tcgpairing.test.repeat")
    lgr = setup_logger("tcgpairing.test.repeat")
    assert len(lgr.handlers) == 1
    _close(lgr)
