import logging

from opboot import logs


def test_setup_logging_runs_once(monkeypatch):
    monkeypatch.setattr(logs, "_configured", None)
    logger = logging.getLogger(logs.LOGGER_NAME)
    monkeypatch.setattr(logger, "handlers", [])

    first = logs.setup_logging(verbose=True)
    assert first.level == logging.DEBUG
    assert len(first.handlers) == 1

    # A second call must not reconfigure or add handlers.
    second = logs.setup_logging(verbose=False)
    assert second is first
    assert second.level == logging.DEBUG
    assert len(second.handlers) == 1
    assert logging.getLogger("uvicorn.access").level == logging.WARNING
