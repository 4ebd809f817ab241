import logging

from sfdict.logging_config import configure_logging


def test_defaults_to_warning(monkeypatch):
    root = logging.getLogger()
    monkeypatch.setattr(root, "handlers", [logging.NullHandler()])
    monkeypatch.setattr(root, "level", root.level)

    configure_logging(None)

    assert root.level == logging.WARNING


def test_debug_lets_urllib3_speak_at_info(monkeypatch):
    root = logging.getLogger()
    monkeypatch.setattr(root, "handlers", [logging.NullHandler()])
    monkeypatch.setattr(root, "level", root.level)
    pool = logging.getLogger("urllib3.connectionpool")
    monkeypatch.setattr(pool, "level", logging.NOTSET)

    configure_logging(logging.DEBUG)

    assert root.level == logging.DEBUG
    assert pool.level == logging.INFO


def test_info_keeps_urllib3_quiet(monkeypatch):
    root = logging.getLogger()
    monkeypatch.setattr(root, "handlers", [logging.NullHandler()])
    monkeypatch.setattr(root, "level", root.level)
    pool = logging.getLogger("urllib3.connectionpool")
    monkeypatch.setattr(pool, "level", logging.NOTSET)

    configure_logging(logging.INFO)

    assert pool.level == logging.WARNING
