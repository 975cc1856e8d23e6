import logging
import os
import sys

import pytest

# Ensure the repository root is on sys.path so `weeklywheel` can be imported
sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from weeklywheel import logging_setup


@pytest.fixture
def fresh_root(monkeypatch):
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    monkeypatch.setattr(logging_setup, "_LOGGER_INITIALIZED", False)
    yield root
    for h in root.handlers:
        if h not in handlers:
            h.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def test_init_logging_writes_to_log_dir(tmp_path, fresh_root):
    log_dir = tmp_path / "logs"

    logging_setup.init_logging("debug", log_to_console=False, log_dir=log_dir)
    logging.getLogger("weeklywheel.test").debug("hello ledger")
    for h in fresh_root.handlers:
        h.flush()

    assert fresh_root.level == logging.DEBUG
    text = (log_dir / "wheel_backtest.log").read_text()
    assert "DEBUG | weeklywheel.test | hello ledger" in text


def test_init_logging_twice_only_updates_level(tmp_path, fresh_root):
    logging_setup.init_logging("INFO", log_to_console=False, log_dir=tmp_path)
    count = len(fresh_root.handlers)

    logging_setup.init_logging("WARNING", log_to_console=False, log_dir=tmp_path)

    assert len(fresh_root.handlers) == count
    assert fresh_root.level == logging.WARNING


def test_unknown_level_raises():
    with pytest.raises(ValueError):
        logging_setup.set_level("LOUD")
