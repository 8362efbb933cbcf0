from __future__ import annotations

import logging
from pathlib import Path

import pytest
from rich.logging import RichHandler

from gattscout.logging_setup import configure_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    yield root
    for handler in root.handlers:
        if handler not in saved_handlers:
            handler.close()
    root.handlers[:] = saved_handlers
    root.setLevel(saved_level)


def test_configure_logging_writes_to_file(tmp_path: Path, restore_root_logger) -> None:
    log_path = tmp_path / "logs" / "scan.log"

    configure_logging(logging.DEBUG, log_path)
    logging.getLogger("gattscout.test").info("Scan started.")
    for handler in restore_root_logger.handlers:
        handler.flush()

    assert any(isinstance(h, RichHandler) for h in restore_root_logger.handlers)
    assert "INFO gattscout.test: Scan started." in log_path.read_text()
    assert logging.getLogger("bleak").level == logging.INFO
