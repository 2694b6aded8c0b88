from __future__ import annotations

import json
import logging

from icon_bingo.logging_setup import setup_logging


def _close_root_handlers():
    root = logging.getLogger()
    for handler in list(root.handlers):
        handler.close()
        root.removeHandler(handler)


def test_json_log_file(tmp_path):
    path = tmp_path / "run.log"
    setup_logging(level="DEBUG", log_file=str(path), json_format=True)
    try:
        logging.getLogger("icon_bingo.test").info("selected %d icons", 9)
    finally:
        _close_root_handlers()
    records = [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]
    assert records[-1]["message"] == "selected 9 icons"
    assert records[-1]["level"] == "INFO"
    assert records[-1]["logger"] == "icon_bingo.test"


def test_unknown_level_falls_back_to_info(tmp_path):
    path = tmp_path / "run.log"
    setup_logging(level="chatty", log_file=str(path))
    try:
        assert logging.getLogger().level == logging.INFO
        assert logging.getLogger("PIL").level == logging.INFO
    finally:
        _close_root_handlers()
