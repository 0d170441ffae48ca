from __future__ import annotations

import json
import logging
from pathlib import Path

from dashtree.logging import JsonLogFormatter, configure_logging


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("dashtree.sketch", logging.WARNING, __file__, 1, "odd file %s", ("x.txt",), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_includes_thread_and_genome() -> None:
    payload = json.loads(JsonLogFormatter().format(_record(genome="x.txt")))

    assert payload["level"] == "WARNING"
    assert payload["logger"] == "dashtree.sketch"
    assert payload["message"] == "odd file x.txt"
    assert payload["genome"] == "x.txt"
    assert payload["thread"]


def test_json_formatter_omits_missing_genome() -> None:
    payload = json.loads(JsonLogFormatter().format(_record()))

    assert "genome" not in payload


def test_configure_logging_writes_json_lines(tmp_path: Path) -> None:
    log_file = tmp_path / "logs" / "run.jsonl"
    configure_logging(verbose=True, log_file=log_file)
    try:
        logging.getLogger("dashtree.test").info("hello", extra={"genome": "g1.fna"})
        for handler in logging.getLogger().handlers:
            handler.flush()
    finally:
        for handler in logging.getLogger().handlers:
            handler.close()
        logging.getLogger().handlers.clear()

    lines = log_file.read_text(encoding="utf-8").splitlines()
    assert json.loads(lines[-1])["genome"] == "g1.fna"
