"""Tests for JSONL and console logging setup."""

import json
import logging

import pytest
from rich.logging import RichHandler

from nsloader.logging_setup import JsonlHandler
from nsloader.logging_setup import init_console_logging
from nsloader.logging_setup import init_json_logging


def _make_record(message, level: int = logging.INFO, **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="nsloader.loader",
        level=level,
        pathname="loader.py",
        lineno=1,
        msg=message,
        args=(),
        exc_info=None,
    )
    record.__dict__.update(extra)
    return record


@pytest.fixture
def root_logger():
    """Restore root handlers and level after each test."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


class TestJsonlHandler:
    def test_payload(self, tmp_path):
        handler = JsonlHandler(str(tmp_path / "log.jsonl"))
        payload = handler.format_payload(_make_record("[loader:inject] a.py", event="inject", module="x"))

        assert payload["lvl"] == "INFO"
        assert payload["logger"] == "nsloader.loader"
        assert payload["message"] == "[loader:inject] a.py"
        assert payload["event"] == "inject"
        assert payload["schema"]["name"] == "nsloader.log"
        # reserved record attributes are not copied
        assert "lineno" not in payload

    def test_dict_message_is_merged(self, tmp_path):
        handler = JsonlHandler(str(tmp_path / "log.jsonl"))
        payload = handler.format_payload(_make_record({"module_path": "a.py"}))
        assert payload["module_path"] == "a.py"

    def test_emit_appends_lines(self, tmp_path):
        path = tmp_path / "nested" / "log.jsonl"
        handler = JsonlHandler(str(path))

        handler.emit(_make_record("first"))
        handler.emit(_make_record("second", level=logging.WARNING))

        lines = [json.loads(line) for line in path.read_text().splitlines()]
        assert [line["message"] for line in lines] == ["first", "second"]
        assert lines[1]["lvl"] == "WARNING"


class TestInit:
    def test_init_json_logging_replaces_handler(self, tmp_path, root_logger):
        init_json_logging(str(tmp_path / "a.jsonl"), "debug")
        init_json_logging(str(tmp_path / "b.jsonl"), "warning")

        handlers = [h for h in root_logger.handlers if isinstance(h, JsonlHandler)]
        assert len(handlers) == 1
        assert handlers[0].path == tmp_path / "b.jsonl"
        assert root_logger.level == logging.WARNING

    def test_loader_events_reach_jsonl(self, tmp_path, root_logger, context):
        path = tmp_path / "log.jsonl"
        init_json_logging(str(path), "DEBUG")

        context.add_dependency("m", ["m"])
        context.load("m")

        messages = [json.loads(line)["message"] for line in path.read_text().splitlines()]
        assert "[loader:inject] m" in messages

    def test_init_console_logging(self, root_logger):
        init_console_logging(verbose=False)
        init_console_logging(verbose=True)

        handlers = [h for h in root_logger.handlers if isinstance(h, RichHandler)]
        assert len(handlers) == 1
        assert handlers[0].level == logging.DEBUG
        assert root_logger.level == logging.DEBUG
