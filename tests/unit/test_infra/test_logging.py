"""Tests for logging setup, the JSON formatter and lazy messages."""

from __future__ import annotations

import json
import logging

import pytest

from nested_hierarchy.core.settings import LoggingSettings
from nested_hierarchy.infra.logging import (
    JSONFormatter,
    configure_logging,
    get_lazy_logger,
    setup_logging,
)


@pytest.fixture
def restore_root_logger():
    """Put the root logger back the way pytest configured it."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


def make_record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="hierarchy.Category",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="Subtree %s",
        args=("attached",),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


# ============================================================================
# JSONFormatter
# ============================================================================


def test_json_formatter_includes_extra_fields():
    line = JSONFormatter().format(make_record(operation="hierarchy.attach", child_id=4))

    data = json.loads(line)
    assert data["level"] == "INFO"
    assert data["logger"] == "hierarchy.Category"
    assert data["message"] == "Subtree attached"
    assert data["operation"] == "hierarchy.attach"
    assert data["child_id"] == 4
    assert data["timestamp"].endswith("Z")
    assert "pathname" not in data


def test_json_formatter_static_fields_and_custom_keys():
    formatter = JSONFormatter(fmt_keys={"msg": "message"}, static={"service": "trees"})

    data = json.loads(formatter.format(make_record()))

    assert data["msg"] == "Subtree attached"
    assert data["service"] == "trees"
    assert "level" not in data


def test_json_formatter_serializes_unknown_types():
    data = json.loads(JSONFormatter().format(make_record(scope=("t1", 2))))

    assert data["scope"] == ["t1", 2]


# ============================================================================
# LazyLoggerAdapter
# ============================================================================


def test_lazy_message_not_evaluated_when_disabled(caplog):
    caplog.set_level(logging.INFO, logger="lazy.test")
    lazy = get_lazy_logger("lazy.test")
    calls = []

    def expensive() -> str:
        calls.append(1)
        return "expensive"

    lazy.debug(expensive)

    assert calls == []
    assert caplog.records == []


def test_lazy_message_evaluated_when_enabled(caplog):
    caplog.set_level(logging.DEBUG, logger="lazy.test")
    lazy = get_lazy_logger("lazy.test", tree=1)

    lazy.debug(lambda: "shift %s", lambda: "lft>=3")

    assert caplog.records[0].getMessage() == "shift lft>=3"
    assert caplog.records[0].tree == 1


# ============================================================================
# configure_logging / setup_logging
# ============================================================================


def test_configure_logging_sets_root_level(restore_root_logger):
    configure_logging(log_level="WARNING", json_logs=True, capture_warnings=False)

    assert restore_root_logger.level == logging.WARNING
    assert isinstance(restore_root_logger.handlers[0].formatter, JSONFormatter)


def test_setup_logging_uses_settings(restore_root_logger):
    setup_logging(LoggingSettings(level="debug"), force=True)

    assert restore_root_logger.level == logging.DEBUG
    assert not isinstance(restore_root_logger.handlers[0].formatter, JSONFormatter)


# ============================================================================
# Engine log records
# ============================================================================


async def test_mutations_log_structured_records(caplog, make_node, hierarchy):
    caplog.set_level(logging.INFO, logger="hierarchy.Category")
    a = await make_node("A")
    b = await make_node("B")

    await hierarchy.attach(a, b)
    await hierarchy.prune(b)

    records = [r for r in caplog.records if r.name == "hierarchy.Category"]
    operations = [r.operation for r in records]
    assert operations == ["hierarchy.create", "hierarchy.create", "hierarchy.attach", "hierarchy.prune"]
    attach_record = records[2]
    assert (attach_record.parent_id, attach_record.child_id, attach_record.nodes) == (a.id, b.id, 1)
    assert records[3].deleted == 1
