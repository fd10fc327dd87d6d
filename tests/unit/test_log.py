"""Tests for operation-tagged logging."""
import logging

from entralab.core.log import LOG_FORMAT, TRACE, OperationFilter, operation_logger


def test_trace_level_registered():
    assert TRACE < logging.DEBUG
    assert logging.getLevelName(TRACE) == "TRACE"


def test_operation_logger_tags_records(caplog):
    caplog.set_level(TRACE)
    log = operation_logger(logging.getLogger("entralab.test"), "create_group")

    log.trace("enter")
    log.warning("careful", extra={"group": "Lab-Users"})

    assert [r.levelname for r in caplog.records] == ["TRACE", "WARNING"]
    assert all(r.operation == "create_group" for r in caplog.records)
    assert caplog.records[1].group == "Lab-Users"


def test_operation_filter_supplies_default():
    record = logging.LogRecord("entralab", logging.INFO, __file__, 1, "hello", None, None)
    assert OperationFilter().filter(record) is True
    assert "[-] hello" in logging.Formatter(LOG_FORMAT).format(record)
