"""Tests for the structured log formatter."""

import logging

from app.core.logging import StructuredFormatter, get_logger, log_with_context


def make_record(**extra):
    record = logging.LogRecord("app.test", logging.INFO, __file__, 10, "Deployed pattern", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_context_keys_promoted():
    line = StructuredFormatter().format(make_record(field_name="assignee", pattern_id="abc"))

    assert "level=INFO" in line
    assert "message=Deployed pattern" in line
    assert "field_name=assignee" in line
    assert "pattern_id=abc" in line


def test_extra_data_merged():
    line = StructuredFormatter().format(make_record(extra_data={"missing": "inventors"}))

    assert "missing=inventors" in line


def test_log_with_context(caplog):
    logger = get_logger("app.test_logging")

    with caplog.at_level(logging.INFO, logger="app.test_logging"):
        log_with_context(logger, logging.INFO, "Extracted 6/7 fields", document_id="doc-1", missing="inventors")

    record = caplog.records[-1]
    assert record.document_id == "doc-1"
    assert record.extra_data == {"missing": "inventors"}
