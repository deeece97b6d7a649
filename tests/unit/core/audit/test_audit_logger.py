"""Tests for the AuditLogger and related utilities."""

from __future__ import annotations

import json

from healthwallet.core.audit.logger import AuditEvent, AuditLogger, _hash_input
from healthwallet.core.storage.database import HealthDatabase


class TestHashInput:
    def test_hashes_dict(self):
        assert len(_hash_input({"key": "value"})) == 64

    def test_order_independent(self):
        assert _hash_input({"z": 1, "a": 2}) == _hash_input({"a": 2, "z": 1})

    def test_different_inputs_differ(self):
        assert _hash_input({"a": 1}) != _hash_input({"a": 2})

    def test_non_serializable_returns_empty(self):
        assert _hash_input(object()) == ""


class TestLogToolCall:
    def test_writes_row(self, audit_logger):
        event_id = audit_logger.log_tool_call(
            tool_name="vitality_score",
            tool_input={"date": "2024-03-01"},
            duration_ms=4.2,
            metadata={"available_components": ["sleep"]},
        )
        assert event_id

        events = audit_logger.get_events()
        assert len(events) == 1
        event = events[0]
        assert event["action"] == "tool_invocation"
        assert event["tool_name"] == "vitality_score"
        assert event["status"] == "success"
        assert event["duration_ms"] == 4.2
        assert json.loads(event["metadata_json"]) == {"available_components": ["sleep"]}

    def test_raw_input_never_stored(self, audit_logger):
        audit_logger.log_tool_call(tool_name="log_quick_entry", tool_input={"notes": "very private"})
        event = audit_logger.get_events()[0]
        assert event["tool_input_hash"] == _hash_input({"notes": "very private"})
        assert "very private" not in json.dumps(event)

    def test_failure_with_record_id(self, audit_logger):
        audit_logger.log_tool_call(
            tool_name="verify_biomarker",
            record_id="rec-1",
            status="failure",
            error_type="VerificationError",
        )
        event = audit_logger.get_events(tool_name="verify_biomarker")[0]
        assert event["record_id"] == "rec-1"
        assert event["error_type"] == "VerificationError"
        assert event["tool_input_hash"] is None
        assert event["metadata_json"] is None


class TestQueries:
    def test_filters_and_count(self, audit_logger):
        audit_logger.log_tool_call(tool_name="a")
        audit_logger.log_tool_call(tool_name="b")
        audit_logger.log_event(AuditEvent(action="tool_invocation", tool_name="a"))

        assert len(audit_logger.get_events(tool_name="a")) == 2
        assert len(audit_logger.get_events(limit=1)) == 1
        assert audit_logger.count_events() == 3
        assert audit_logger.count_events(since="2999-01-01") == 0


def test_write_failure_is_swallowed():
    db = HealthDatabase(":memory:")
    db.initialize()
    audit = AuditLogger(db)
    db.close()
    assert audit.log_tool_call(tool_name="health_check") == ""
