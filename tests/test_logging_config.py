import structlog

from intake_engine.logging_config import (
    LogContext,
    _redact_pii,
    clear_context,
    get_console_processors,
    get_json_processors,
)


class TestRedactPII:
    def test_pii_keys_are_redacted(self):
        event = {
            "event": "bank_account_added",
            "routing_number": "021000021",
            "taxpayer_ssn": "123-45-6789",
            "ip_pin": "123456",
            "intake_id": "abc",
        }

        result = _redact_pii(None, "info", event)

        assert result["routing_number"] == "[REDACTED]"
        assert result["taxpayer_ssn"] == "[REDACTED]"
        assert result["ip_pin"] == "[REDACTED]"
        assert result["intake_id"] == "abc"
        assert result["event"] == "bank_account_added"

    def test_key_match_is_case_insensitive(self):
        result = _redact_pii(None, "info", {"event": "x", "Spouse_SSN": "1"})

        assert result["Spouse_SSN"] == "[REDACTED]"


class TestProcessors:
    def test_both_chains_redact(self):
        assert _redact_pii in get_console_processors()
        assert _redact_pii in get_json_processors()

    def test_json_chain_ends_with_renderer(self):
        assert isinstance(get_json_processors()[-1], structlog.processors.JSONRenderer)


class TestLogContext:
    def test_binds_and_unbinds(self):
        clear_context()

        with LogContext(request_id="r1", intake_id="i1"):
            bound = structlog.contextvars.get_contextvars()
            assert bound == {"request_id": "r1", "intake_id": "i1"}

        assert structlog.contextvars.get_contextvars() == {}
