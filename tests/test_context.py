"""Tests for the request-scoped correlation context."""

import pytest
from structlog.testing import capture_logs

import structlog

from greetings.observability.context import (
    GREETING_STATUS,
    GREETINGS_ID,
    GREETINGS_NAME,
    STATUS_SUCCESS,
    CorrelationContext,
)


class TestCorrelationContext:
    """Test cases for CorrelationContext."""

    def test_values_are_stored_as_strings(self):
        context = CorrelationContext()
        context.set(GREETINGS_ID, 42)

        assert context.get(GREETINGS_ID) == "42"
        assert GREETINGS_ID in context
        assert len(context) == 1

    def test_set_overwrites(self):
        context = CorrelationContext()
        context.set(GREETING_STATUS, "OUT_OF_GREETINGS")
        context.set(GREETING_STATUS, STATUS_SUCCESS)

        assert context.get(GREETING_STATUS) == STATUS_SUCCESS

    def test_missing_field_is_none(self):
        assert CorrelationContext().get(GREETINGS_NAME) is None

    def test_constructor_fields(self):
        context = CorrelationContext(**{GREETINGS_ID: 7, GREETINGS_NAME: "Alice"})

        assert context.as_dict() == {GREETINGS_ID: "7", GREETINGS_NAME: "Alice"}

    def test_as_dict_is_a_snapshot(self):
        context = CorrelationContext(**{GREETINGS_ID: 1})
        snapshot = context.as_dict()
        context.clear()

        assert snapshot == {GREETINGS_ID: "1"}
        assert len(context) == 0

    def test_scope_clears_on_normal_exit(self):
        context = CorrelationContext()
        with context.scope():
            context.set(GREETINGS_ID, 1)
            assert len(context) == 1

        assert len(context) == 0

    def test_scope_clears_when_block_raises(self):
        context = CorrelationContext()
        with pytest.raises(RuntimeError):
            with context.scope():
                context.set(GREETINGS_ID, 1)
                raise RuntimeError("boom")

        assert context.as_dict() == {}

    def test_bind_attaches_fields_to_log_events(self):
        context = CorrelationContext(**{GREETINGS_ID: 3, GREETINGS_NAME: "Bob"})

        with capture_logs() as logs:
            context.bind(structlog.get_logger()).info("greetings_success")

        assert logs == [
            {
                "event": "greetings_success",
                "log_level": "info",
                GREETINGS_ID: "3",
                GREETINGS_NAME: "Bob",
            }
        ]

    def test_contexts_are_independent(self):
        first = CorrelationContext(**{GREETINGS_NAME: "Alice"})
        second = CorrelationContext(**{GREETINGS_NAME: "Bob"})
        first.clear()

        assert second.get(GREETINGS_NAME) == "Bob"
