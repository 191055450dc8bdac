"""Tests for the explicit span tree."""

import pytest
from opentelemetry.trace import StatusCode

from greetings.errors import SpanStateError


class TestSpanTree:
    """Parent/child structure and export."""

    def test_child_is_linked_to_parent(self, tracer, span_exporter):
        with tracer.start_span("greeting") as root:
            child = root.start_child("do_greetings")
            child.end()

        assert child.parent is root
        assert root.children == (child,)
        assert child.trace_id == root.trace_id

        exported = {s.name: s for s in span_exporter.get_finished_spans()}
        assert exported["do_greetings"].parent.span_id == exported["greeting"].context.span_id

    def test_root_span_has_no_parent(self, tracer):
        root = tracer.start_span("greeting")
        root.end()

        assert root.parent is None

    def test_parent_cannot_end_before_child(self, tracer):
        root = tracer.start_span("greeting")
        child = root.start_child("call_backend")

        with pytest.raises(SpanStateError):
            root.end()

        child.end()
        root.end()
        assert root.ended

    def test_end_is_idempotent(self, tracer, span_exporter):
        span = tracer.start_span("greeting")
        span.end()
        span.end()

        assert len(span_exporter.get_finished_spans()) == 1

    def test_cannot_start_child_after_end(self, tracer):
        span = tracer.start_span("greeting")
        span.end()

        with pytest.raises(SpanStateError):
            span.start_child("late")


class TestSpanStatus:
    """Status is set once and is final."""

    def test_first_status_wins(self, tracer, span_exporter):
        span = tracer.start_span("do_greetings")

        assert span.set_status(StatusCode.ERROR, "No greetings calculated") is True
        assert span.set_status(StatusCode.OK) is False
        span.end()

        assert span.status is StatusCode.ERROR
        assert span.status_message == "No greetings calculated"
        exported = span_exporter.get_finished_spans()[0]
        assert exported.status.status_code is StatusCode.ERROR
        assert exported.status.description == "No greetings calculated"

    def test_status_after_end_raises(self, tracer):
        span = tracer.start_span("greeting")
        span.end()

        with pytest.raises(SpanStateError):
            span.set_status(StatusCode.OK)

    def test_attribute_after_end_raises(self, tracer):
        span = tracer.start_span("greeting")
        span.end()

        with pytest.raises(SpanStateError):
            span.set_attribute("greetingId", "1")

    def test_unset_is_not_a_terminal_status(self, tracer):
        span = tracer.start_span("greeting")

        with pytest.raises(ValueError):
            span.set_status(StatusCode.UNSET)
        span.end()

    def test_escaping_exception_marks_span_error(self, tracer, span_exporter):
        with pytest.raises(KeyError):
            with tracer.start_span("greeting"):
                raise KeyError("missing")

        exported = span_exporter.get_finished_spans()[0]
        assert exported.status.status_code is StatusCode.ERROR
        assert exported.events[0].name == "exception"

    def test_attributes_are_mirrored(self, tracer, span_exporter):
        with tracer.start_span("greeting") as span:
            span.set_attribute("greetingId", "5")

        assert span.attributes == {"greetingId": "5"}
        assert span_exporter.get_finished_spans()[0].attributes["greetingId"] == "5"


class TestPropagation:
    """W3C trace context across the service boundary."""

    def test_inject_then_extract_continues_the_trace(self, tracer, span_exporter):
        with tracer.start_span("greeting") as root:
            call = root.start_child("call_backend")
            headers = call.inject({})
            remote = tracer.start_span("backend", carrier=headers)
            remote.end()
            call.end()

        assert "traceparent" in headers
        assert remote.trace_id == root.trace_id

        exported = {s.name: s for s in span_exporter.get_finished_spans()}
        assert exported["backend"].parent.span_id == exported["call_backend"].context.span_id

    def test_empty_carrier_starts_new_trace(self, tracer):
        first = tracer.start_span("backend", carrier={})
        second = tracer.start_span("backend", carrier={})
        first.end()
        second.end()

        assert first.trace_id != second.trace_id

    def test_trace_context_for_logs(self, tracer):
        span = tracer.start_span("greeting")
        span.end()

        context = span.trace_context()
        assert len(context["trace_id"]) == 32
        assert len(context["span_id"]) == 16
