"""Backend service: the instrumented /backend handler."""
