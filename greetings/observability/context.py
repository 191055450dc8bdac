"""
Request-scoped correlation context.

Every request owns exactly one ``CorrelationContext`` and passes it explicitly
down the stage call chain. Nothing is stored in thread-locals or context vars,
so two concurrent requests can never observe each other's fields.

The fields are attached to every log line through ``bind()``:

    correlation = CorrelationContext()
    with correlation.scope():
        correlation.set(GREETINGS_ID, 42)
        correlation.bind(logger).info("greetings_success")
        # {"event": "greetings_success", "greetingsId": "42", ...}
    # fields are gone here, even if the block raised
"""

from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

# Correlation field names (kept identical to the log schema consumed downstream)
GREETINGS_ID = "greetingsId"
GREETINGS_NAME = "greetingsName"
GREETING_STATUS = "greetingStatus"
GREETINGS_LANGUAGE = "greetingsLanguage"

# Values of GREETING_STATUS
STATUS_SUCCESS = "SUCCESS"
STATUS_OUT_OF_GREETINGS = "OUT_OF_GREETINGS"


class CorrelationContext:
    """Mutable key/value bag scoped to one request."""

    def __init__(self, **fields: Any):
        self._fields: Dict[str, str] = {}
        for key, value in fields.items():
            self.set(key, value)

    def set(self, field: str, value: Any) -> None:
        """Set ``field``, overwriting any previous value. Values are stored as strings."""
        self._fields[field] = str(value)

    def get(self, field: str) -> Optional[str]:
        return self._fields.get(field)

    def clear(self) -> None:
        self._fields.clear()

    def as_dict(self) -> Dict[str, str]:
        """Snapshot of the current fields."""
        return dict(self._fields)

    def bind(self, logger: Any) -> Any:
        """Return ``logger`` bound to every current field."""
        return logger.bind(**self._fields)

    @contextmanager
    def scope(self) -> Iterator["CorrelationContext"]:
        """Yield the context and clear it on every exit path."""
        try:
            yield self
        finally:
            self.clear()

    def __contains__(self, field: object) -> bool:
        return field in self._fields

    def __len__(self) -> int:
        return len(self._fields)

    def __repr__(self) -> str:
        return f"CorrelationContext({self._fields!r})"
