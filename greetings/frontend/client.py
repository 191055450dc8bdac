"""
HTTP client for the backend service.

Error classification:
- Transport failures (connection refused, DNS, timeout) -> ResourceAccessFault
- Request construction errors (bad URL scheme, invalid URL) propagate: they
  are configuration mistakes, not outages
- Non-2xx status -> requests.HTTPError, deliberately unclassified: it reaches
  the framework's default error handling instead of the degraded response
- A 200 response is returned as-is, including the business rejection body
  ``"Failed"``; interpreting it is the caller's job
"""

from typing import Any, Dict, Optional

import requests
import structlog

from greetings.errors import ResourceAccessFault
from greetings.observability.tracing import Span

logger = structlog.get_logger(__name__)

BACKEND_PATH = "/backend"


class BackendClient:
    """
    Blocking client for ``GET /backend?id=<id>``.

    Args:
        endpoint: Base URL of the backend service (e.g. "http://backend:8081")
        timeout: Seconds before the call is abandoned; None waits indefinitely
        session: requests-compatible session (anything with ``get``)
    """

    def __init__(
        self,
        endpoint: str,
        timeout: Optional[float] = None,
        session: Optional[Any] = None,
    ):
        self.endpoint = endpoint.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def url(self) -> str:
        return f"{self.endpoint}{BACKEND_PATH}"

    def fetch(self, greeting_id: int, span: Optional[Span] = None) -> str:
        """
        Call the backend for ``greeting_id`` and return the response body.

        Args:
            greeting_id: Request identity forwarded as the ``id`` query parameter
            span: Caller span whose context is propagated in the request headers

        Raises:
            ResourceAccessFault: On transport failure
            requests.HTTPError: On a non-2xx response
        """
        headers: Dict[str, str] = {"Content-Type": "application/json"}
        if span is not None:
            span.inject(headers)

        try:
            response = self.session.get(
                self.url,
                params={"id": greeting_id},
                headers=headers,
                timeout=self.timeout,
            )
        except (requests.ConnectionError, requests.Timeout) as e:
            logger.warning("backend_unreachable", url=self.url, error=str(e))
            raise ResourceAccessFault(
                f"I/O error on GET request for {self.url}: {e}", cause=e
            ) from e

        response.raise_for_status()
        return response.text
