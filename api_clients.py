"""Factory function for creating the HTTP transport used by the service clients."""

from typing import Any, Optional, Protocol

import requests
from google.auth.transport.requests import Request

from utils.logger import get_logger

logger = get_logger()


def is_success(status: int) -> bool:
    return 200 <= status < 300


class TransportResponse(Protocol):
    status: int
    headers: Any
    data: bytes


class Transport(Protocol):
    """Anything that can send one HTTP request.

    `google.auth.transport.requests.Request` satisfies this; tests pass a fake.
    Connection-level failures are raised as
    `google.auth.exceptions.TransportError`.
    """

    def __call__(
        self,
        url: str,
        method: str = "GET",
        body: Optional[bytes] = None,
        headers: Optional[dict] = None,
        timeout: Optional[float] = None,
        **kwargs: Any,
    ) -> TransportResponse:
        ...


def build_transport(session: Optional[requests.Session] = None) -> Request:
    """Builds a new transport backed by a `requests.Session`.

    Each client gets its own transport so connection pooling is per client
    and nothing is shared process-wide.

    Args:
        session: An existing session to reuse (e.g. one configured with
            proxies or custom adapters). A fresh one is created when omitted.

    Returns:
        Request: A callable transport.
    """
    logger.debug("Building new HTTP transport...")
    return Request(session=session or requests.Session())
