"""HTTP transport for the catalog backend.

A thin layer over a requests Session. It does not classify status codes;
it only distinguishes "got a response with a status" from "did not".
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import requests  # type: ignore[import-untyped]

from catalog_admin.config import HEADERS, REQUEST_TIMEOUT
from catalog_admin.logging_config import get_logger

__all__ = [
    "TransportError",
    "InvalidResponseError",
    "TransportResponse",
    "Transport",
    "create_session",
    "is_success",
]

logger = get_logger("transport")


class TransportError(Exception):
    """Raised when the request could not be completed at all."""
    pass


class InvalidResponseError(TransportError):
    """Raised when a response arrived without a usable HTTP status."""

    def __init__(self, message: str = "Invalid response from server.") -> None:
        super().__init__(message)


@dataclass
class TransportResponse:
    status_code: int
    content: bytes = b""
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return is_success(self.status_code)


def is_success(status_code: int) -> bool:
    """2xx, inclusive on both ends, is success."""
    return 200 <= status_code <= 299


def create_session() -> requests.Session:
    """Create a requests Session with connection pooling and default headers."""
    session = requests.Session()
    session.headers.update(HEADERS)
    session.headers.setdefault("Accept-Encoding", "gzip, deflate")
    return session


class Transport:
    """Sends one HTTP request and returns its status and body.

    Blocking; the store runs it in a worker thread.
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        timeout: float = REQUEST_TIMEOUT,
    ) -> None:
        self.session = session or create_session()
        self.timeout = timeout

    def request(
        self,
        method: str,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        json_body: Optional[Any] = None,
    ) -> TransportResponse:
        """Send a request.

        Args:
            method: HTTP method ('GET', 'POST', ...)
            url: Absolute URL
            headers: Extra headers for this request
            json_body: Object serialized as the JSON request body

        Returns:
            TransportResponse with the numeric status and raw body

        Raises:
            TransportError: On connection failure, timeout or other request error
            InvalidResponseError: If the response carries no integer status
        """
        logger.debug(f"{method} {url}")
        try:
            resp = self.session.request(
                method,
                url,
                headers=headers,
                json=json_body,
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            logger.debug(f"{method} {url} failed: {e}")
            raise TransportError(str(e)) from e

        status_code = getattr(resp, "status_code", None)
        if not isinstance(status_code, int) or isinstance(status_code, bool):
            raise InvalidResponseError()

        logger.debug(f"{method} {url} -> {status_code}")
        return TransportResponse(
            status_code=status_code,
            content=resp.content or b"",
            headers=dict(resp.headers or {}),
        )

    def close(self) -> None:
        self.session.close()
