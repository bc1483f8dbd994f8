"""
Failure variants raised at the upstream transport boundary and their
classification into HTTP status codes.

httpx exceptions are converted once, by ``to_transport_error``, into one of a
small closed set of variants. ``classify`` then only has to match on those
variants instead of probing arbitrary attributes.
"""

import socket
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

import httpx

HOST_NOT_FOUND = "ENOTFOUND"
CONNECTION_REFUSED = "ECONNREFUSED"

NETWORK_FAILURE_MESSAGES = {
    HOST_NOT_FOUND: "Network connection failed - server not found",
    CONNECTION_REFUSED: "Network connection refused by server",
}

DEFAULT_ERROR_MESSAGE = "Unknown error occurred"

# Fragments of resolver failures as reported by the various libc/OS variants
_NAME_RESOLUTION_HINTS = (
    "name or service not known",
    "nodename nor servname",
    "getaddrinfo failed",
    "temporary failure in name resolution",
    "no address associated with hostname",
)


class TransportError(Exception):
    """Base class for failures produced while talking to the upstream."""

    code: Optional[str] = None

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class UpstreamTimeout(TransportError):
    code = "ECONNABORTED"


class ConnectionFailed(TransportError):
    code = CONNECTION_REFUSED


class UpstreamHttpError(TransportError):
    """The upstream answered, but with a non-2xx status."""

    code = "ERR_BAD_RESPONSE"

    def __init__(
        self,
        message: str,
        status_code: Optional[int],
        status_text: str = "",
        body: Any = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.status_text = status_text
        self.body = body


class NetworkError(TransportError):
    """Any other transport failure; may carry a status code of its own."""

    code = "ERR_NETWORK"

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ApplicationError(Exception):
    """Error raised by this service itself, with an explicit HTTP status."""

    def __init__(self, message: str, status_code: int = 500):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ParamsParseError(ApplicationError):
    """The inbound parameter payload could not be parsed."""

    def __init__(self, message: str):
        super().__init__(f"Failed to parse params: {message}", status_code=400)


@dataclass
class ErrorClassification:
    status_code: int
    message: str
    raw_data: Any = None


def _response_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text or None


def _is_name_resolution_failure(exc: BaseException) -> bool:
    seen = set()
    current: Optional[BaseException] = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        if isinstance(current, socket.gaierror):
            return True
        text = str(current).lower()
        if any(hint in text for hint in _NAME_RESOLUTION_HINTS):
            return True
        current = current.__cause__ or current.__context__
    return False


def to_transport_error(exc: BaseException) -> BaseException:
    """Convert an httpx exception into one of the transport variants.

    Exceptions that are not httpx errors are returned unchanged.
    """
    if isinstance(exc, (TransportError, ApplicationError)):
        return exc
    if isinstance(exc, httpx.HTTPStatusError):
        response = exc.response
        return UpstreamHttpError(
            str(exc),
            status_code=response.status_code,
            status_text=response.reason_phrase,
            body=_response_body(response),
        )
    if isinstance(exc, httpx.ConnectTimeout):
        return UpstreamTimeout(str(exc) or "Connection timed out", code="ECONNABORTED")
    if isinstance(exc, httpx.TimeoutException):
        return UpstreamTimeout(str(exc) or "Socket timed out", code="ERR_SOCKET_TIMEOUT")
    if isinstance(exc, httpx.ConnectError):
        code = HOST_NOT_FOUND if _is_name_resolution_failure(exc) else CONNECTION_REFUSED
        return ConnectionFailed(str(exc) or code, code=code)
    if isinstance(exc, httpx.HTTPError):
        return NetworkError(str(exc) or type(exc).__name__)
    return exc


def classify(error: BaseException) -> ErrorClassification:
    """Map a failure to a status code, a message and the upstream body (if any).

    Rules are checked in order; the first one that matches wins.
    """
    message = getattr(error, "message", None) or str(error) or DEFAULT_ERROR_MESSAGE
    raw_data = getattr(error, "body", None)

    if isinstance(error, UpstreamTimeout):
        return ErrorClassification(400, message, raw_data)

    if isinstance(error, ConnectionFailed):
        return ErrorClassification(
            500, NETWORK_FAILURE_MESSAGES.get(error.code, message), raw_data
        )

    if isinstance(error, UpstreamHttpError):
        status = error.status_code or 500
        return ErrorClassification(
            status,
            f"Server error: {error.status_code} {error.status_text}".rstrip(),
            raw_data,
        )

    if isinstance(error, NetworkError):
        return ErrorClassification(error.status_code or 500, message, raw_data)

    if isinstance(error, ApplicationError):
        return ErrorClassification(error.status_code, message, raw_data)

    return ErrorClassification(500, message, raw_data)


def get_error_status_code(error: BaseException) -> int:
    return classify(error).status_code


def format_error_response(
    error: BaseException, query: Optional[str] = None, variables: Any = None
) -> dict:
    """
    Build a detailed, GraphQL-shaped error body.

    Args:
        error: The failure to describe
        query: Optional GraphQL document that was being executed
        variables: Optional variables sent along with the query

    Returns:
        A JSON-serializable dict with ``success``, ``statusCode``,
        ``timestamp``, ``message``, ``data`` and ``errors`` keys.
    """
    classification = classify(error)
    status_code = classification.status_code
    base_error = {
        "success": False,
        "statusCode": status_code,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "message": classification.message,
        "data": None,
    }

    raw = classification.raw_data
    if isinstance(raw, dict) and raw.get("errors"):
        return {**base_error, "errors": raw["errors"]}

    extensions: dict = {"code": status_code}
    if query:
        extensions["query"] = query[:100] + "..."
        extensions["variables"] = variables
    return {
        **base_error,
        "errors": [{"message": classification.message, "extensions": extensions}],
    }
