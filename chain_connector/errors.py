"""
Chain Connector - Error Handling and Classification.

============================================================
PURPOSE
============================================================
Normalized error envelope shared by clients, adapters and the
service façade.

============================================================
ERROR KINDS
============================================================
1. InvalidArg      - Caller error, 4xx semantics
2. InvalidConfig   - Connector init rejected its configuration
3. NotFound        - Resource absent (404)
4. NotInitialized  - Connector never bootstrapped or missing
5. Unauthorized    - Auth rejected (401/403)
6. Upstream        - Back-end 5xx or malformed response
7. Unavailable     - Network error, timeout, failed health probe
8. Internal        - Bug

============================================================
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Dict, Optional

import aiohttp


logger = logging.getLogger(__name__)


# ============================================================
# ERROR TAXONOMY
# ============================================================

class ErrorKind(Enum):
    """Closed set of normalized error kinds."""

    INVALID_ARG = "InvalidArg"
    INVALID_CONFIG = "InvalidConfig"
    NOT_FOUND = "NotFound"
    NOT_INITIALIZED = "NotInitialized"
    UNAUTHORIZED = "Unauthorized"
    UPSTREAM = "Upstream"
    UNAVAILABLE = "Unavailable"
    INTERNAL = "Internal"


class ConnectorError(Exception):
    """
    Normalized connector error.

    Serializes 1:1 into the public envelope `{kind, message, cause?}`.
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        cause: Optional[BaseException] = None,
        connector_id: Optional[str] = None,
        status_code: Optional[int] = None,
        response_body: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.cause = cause
        self.connector_id = connector_id
        self.status_code = status_code
        self.response_body = response_body
        if cause is not None:
            self.__cause__ = cause

    def to_envelope(self) -> Dict[str, Any]:
        """Convert to the public error envelope."""
        envelope: Dict[str, Any] = {
            "kind": self.kind.value,
            "message": self.message,
        }
        if self.cause is not None:
            envelope["cause"] = str(self.cause)
        return envelope

    def __str__(self) -> str:
        prefix = f"[{self.kind.value}]"
        if self.connector_id:
            prefix += f" {self.connector_id}:"
        return f"{prefix} {self.message}"


class EthRPCError(ConnectorError):
    """Error object returned by an Ethereum JSON-RPC endpoint."""

    def __init__(self, code: int, message: str) -> None:
        super().__init__(ErrorKind.UPSTREAM, f"rpc error {code}: {message}")
        self.rpc_code = code


# ============================================================
# CLASSIFICATION
# ============================================================

def classify_http_status(status: int) -> ErrorKind:
    """
    Map an HTTP status code to an error kind.

    Args:
        status: HTTP status (expected >= 400)

    Returns:
        ErrorKind
    """
    if status in (401, 403):
        return ErrorKind.UNAUTHORIZED
    if status == 404:
        return ErrorKind.NOT_FOUND
    if 400 <= status < 500:
        return ErrorKind.INVALID_ARG
    return ErrorKind.UPSTREAM


def http_error(
    service: str,
    status: int,
    body: str,
    message: Optional[str] = None,
) -> ConnectorError:
    """Create an error for a non-2xx back-end response."""
    return ConnectorError(
        classify_http_status(status),
        message or f"{service} API error ({status}): {body}",
        status_code=status,
        response_body=body,
    )


def network_error(service: str, error: BaseException) -> ConnectorError:
    """Create an error for a transport-level failure or timeout."""
    if isinstance(error, asyncio.TimeoutError):
        message = f"{service} request timed out"
    else:
        message = f"{service} request failed: {error}"
    return ConnectorError(ErrorKind.UNAVAILABLE, message, cause=error)


def is_transport_error(error: BaseException) -> bool:
    """Check whether an exception is a network-level failure."""
    return isinstance(error, (aiohttp.ClientError, asyncio.TimeoutError, OSError))


def wrap_exception(
    error: BaseException,
    connector_id: Optional[str] = None,
) -> ConnectorError:
    """
    Wrap any exception into a ConnectorError without re-classifying
    errors that are already normalized.
    """
    if isinstance(error, ConnectorError):
        if connector_id and not error.connector_id:
            error.connector_id = connector_id
        return error
    if is_transport_error(error):
        wrapped = network_error(connector_id or "backend", error)
        wrapped.connector_id = connector_id
        return wrapped
    logger.error(f"Unexpected error from connector {connector_id}: {error!r}")
    return ConnectorError(
        ErrorKind.INTERNAL,
        f"internal error: {error}",
        cause=error,
        connector_id=connector_id,
    )


def invalid_arg(message: str) -> ConnectorError:
    return ConnectorError(ErrorKind.INVALID_ARG, message)


def invalid_config(connector_id: str, message: str, cause: Optional[BaseException] = None) -> ConnectorError:
    return ConnectorError(
        ErrorKind.INVALID_CONFIG,
        message,
        cause=cause,
        connector_id=connector_id,
    )


def not_initialized(connector_id: str) -> ConnectorError:
    return ConnectorError(
        ErrorKind.NOT_INITIALIZED,
        f"connector '{connector_id}' is not initialized",
        connector_id=connector_id,
    )
