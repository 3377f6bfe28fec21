"""
Mesh Server - Rosetta Error Objects.

Every Rosetta error is served as HTTP 500 with body
{code, message, retriable[, details]}. The set of codes is
advertised by /network/options.
"""

from typing import Any, Dict, List, Optional


class RosettaError(Exception):
    """Rosetta API error."""

    def __init__(
        self,
        code: int,
        message: str,
        retriable: bool,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.retriable = retriable
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "code": self.code,
            "message": self.message,
            "retriable": self.retriable,
        }
        if self.details:
            data["details"] = self.details
        return data


INVALID_REQUEST_CODE = 1
NETWORK_ERROR_CODE = 2


def invalid_request(reason: str) -> RosettaError:
    return RosettaError(INVALID_REQUEST_CODE, "Invalid request", False, {"reason": reason})


def network_error(reason: str) -> RosettaError:
    return RosettaError(NETWORK_ERROR_CODE, "Network error", True, {"reason": reason})


def allowed_errors() -> List[Dict[str, Any]]:
    """Error catalogue for /network/options."""
    return [
        RosettaError(INVALID_REQUEST_CODE, "Invalid request", False).to_dict(),
        RosettaError(NETWORK_ERROR_CODE, "Network error", True).to_dict(),
    ]
