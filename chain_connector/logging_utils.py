"""
Chain Connector - Secure Logging Utilities.

============================================================
PURPOSE
============================================================
Logging helpers for back-end calls:
- Credential masking (bearer tokens, client secrets)
- Request parameter sanitization
- Entry-point logging setup

============================================================
SECURITY REQUIREMENTS
============================================================
1. NEVER log raw bearer tokens or client secrets
2. Mask sensitive headers (Authorization, etc.)
3. Sanitize bodies containing credentials

============================================================
"""

import logging
import re
from typing import Any, Dict, Optional


logger = logging.getLogger(__name__)


# ============================================================
# SENSITIVE DATA PATTERNS
# ============================================================

# Header names that should be masked
SENSITIVE_HEADERS = {
    "authorization",
    "proxy-authorization",
    "x-api-key",
    "api-key",
    "cookie",
}

# Parameter names that should be masked
SENSITIVE_PARAMS = {
    "client_secret",
    "client_id",
    "secret",
    "password",
    "access_token",
    "refresh_token",
    "token",
    "api_key",
    "signed_tx",
    "signed_transaction",
}

_URL_SECRET_PATTERN = re.compile(r"(/v3/)([A-Za-z0-9]{16,})")


# ============================================================
# MASKING FUNCTIONS
# ============================================================

def mask_value(value: str, show_chars: int = 4) -> str:
    """
    Mask a sensitive value, showing only first few chars.

    Args:
        value: Value to mask
        show_chars: Number of chars to show at start

    Returns:
        Masked value
    """
    if not value or len(value) <= show_chars:
        return "***"
    return f"{value[:show_chars]}...***"


def mask_headers(headers: Optional[Dict[str, str]]) -> Dict[str, str]:
    """Mask sensitive headers."""
    if not headers:
        return {}

    masked = {}
    for key, value in headers.items():
        if key.lower() in SENSITIVE_HEADERS:
            masked[key] = mask_value(str(value))
        else:
            masked[key] = value
    return masked


def mask_params(params: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Mask sensitive parameters, recursing into nested mappings."""
    if not params:
        return {}

    masked: Dict[str, Any] = {}
    for key, value in params.items():
        if key.lower() in SENSITIVE_PARAMS:
            masked[key] = mask_value(str(value)) if value else value
        elif isinstance(value, dict):
            masked[key] = mask_params(value)
        else:
            masked[key] = value
    return masked


def mask_url(url: str) -> str:
    """Mask provider project keys embedded in RPC URLs (e.g. Infura /v3/<key>)."""
    if not url:
        return url
    return _URL_SECRET_PATTERN.sub(lambda m: f"{m.group(1)}{mask_value(m.group(2))}", url)


# ============================================================
# SETUP
# ============================================================

def configure_logging(level: str = "INFO") -> None:
    """Configure root logging for an entry point."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
