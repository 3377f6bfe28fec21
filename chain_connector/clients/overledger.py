"""
Chain Connector - Overledger Client.

============================================================
PURPOSE
============================================================
REST client for a Quant Overledger-style gateway.

AUTHENTICATION:
- OAuth2 client-credentials flow (Basic auth, form body)
- Token cached per client instance with a 5-minute skew
- Refresh is serialized by an asyncio.Lock with a double check,
  so concurrent callers trigger exactly one token request
- A 401 from the REST API invalidates the cached token

============================================================
"""

import asyncio
import json
import logging
import re
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from urllib.parse import quote, urlparse

import aiohttp

from ..errors import ConnectorError, ErrorKind, http_error
from ..logging_utils import mask_value
from .http import JSONHTTPClient


logger = logging.getLogger(__name__)


# Seconds subtracted from expires_in before the token is considered stale.
TOKEN_EXPIRY_SKEW_SECONDS = 300

API_VERSION_PREFIX = "/v2"

_VERSIONED_PATH_RE = re.compile(r"/v\d+(\.\d+)?/?$")


# ============================================================
# REQUEST TYPES
# ============================================================

@dataclass
class TransactionRequest:
    """Body of POST /v2/networks/{id}/transactions."""

    network_id: str
    from_address: str
    to_address: str
    amount: str
    token_id: Optional[str] = None
    gas_limit: Optional[str] = None
    gas_price: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_body(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "networkId": self.network_id,
            "fromAddress": self.from_address,
            "toAddress": self.to_address,
            "amount": self.amount,
        }
        if self.token_id:
            body["tokenId"] = self.token_id
        if self.gas_limit:
            body["gasLimit"] = self.gas_limit
        if self.gas_price:
            body["gasPrice"] = self.gas_price
        if self.metadata:
            body["metadata"] = self.metadata
        return body


# ============================================================
# CLIENT
# ============================================================

class OverledgerClient(JSONHTTPClient):
    """Overledger REST client with OAuth2 token caching."""

    SERVICE_NAME = "overledger"

    def __init__(
        self,
        base_url: str,
        auth_url: str,
        client_id: str,
        client_secret: str,
        tls_skip_verify: bool = False,
        timeout_seconds: float = JSONHTTPClient.DEFAULT_TIMEOUT,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        super().__init__(
            base_url,
            timeout_seconds=timeout_seconds,
            tls_skip_verify=tls_skip_verify,
            session=session,
        )
        self._auth_url = auth_url
        self._client_id = client_id
        self._client_secret = client_secret

        # Token cache
        self._token: Optional[str] = None
        self._expires_at: float = 0.0
        self._token_lock = asyncio.Lock()
        self._clock = time.monotonic

        self._version_in_base = bool(_VERSIONED_PATH_RE.search(urlparse(self._base_url).path))

    # --------------------------------------------------------
    # TOKEN CACHE
    # --------------------------------------------------------

    def _current_token(self) -> Optional[str]:
        if self._token and self._clock() < self._expires_at:
            return self._token
        return None

    @property
    def has_valid_token(self) -> bool:
        return self._current_token() is not None

    async def get_token(self) -> str:
        """Return a valid bearer token, refreshing it at most once at a time."""
        token = self._current_token()
        if token:
            return token

        async with self._token_lock:
            # Another caller may have refreshed while we waited.
            token = self._current_token()
            if token:
                return token
            return await self._fetch_token()

    async def invalidate_token(self, token: Optional[str] = None) -> None:
        """
        Drop the cached token.

        Args:
            token: Only invalidate if the cache still holds this token
        """
        async with self._token_lock:
            if token is None or token == self._token:
                self._token = None
                self._expires_at = 0.0
                logger.info("Overledger token invalidated")

    async def _fetch_token(self) -> str:
        credentials = aiohttp.BasicAuth(self._client_id, self._client_secret)
        try:
            data = await self._request(
                "POST",
                self._auth_url,
                data={"grant_type": "client_credentials"},
                headers={
                    "Authorization": credentials.encode(),
                    "Content-Type": "application/x-www-form-urlencoded",
                },
            )
        except ConnectorError as e:
            raise ConnectorError(
                e.kind,
                f"authentication failed: {e.message}",
                cause=e,
                status_code=e.status_code,
                response_body=e.response_body,
            ) from e

        access_token = data.get("access_token") if isinstance(data, dict) else None
        expires_in = data.get("expires_in") if isinstance(data, dict) else None
        if not isinstance(access_token, str) or not access_token:
            raise ConnectorError(ErrorKind.UPSTREAM, "authentication failed: token response missing access_token")
        if isinstance(expires_in, bool) or not isinstance(expires_in, (int, float)):
            raise ConnectorError(ErrorKind.UPSTREAM, "authentication failed: token response missing expires_in")

        self._token = access_token
        self._expires_at = self._clock() + max(float(expires_in) - TOKEN_EXPIRY_SKEW_SECONDS, 0.0)
        logger.info(
            f"Obtained Overledger token {mask_value(access_token)} "
            f"(expires_in={expires_in}s, client_id={mask_value(self._client_id)})"
        )
        return access_token

    # --------------------------------------------------------
    # REST
    # --------------------------------------------------------

    def _error_for_status(self, status: int, body: str) -> ConnectorError:
        try:
            parsed = json.loads(body)
        except ValueError:
            parsed = None
        if isinstance(parsed, dict) and isinstance(parsed.get("error"), dict):
            err = parsed["error"]
            if err.get("message"):
                message = (
                    f"Overledger API error: {err.get('message')} "
                    f"(code: {err.get('code', '')}, details: {err.get('details', '')}, status: {status})"
                )
                return http_error(self.SERVICE_NAME, status, body, message=message)
        return http_error(self.SERVICE_NAME, status, body)

    def _path(self, *segments: str) -> str:
        path = "/" + "/".join(quote(s, safe="") for s in segments)
        if self._version_in_base:
            return path
        return API_VERSION_PREFIX + path

    async def _api(
        self,
        method: str,
        path: str,
        body: Any = None,
        timeout_seconds: Optional[float] = None,
    ) -> Any:
        token = await self.get_token()
        try:
            return await self._request(
                method,
                path,
                json_body=body,
                timeout_seconds=timeout_seconds,
                headers={
                    "Authorization": f"Bearer {token}",
                    "Content-Type": "application/json",
                },
            )
        except ConnectorError as e:
            if e.status_code == 401:
                await self.invalidate_token(token)
            raise

    async def get_networks(self, timeout_seconds: Optional[float] = None) -> Dict[str, Any]:
        """GET /v2/networks."""
        return await self._api("GET", self._path("networks"), timeout_seconds=timeout_seconds)

    async def get_balances(self, network_id: str, address: str) -> Dict[str, Any]:
        """GET /v2/networks/{id}/addresses/{addr}/balances."""
        return await self._api(
            "GET",
            self._path("networks", network_id, "addresses", address, "balances"),
        )

    async def create_transaction(self, request: TransactionRequest) -> Dict[str, Any]:
        """POST /v2/networks/{id}/transactions."""
        return await self._api(
            "POST",
            self._path("networks", request.network_id, "transactions"),
            body=request.to_body(),
        )

    async def get_transaction_status(self, network_id: str, tx_hash: str) -> Dict[str, Any]:
        """GET /v2/networks/{id}/transactions/{hash}/status."""
        return await self._api(
            "GET",
            self._path("networks", network_id, "transactions", tx_hash, "status"),
        )

    async def test_connection(self) -> None:
        """Verify credentials by obtaining a token."""
        await self.get_token()
