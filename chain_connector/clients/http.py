"""
Chain Connector - JSON HTTP Client Base.

============================================================
PURPOSE
============================================================
Shared aiohttp plumbing for back-end clients:
- Lazily created, shared ClientSession (safe for concurrent use)
- Per-call timeouts
- JSON encoding/decoding
- Uniform status classification into ConnectorError

============================================================
"""

import asyncio
import json
import logging
from typing import Any, Dict, Optional

import aiohttp

from ..errors import ConnectorError, ErrorKind, http_error, network_error
from ..logging_utils import mask_headers, mask_url


logger = logging.getLogger(__name__)


class JSONHTTPClient:
    """
    Base class for JSON-over-HTTP back-end clients.

    Subclasses set SERVICE_NAME and may override _error_for_status()
    to decode structured error bodies.
    """

    SERVICE_NAME = "http"
    DEFAULT_TIMEOUT = 30.0

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = DEFAULT_TIMEOUT,
        tls_skip_verify: bool = False,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout_seconds = timeout_seconds
        self._tls_skip_verify = tls_skip_verify
        self._session = session
        self._owns_session = session is None

    @property
    def base_url(self) -> str:
        return self._base_url

    # --------------------------------------------------------
    # SESSION
    # --------------------------------------------------------

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            connector = None
            if self._tls_skip_verify:
                logger.warning(f"{self.SERVICE_NAME}: TLS peer verification disabled")
                connector = aiohttp.TCPConnector(ssl=False)
            self._session = aiohttp.ClientSession(
                connector=connector,
                timeout=aiohttp.ClientTimeout(total=self._timeout_seconds),
            )
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        """Close the underlying session if this client owns it."""
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()
        self._session = None

    # --------------------------------------------------------
    # REQUESTS
    # --------------------------------------------------------

    def _url(self, path: str) -> str:
        if path.startswith("http://") or path.startswith("https://"):
            return path
        if not path.startswith("/"):
            path = "/" + path
        return self._base_url + path

    def _error_for_status(self, status: int, body: str) -> ConnectorError:
        return http_error(self.SERVICE_NAME, status, body)

    async def _request(
        self,
        method: str,
        path: str,
        json_body: Any = None,
        data: Any = None,
        headers: Optional[Dict[str, str]] = None,
        timeout_seconds: Optional[float] = None,
    ) -> Any:
        """
        Issue a request and decode the JSON response.

        Args:
            timeout_seconds: Per-call override of the client timeout

        Raises:
            ConnectorError: classified by HTTP status, transport failure
                (Unavailable) or malformed body (Upstream)
        """
        url = self._url(path)
        request_headers = {"Accept": "application/json"}
        if json_body is not None:
            request_headers["Content-Type"] = "application/json"
        if headers:
            request_headers.update(headers)

        # An explicit timeout=None would disable the session default.
        if timeout_seconds is None:
            timeout_seconds = self._timeout_seconds
        timeout = aiohttp.ClientTimeout(total=timeout_seconds)

        logger.debug(
            f"{self.SERVICE_NAME} {method} {mask_url(url)} headers={mask_headers(request_headers)}"
        )

        session = self._get_session()
        try:
            async with session.request(
                method,
                url,
                data=json.dumps(json_body) if json_body is not None else data,
                headers=request_headers,
                timeout=timeout,
            ) as response:
                text = await response.text()
                if response.status >= 400:
                    logger.debug(f"{self.SERVICE_NAME} {method} {mask_url(url)} -> {response.status}")
                    raise self._error_for_status(response.status, text)
        except ConnectorError:
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise network_error(self.SERVICE_NAME, e) from e

        if not text.strip():
            return {}
        try:
            return json.loads(text)
        except ValueError as e:
            raise ConnectorError(
                ErrorKind.UPSTREAM,
                f"{self.SERVICE_NAME} returned malformed JSON: {text[:200]}",
                cause=e,
                status_code=response.status,
                response_body=text,
            ) from e

    async def __aenter__(self) -> "JSONHTTPClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
