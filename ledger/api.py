"""HTTP adapter for the finance backend."""

import json
import logging
from typing import Any, Optional

import httpx

from ledger.config import Config
from ledger.errors import DeserializationFailure, NetworkFailure, RequestFailed

logger = logging.getLogger(__name__)

UNKNOWN_ERROR = "Unknown error"


class ApiClient:
    """
    Thin async wrapper around the REST backend.

    Every call opens its own httpx.AsyncClient, so one ApiClient can be
    driven from several event loops (Streamlit runs a fresh asyncio.run
    per interaction). No retries, no timeout, no auth headers.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            base_url: Backend root (defaults to Config.API_BASE_URL)
            transport: Optional httpx transport, e.g. httpx.MockTransport in tests
        """
        self.base_url = (base_url or Config.API_BASE_URL).rstrip("/")
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=None,
            transport=self._transport,
        )

    async def request(self, method: str, path: str, body: Any = None) -> Any:
        """
        Perform a request and return the decoded JSON body.

        Raises:
            NetworkFailure: the request could not be sent or received
            RequestFailed: non-2xx status
            DeserializationFailure: 2xx response with a body that is not JSON
        """
        url = f"{self.base_url}{path}"
        logger.debug(f"{method} {url}")
        try:
            async with self._client() as client:
                if body is None:
                    response = await client.request(method, path)
                else:
                    response = await client.request(method, path, json=body)
        except httpx.RequestError as e:
            logger.error(f"Request failed {method} {url}: {e}")
            raise NetworkFailure(f"Could not reach {url}: {e}") from e

        logger.info(f"API Request: {method} {url} - Status: {response.status_code}")

        if not response.is_success:
            raise RequestFailed(response.status_code, _error_text(response))

        try:
            return response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning(f"Malformed JSON from {method} {url}: {e}")
            raise DeserializationFailure(f"Invalid JSON from {path}: {e}") from e

    async def get(self, path: str) -> Any:
        return await self.request("GET", path)

    async def post(self, path: str, body: Any) -> Any:
        return await self.request("POST", path, body=body)


def _error_text(response: httpx.Response) -> str:
    try:
        text = response.text.strip()
    except (httpx.HTTPError, UnicodeDecodeError, LookupError):
        text = ""
    if not text:
        text = UNKNOWN_ERROR
    logger.warning(f"Backend returned {response.status_code}: {text}")
    return text
