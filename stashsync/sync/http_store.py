"""
HTTP adapter for a remote document store.

Speaks a minimal REST contract:

    GET  {base_url}/records/{code}              -> 200 record JSON | 404
    PUT  {base_url}/records/{code}              -> whole-record write
    PUT  {base_url}/records/{code}?merge=true   -> top-level field update
    PUT  ...?expected_version=N                 -> 409/412 unless the stored
                                                   version (0 if absent) is N

Live updates are emulated by polling, since the contract has no push
channel.

Usage:
    async with HttpRemoteStore("https://records.example.com") as store:
        record = await store.get("AB12CD")
"""

import asyncio
from typing import Optional

import httpx
import structlog

from stashsync.config import Settings, get_settings
from stashsync.errors import CorruptRemoteState, RemoteUnavailable, VersionMismatch

from .store import OnChange, RemoteStore, Unsubscribe

logger = structlog.get_logger(__name__)

# Responses to a write whose expected version no longer holds
PRECONDITION_FAILED = frozenset({409, 412})


class HttpRemoteStore(RemoteStore):
    """Remote store reached over HTTP with automatic retries."""

    supports_subscriptions = True

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout_seconds: float | None = None,
        retry_count: int | None = None,
        retry_delay_ms: int | None = None,
        poll_interval_seconds: float | None = None,
        settings: Settings | None = None,
    ):
        """
        Initialize the HTTP store.

        Args:
            base_url: Store URL (defaults to STASHSYNC_REMOTE_URL)
            api_key: Bearer token (defaults to STASHSYNC_REMOTE_API_KEY)
            timeout_seconds: Per-request timeout
            retry_count: Retries after a failed request
            retry_delay_ms: Delay between retries
            poll_interval_seconds: How often subscriptions poll the record
            settings: Optional settings override
        """
        settings = settings or get_settings()

        self.base_url = (base_url or settings.remote_url).rstrip("/")
        if api_key is None and settings.remote_api_key is not None:
            api_key = settings.remote_api_key.get_secret_value()
        self.api_key = api_key
        self.timeout_seconds = timeout_seconds if timeout_seconds is not None else settings.remote_timeout_seconds
        self.retry_count = retry_count if retry_count is not None else settings.request_retries
        self.retry_delay_ms = retry_delay_ms if retry_delay_ms is not None else settings.retry_delay_ms
        self.poll_interval_seconds = (
            poll_interval_seconds if poll_interval_seconds is not None else settings.poll_interval_seconds
        )

        self._client: httpx.AsyncClient | None = None
        self._pollers: set[asyncio.Task] = set()

    async def __aenter__(self) -> "HttpRemoteStore":
        """Async context manager entry."""
        await self._ensure_client()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()

    async def _ensure_client(self) -> None:
        """Ensure HTTP client is initialized."""
        if self._client is None:
            headers = {"Content-Type": "application/json"}
            if self.api_key:
                headers["Authorization"] = f"Bearer {self.api_key}"

            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=headers,
                timeout=httpx.Timeout(self.timeout_seconds),
            )

    async def close(self) -> None:
        """Stop pollers and close the HTTP client."""
        for task in list(self._pollers):
            task.cancel()
        if self._pollers:
            await asyncio.gather(*self._pollers, return_exceptions=True)
        self._pollers.clear()

        if self._client:
            await self._client.aclose()
            self._client = None

    async def _request(
        self,
        method: str,
        path: str,
        data: dict | None = None,
        params: dict | None = None,
    ) -> Optional[httpx.Response]:
        """
        Make a request with automatic retries.

        Returns:
            The response, or None for a 404. Precondition failures are
            returned as-is without retrying.

        Raises:
            RemoteUnavailable: On request failure after retries
        """
        await self._ensure_client()

        last_error: RemoteUnavailable | None = None

        for attempt in range(self.retry_count + 1):
            try:
                if method.upper() == "GET":
                    response = await self._client.get(path, params=params)
                else:
                    response = await self._client.put(path, json=data or {}, params=params)

                if response.status_code == 404:
                    return None
                if response.status_code in PRECONDITION_FAILED:
                    return response

                response.raise_for_status()
                return response

            except httpx.TimeoutException as e:
                last_error = RemoteUnavailable(f"Request timed out: {e}")
                logger.warning(
                    "Record store request timeout",
                    path=path,
                    attempt=attempt + 1,
                    max_attempts=self.retry_count + 1,
                )

            except httpx.HTTPStatusError as e:
                last_error = RemoteUnavailable(
                    f"HTTP error {e.response.status_code}: {e.response.text}"
                )
                logger.warning(
                    "Record store HTTP error",
                    path=path,
                    status_code=e.response.status_code,
                    attempt=attempt + 1,
                )

            except httpx.HTTPError as e:
                last_error = RemoteUnavailable(f"Request failed: {e}")
                logger.warning(
                    "Record store request failed",
                    path=path,
                    error=str(e),
                    attempt=attempt + 1,
                )

            if attempt < self.retry_count:
                await asyncio.sleep(self.retry_delay_ms / 1000)

        raise last_error

    async def get(self, code: str) -> Optional[dict]:
        response = await self._request("GET", f"/records/{code}")
        if response is None:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise CorruptRemoteState(code, f"response is not JSON: {e}") from e

    async def put(
        self,
        code: str,
        data: dict,
        merge: bool = False,
        expected_version: Optional[int] = None,
    ) -> None:
        params = {}
        if merge:
            params["merge"] = "true"
        if expected_version is not None:
            params["expected_version"] = str(expected_version)

        response = await self._request("PUT", f"/records/{code}", data=data, params=params or None)
        if response is not None and response.status_code in PRECONDITION_FAILED:
            logger.info(
                "Record store refused write: version moved",
                access_code=code,
                expected_version=expected_version,
            )
            raise VersionMismatch(code, expected_version if expected_version is not None else 0)

    def subscribe(self, code: str, on_change: OnChange) -> Unsubscribe:
        """Poll ``code`` and call ``on_change`` whenever its version or
        invalidation flag changes. Must be called from a running loop."""
        task = asyncio.create_task(self._poll(code, on_change))
        self._pollers.add(task)
        task.add_done_callback(self._pollers.discard)

        def unsubscribe() -> None:
            task.cancel()

        return unsubscribe

    async def _poll(self, code: str, on_change: OnChange) -> None:
        """Background task emitting record changes."""
        last_seen: tuple | None = None
        while True:
            try:
                record = await self.get(code)
                marker = (
                    (record.get("version"), record.get("invalidated"))
                    if isinstance(record, dict)
                    else (None, None)
                )
                if marker != last_seen:
                    last_seen = marker
                    on_change(record)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.warning(
                    "Record poll failed",
                    access_code=code,
                    error=str(e),
                )

            await asyncio.sleep(self.poll_interval_seconds)
