"""Amadeus OAuth2 token service: client-credentials exchange with a cached bearer token."""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable

import httpx

from tripscout.config import settings
from tripscout.errors import AuthError, UpstreamError

logger = logging.getLogger(__name__)

TOKEN_PATH = "/v1/security/oauth2/token"


@dataclass(frozen=True)
class CredentialState:
    token: str
    expires_at: float  # clock() timestamp


class TokenService:
    """Holds one bearer token per Amadeus client and refreshes it on expiry or rejection."""

    def __init__(
        self,
        client_id: str | None = None,
        client_secret: str | None = None,
        base_url: str | None = None,
        http_client: httpx.AsyncClient | None = None,
        clock: Callable[[], float] = time.monotonic,
        expiry_buffer_seconds: int | None = None,
    ):
        self._client_id = settings.amadeus_client_id if client_id is None else client_id
        self._client_secret = (
            settings.amadeus_client_secret if client_secret is None else client_secret
        )
        self._base_url = base_url or settings.amadeus_base_url
        self._client = http_client
        self._clock = clock
        self._buffer = (
            settings.token_expiry_buffer_seconds
            if expiry_buffer_seconds is None
            else expiry_buffer_seconds
        )
        self._state: CredentialState | None = None
        self._lock = asyncio.Lock()
        self.exchange_count = 0

    @property
    def is_configured(self) -> bool:
        return bool(self._client_id and self._client_secret)

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=settings.http_timeout_seconds,
            )
        return self._client

    def _is_fresh(self) -> bool:
        return (
            self._state is not None
            and self._clock() < self._state.expires_at - self._buffer
        )

    async def get_token(self) -> str:
        """Return a valid bearer token, exchanging credentials when needed.

        Refreshes are single-flight: callers queued on the lock re-check the
        state and reuse a token another caller just obtained.
        """
        if self._is_fresh():
            return self._state.token

        async with self._lock:
            if self._is_fresh():
                return self._state.token
            self._state = await self._exchange()
            return self._state.token

    def invalidate(self, rejected_token: str | None = None) -> None:
        """Drop the cached token. With ``rejected_token``, only if it is still the current one."""
        if self._state is None:
            return
        if rejected_token is not None and self._state.token != rejected_token:
            return
        self._state = None
        logger.info("Amadeus token invalidated")

    async def _exchange(self) -> CredentialState:
        if not self.is_configured:
            raise AuthError("Amadeus client id and secret are not configured")

        client = await self._get_client()
        for attempt in range(3):
            try:
                resp = await client.post(
                    TOKEN_PATH,
                    data={
                        "grant_type": "client_credentials",
                        "client_id": self._client_id,
                        "client_secret": self._client_secret,
                    },
                    headers={"Content-Type": "application/x-www-form-urlencoded"},
                )
                if resp.status_code == 429 and attempt < 2:
                    await asyncio.sleep(2 ** attempt)
                    continue
                resp.raise_for_status()
                data = resp.json()
                token = data["access_token"]
                expires_in = int(data.get("expires_in", 1799))
            except httpx.HTTPStatusError as e:
                logger.error(f"Amadeus token request failed: {e.response.status_code}")
                raise AuthError(
                    f"Amadeus authentication failed: {e.response.status_code}"
                ) from e
            except httpx.RequestError as e:
                logger.error(f"Amadeus token request error: {e}")
                raise AuthError(f"Amadeus authentication request failed: {e}") from e
            except (KeyError, TypeError, ValueError) as e:
                raise AuthError("Amadeus token response was malformed") from e

            self.exchange_count += 1
            logger.info(f"Amadeus token refreshed (expires in {expires_in}s)")
            return CredentialState(token=token, expires_at=self._clock() + expires_in)

        raise AuthError("Amadeus token endpoint kept rate limiting")

    async def authorized_get(self, path: str, params: dict[str, Any]) -> httpx.Response:
        """GET a protected endpoint, retrying exactly once with a fresh token on 401."""
        token = await self.get_token()
        resp = await self._send(path, params, token)
        if resp.status_code != 401:
            return resp

        logger.info(f"Amadeus rejected token for {path}, refreshing and retrying once")
        self.invalidate(token)
        token = await self.get_token()
        resp = await self._send(path, params, token)
        if resp.status_code == 401:
            raise AuthError(f"Amadeus rejected a freshly issued token for {path}")
        return resp

    async def _send(self, path: str, params: dict[str, Any], token: str) -> httpx.Response:
        client = await self._get_client()
        try:
            return await client.get(
                path,
                params=params,
                headers={"Authorization": f"Bearer {token}"},
            )
        except httpx.TimeoutException as e:
            raise UpstreamError(f"Amadeus request timed out: {path}") from e
        except httpx.RequestError as e:
            raise UpstreamError(f"Amadeus request failed: {e}") from e

    async def close(self):
        if self._client:
            await self._client.aclose()
            self._client = None


token_service = TokenService()
