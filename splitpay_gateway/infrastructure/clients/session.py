"""Access token storage and single-flight token refresh"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from splitpay_gateway.config import settings
from splitpay_gateway.infrastructure.observability.metrics import token_refresh_counter

logger = logging.getLogger(__name__)

REFRESH_PATH = "/api/user/refresh-tokens"


class SessionStore:
    """Holds the bearer token used for checkout API calls"""

    def __init__(self, access_token: Optional[str] = None, refresh_token: Optional[str] = None):
        self._access_token = access_token
        self.refresh_token = refresh_token
        self.in_app = False

    def get(self) -> Optional[str]:
        return self._access_token

    def set(self, access_token: Optional[str], in_app: Optional[bool] = None) -> None:
        self._access_token = access_token
        if in_app is not None:
            self.in_app = in_app

    def clear(self) -> None:
        self._access_token = None
        self.in_app = False


@dataclass
class RefreshResult:
    """Outcome of POST /api/user/refresh-tokens"""

    success: bool
    access_token: Optional[str] = None
    in_app: bool = False
    error: Optional[str] = None


def _as_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return bool(value)


class TokenRefresher:
    """
    Refreshes the access token with the auth API.

    Concurrent callers of the same refresher share one in-flight refresh.
    A 401/403 from the auth API is reported as a failed result; clearing the
    session is left to the caller.
    """

    def __init__(
        self,
        store: SessionStore,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.store = store
        self.base_url = (base_url or settings.checkout_api_base).rstrip("/")
        self.timeout = timeout or settings.token_refresh_timeout_seconds
        self.transport = transport
        self._inflight: Optional[asyncio.Future] = None

    async def refresh(self) -> RefreshResult:
        if self._inflight is None or self._inflight.done():
            self._inflight = asyncio.ensure_future(self._refresh())
        return await asyncio.shield(self._inflight)

    async def _refresh(self) -> RefreshResult:
        cookies = {"refreshToken": self.store.refresh_token} if self.store.refresh_token else None

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport, cookies=cookies) as client:
            try:
                response = await client.post(f"{self.base_url}{REFRESH_PATH}", json={})
            except httpx.TimeoutException:
                token_refresh_counter.labels(outcome="timeout").inc()
                return RefreshResult(success=False, error="Request timed out")
            except httpx.RequestError as e:
                token_refresh_counter.labels(outcome="error").inc()
                return RefreshResult(success=False, error=f"Refresh failed: {e}")

        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        if response.status_code in (401, 403):
            token_refresh_counter.labels(outcome="rejected").inc()
            return RefreshResult(success=False, error=body.get("error") or "No valid session")

        data = body.get("data") or {}
        access_token = data.get("accessToken")
        if not body.get("success") or not access_token:
            token_refresh_counter.labels(outcome="error").inc()
            return RefreshResult(success=False, error=body.get("error") or "Refresh failed")

        in_app = any(_as_bool(data.get(key)) for key in ("inapp", "inApp", "inappuse"))
        self.store.set(access_token, in_app=in_app)
        token_refresh_counter.labels(outcome="success").inc()
        logger.info("Access token refreshed", extra={"in_app": in_app})
        return RefreshResult(success=True, access_token=access_token, in_app=in_app)
