"""Checkout API HTTP client for checkout totals, user details and contacts"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence

import httpx

from splitpay_gateway.config import settings
from splitpay_gateway.domain.exceptions import AuthenticationError, CheckoutAPIError, InvalidAmountError
from splitpay_gateway.domain.models import CheckoutDetails, ContactPage, Participant
from splitpay_gateway.domain.money import parse_money
from splitpay_gateway.infrastructure.clients.session import SessionStore, TokenRefresher
from splitpay_gateway.infrastructure.observability.metrics import checkout_api_failures_counter

logger = logging.getLogger(__name__)


def _participant_from_user(item: Dict[str, Any]) -> Participant:
    user = item.get("user", item)
    return Participant(
        id=str(user["id"]),
        display_name=user.get("username") or user.get("firstName") or str(user["id"]),
        logo=user.get("logo"),
    )


class CheckoutClient:
    """Client for the external checkout API"""

    def __init__(
        self,
        session: SessionStore,
        refresher: Optional[TokenRefresher] = None,
        base_url: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_base: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.session = session
        self.refresher = refresher
        self.base_url = (base_url or settings.checkout_api_base).rstrip("/")
        self.timeout = timeout or settings.http_timeout_seconds
        self.max_retries = max_retries or settings.http_max_retries
        self.backoff_base = settings.http_backoff_base if backoff_base is None else backoff_base
        self.transport = transport

    async def _ensure_token(self) -> str:
        token = self.session.get()
        if token:
            return token
        if self.refresher is not None:
            result = await self.refresher.refresh()
            if result.success and result.access_token:
                return result.access_token
        self.session.clear()
        raise AuthenticationError("No access token")

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
    ) -> Any:
        """
        Send an authenticated request and return the decoded JSON body.

        Retry strategy:
        - Exponential backoff: base, 2*base, 4*base ... (base * 2^(attempt-1))
        - Retries on 5xx errors and network failures, up to max_retries attempts
        - One token refresh on 401/403, then AuthenticationError

        Raises:
            AuthenticationError: no token, or token rejected after refresh
            CheckoutAPIError: timeout, HTTP error, or non-JSON response
        """
        token = await self._ensure_token()
        refreshed = False
        attempt = 0

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            while True:
                try:
                    response = await client.request(
                        method,
                        f"{self.base_url}{path}",
                        params=params,
                        json=json,
                        headers={"Authorization": f"Bearer {token}"},
                    )

                    if response.status_code in (401, 403):
                        if self.refresher is not None and not refreshed:
                            refreshed = True
                            result = await self.refresher.refresh()
                            if result.success and result.access_token:
                                token = result.access_token
                                continue
                        self.session.clear()
                        raise AuthenticationError("Unauthorized")

                    response.raise_for_status()
                    return response.json()

                except httpx.TimeoutException as e:
                    checkout_api_failures_counter.labels(reason="timeout").inc()
                    raise CheckoutAPIError(f"Checkout API timeout after {self.timeout}s") from e

                except (httpx.HTTPStatusError, httpx.RequestError) as e:
                    status = e.response.status_code if isinstance(e, httpx.HTTPStatusError) else None
                    checkout_api_failures_counter.labels(reason=str(status) if status else "network").inc()

                    if status is not None and status < 500:
                        raise CheckoutAPIError(f"Checkout API error: {status}") from e

                    attempt += 1
                    if attempt >= self.max_retries:
                        raise CheckoutAPIError(f"Checkout API unavailable after {attempt} attempts") from e

                    backoff = self.backoff_base * (2 ** (attempt - 1))
                    logger.warning(
                        "Checkout API call failed, retrying",
                        extra={"path": path, "attempt": attempt, "backoff_seconds": backoff},
                    )
                    await asyncio.sleep(backoff)

                except ValueError as e:
                    raise CheckoutAPIError(f"Invalid JSON from checkout API: {e}") from e

    @staticmethod
    def _unwrap(body: Any) -> Any:
        """Return the data of a {success, data, error} envelope, or the body itself"""
        if isinstance(body, dict) and "success" in body:
            if not body.get("success"):
                raise CheckoutAPIError(body.get("error") or "Checkout API reported failure")
            return body.get("data")
        return body

    async def get_checkout_details(self, checkout_token: str) -> CheckoutDetails:
        """Fetch the checkout total and merchant for a checkout token"""
        body = self._unwrap(await self._request("GET", f"/api/checkout/details-by-token/{checkout_token}"))

        try:
            checkout = body["checkout"]
            merchant_id = (
                body.get("merchantId")
                or body.get("merchantBaseId")
                or (body.get("merchant") or {}).get("id")
                or ((checkout.get("merchant") or {}).get("id"))
                or ""
            )
            return CheckoutDetails(
                checkout_id=str(checkout["id"]),
                total=parse_money(checkout["totalAmount"], settings.default_currency),
                merchant_id=str(merchant_id),
                status=checkout.get("state"),
            )
        except (KeyError, TypeError, AttributeError, InvalidAmountError) as e:
            raise CheckoutAPIError(f"Invalid checkout data: {e}") from e

    async def get_current_user(self) -> Participant:
        """Fetch the signed-in user"""
        data = self._unwrap(await self._request("GET", "/api/user/user-details"))
        try:
            participant = _participant_from_user(data)
        except (KeyError, TypeError) as e:
            raise CheckoutAPIError(f"Invalid user data: {e}") from e
        return Participant(id=participant.id, display_name=participant.display_name, is_current_user=True, logo=participant.logo)

    async def get_user_details(self, user_ids: Sequence[str]) -> List[Participant]:
        """Fetch display details for several users"""
        if not user_ids:
            return []
        data = self._unwrap(await self._request("POST", "/api/user/user-details", json=list(user_ids)))
        try:
            return [_participant_from_user(item) for item in data or []]
        except (KeyError, TypeError) as e:
            raise CheckoutAPIError(f"Invalid user data: {e}") from e

    async def search_contacts(
        self,
        page: int = 0,
        size: int = 20,
        search_term: Optional[str] = None,
        exclude_user_ids: Optional[Sequence[str]] = None,
        sort: str = "username,asc",
    ) -> ContactPage:
        """Fetch one page of the user's contacts"""
        body: Dict[str, Any] = {}
        if search_term:
            body["searchTerm"] = search_term
        if exclude_user_ids:
            body["excludeUserIds"] = list(exclude_user_ids)

        data = self._unwrap(
            await self._request(
                "POST",
                "/api/user/contacts",
                params={"page": page, "size": size, "sort": sort},
                json=body,
            )
        )
        if data is None:
            return ContactPage(contacts=[], page_number=page, total_pages=0, last=True)

        try:
            pageable = data.get("pageable") or {}
            return ContactPage(
                contacts=[_participant_from_user(item) for item in data.get("content", [])],
                page_number=int(pageable.get("pageNumber", page)),
                total_pages=int(pageable.get("totalPages", 0)),
                last=bool(data.get("last", True)),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise CheckoutAPIError(f"Invalid contacts data: {e}") from e
