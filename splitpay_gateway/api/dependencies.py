"""Dependency injection for FastAPI endpoints"""

from fastapi import Depends, Request
from splitpay_gateway.infrastructure.clients.checkout import CheckoutClient
from splitpay_gateway.infrastructure.clients.session import SessionStore, TokenRefresher


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_session_store(request: Request) -> SessionStore:
    """Session built from the caller's bearer token and refresh cookie"""
    authorization = request.headers.get("Authorization", "")
    scheme, _, token = authorization.partition(" ")
    access_token = token.strip() if scheme.lower() == "bearer" and token.strip() else None
    return SessionStore(access_token=access_token, refresh_token=request.cookies.get("refreshToken"))


def get_token_refresher(session: SessionStore = Depends(get_session_store)) -> TokenRefresher:
    """
    Token refresher bound to this request's session.

    Single-flight holds per refresher, so it covers concurrent calls made by
    this request's checkout client, not calls from other requests.
    """
    return TokenRefresher(session)


def get_checkout_client(
    session: SessionStore = Depends(get_session_store),
    refresher: TokenRefresher = Depends(get_token_refresher),
) -> CheckoutClient:
    """Provide Checkout API client instance"""
    return CheckoutClient(session, refresher)
