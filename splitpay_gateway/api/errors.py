"""Mapping of domain exceptions to HTTP errors"""

from fastapi import HTTPException

from splitpay_gateway.domain.exceptions import (
    AmountExceedsTotal,
    AuthenticationError,
    CheckoutAPIError,
    DomainException,
    DuplicateParticipantError,
    EmptyParticipantsError,
    InvalidAmountError,
    InvalidFlowStateError,
    ReconciliationFailed,
    UnknownParticipantError,
)

STATUS_BY_EXCEPTION = [
    (AmountExceedsTotal, 422),
    (ReconciliationFailed, 500),
    (InvalidAmountError, 422),
    (EmptyParticipantsError, 422),
    (DuplicateParticipantError, 422),
    (UnknownParticipantError, 400),
    (InvalidFlowStateError, 409),
    (AuthenticationError, 401),
    (CheckoutAPIError, 503),
]


def to_http_exception(exc: DomainException) -> HTTPException:
    """Build an HTTPException whose detail names the error kind"""
    status_code = next(
        (status for exc_type, status in STATUS_BY_EXCEPTION if isinstance(exc, exc_type)),
        400,
    )
    message = str(exc)
    if isinstance(exc, ReconciliationFailed):
        message = "Amounts could not be reconciled; the previous split was kept"
    elif isinstance(exc, CheckoutAPIError) and not isinstance(exc, AuthenticationError):
        message = "Checkout service unavailable"

    return HTTPException(
        status_code=status_code,
        detail={"error": type(exc).__name__, "message": message},
    )
