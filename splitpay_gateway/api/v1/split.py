"""POST /v1/split/even and /v1/split/adjust - stateless split computations"""

import logging
import time
from fastapi import APIRouter, HTTPException, Request

from splitpay_gateway.api.dependencies import get_request_id
from splitpay_gateway.api.errors import to_http_exception
from splitpay_gateway.api.v1.schemas import AdjustRequest, AllocationResponse, EvenSplitRequest
from splitpay_gateway.config import settings
from splitpay_gateway.domain.exceptions import DomainException
from splitpay_gateway.domain.money import to_cents
from splitpay_gateway.domain.splitting import adjust, even_split
from splitpay_gateway.infrastructure.observability.logging import log_split_event
from splitpay_gateway.infrastructure.observability.metrics import record_split

router = APIRouter()


def _check_participant_count(count: int) -> None:
    if count > settings.max_participants:
        raise HTTPException(
            status_code=422,
            detail={"error": "TooManyParticipants", "message": f"At most {settings.max_participants} participants"},
        )


@router.post("/split/even", response_model=AllocationResponse)
def split_even(request_body: EvenSplitRequest, request: Request):
    """
    Split a total evenly.

    The first n-1 participants get the floor share; the last absorbs the
    leftover cents so the shares sum exactly to the total.
    """
    start_time = time.time()
    request_id = get_request_id(request)
    participants = [p.to_domain() for p in request_body.participants]
    _check_participant_count(len(participants))

    try:
        allocation = even_split(request_body.total.cents, participants, request_body.total.currency)
    except DomainException as e:
        record_split("even", "error")
        logging.warning(f"Even split rejected: {e}", extra={"request_id": request_id})
        raise to_http_exception(e)

    record_split("even", "ok", len(participants))
    log_split_event(
        request_id, None, "even", "even", allocation.total_cents, len(participants),
        (time.time() - start_time) * 1000,
    )
    return AllocationResponse.from_domain(allocation)


@router.post("/split/adjust", response_model=AllocationResponse)
def split_adjust(request_body: AdjustRequest, request: Request):
    """
    Keep the locked amounts and redistribute the remainder.

    Errors:
        422 AmountExceedsTotal: locked amounts exceed the total
        500 ReconciliationFailed: result did not reconcile (previous split stands)
    """
    start_time = time.time()
    request_id = get_request_id(request)
    total = request_body.total
    participants = [p.to_domain() for p in request_body.participants]
    _check_participant_count(len(participants))

    try:
        # Redistribution depends only on total, order and locked entries
        current = even_split(total.cents, participants, total.currency)
        locked = {pid: to_cents(amount) for pid, amount in request_body.locked.items()}
        allocation = adjust(current, locked)

    except DomainException as e:
        record_split("adjust", "error")
        logging.warning(f"Adjustment rejected: {e}", extra={"request_id": request_id})
        raise to_http_exception(e)

    record_split("adjust", "ok", len(participants))
    log_split_event(
        request_id, None, "adjust", "custom", allocation.total_cents, len(participants),
        (time.time() - start_time) * 1000,
    )
    return AllocationResponse.from_domain(allocation)
