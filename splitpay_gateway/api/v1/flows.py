"""/v1/flows - stateful split flow: even split, adjust, save/discard, finalize"""

import time
import logging
import uuid
from typing import Callable, List, Tuple
from urllib.parse import urlencode
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from splitpay_gateway.api.dependencies import get_checkout_client, get_request_id
from splitpay_gateway.api.errors import to_http_exception
from splitpay_gateway.api.v1.schemas import (
    AllocationResponse,
    EditRequest,
    FinalizeResponse,
    FlowCreateRequest,
    FlowResponse,
    ParticipantSchema,
    ResetRequest,
    ShareSchema,
)
from splitpay_gateway.config import settings
from splitpay_gateway.domain.exceptions import DomainException, InvalidAmountError
from splitpay_gateway.domain.models import Money, Participant, SplitMode
from splitpay_gateway.domain.money import format_cents, resolve_total, to_cents
from splitpay_gateway.domain.participants import build_participants
from splitpay_gateway.domain.workflow import SplitFlow
from splitpay_gateway.infrastructure.clients.checkout import CheckoutClient
from splitpay_gateway.infrastructure.database.models import SplitFlowRecord
from splitpay_gateway.infrastructure.database.repositories import SplitFlowRepository
from splitpay_gateway.infrastructure.database.session import get_db
from splitpay_gateway.infrastructure.observability.logging import log_split_event
from splitpay_gateway.infrastructure.observability.metrics import record_split
from splitpay_gateway.utils.params import normalize_param, normalize_params

router = APIRouter()


def _check_participant_count(participants: List[Participant]) -> None:
    if len(participants) > settings.max_participants:
        raise HTTPException(
            status_code=422,
            detail={"error": "TooManyParticipants", "message": f"At most {settings.max_participants} participants"},
        )


def _to_response(db_flow: SplitFlowRecord, flow: SplitFlow) -> FlowResponse:
    edits = None
    if flow.mode == SplitMode.ADJUSTING:
        edits = [ShareSchema(participant_id=pid, amount=format_cents(cents)) for pid, cents in flow.edits.items()]

    return FlowResponse(
        flow_id=str(db_flow.id),
        mode=flow.mode.value,
        checkout_token=db_flow.checkout_token,
        participants=[ParticipantSchema.from_domain(p) for p in flow.allocation.participants],
        allocation=AllocationResponse.from_domain(flow.allocation),
        edits=edits,
        locked_ids=flow.locked_ids,
        created_at=db_flow.created_at.isoformat(),
        updated_at=db_flow.updated_at.isoformat(),
    )


def _load_flow(flow_id: str, db: Session, for_update: bool = False) -> Tuple[SplitFlowRecord, SplitFlow]:
    try:
        flow_uuid = uuid.UUID(flow_id)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid flow ID format")

    db_flow = SplitFlowRepository(db).get_flow_by_id(flow_uuid, for_update=for_update)
    if not db_flow:
        raise HTTPException(status_code=404, detail="Split flow not found")

    return db_flow, SplitFlowRepository.to_domain(db_flow)


def _run_operation(
    flow_id: str,
    operation: str,
    action: Callable[[SplitFlow], object],
    db: Session,
    request_id: str,
) -> FlowResponse:
    """
    Load a flow, apply one state transition, and persist it.

    On a domain error nothing is written, so the previously published
    allocation stays in place.
    """
    start_time = time.time()
    db_flow, flow = _load_flow(flow_id, db, for_update=True)
    repo = SplitFlowRepository(db)

    try:
        action(flow)
        repo.save_flow(db_flow, flow)
        db.commit()
    except DomainException as e:
        db.rollback()
        record_split(operation, "error")
        logging.warning(f"Split {operation} rejected: {e}", extra={"request_id": request_id, "flow_id": flow_id})
        raise to_http_exception(e)

    participant_count = len(flow.allocation.participants)
    record_split(operation, "ok", participant_count)
    log_split_event(
        request_id, flow_id, operation, flow.mode.value, flow.allocation.total_cents, participant_count,
        (time.time() - start_time) * 1000,
    )
    return _to_response(db_flow, flow)


@router.post("/flows", response_model=FlowResponse, status_code=201)
async def create_flow(
    request_body: FlowCreateRequest,
    request: Request,
    db: Session = Depends(get_db),
    checkout_client: CheckoutClient = Depends(get_checkout_client),
):
    """
    Start a split flow with an even split.

    Flow:
    1. Resolve the total (explicit total, navigation params, or checkout token)
    2. Resolve the current user and the other participants
    3. Even split, current user first
    4. Persist the flow
    """
    start_time = time.time()
    request_id = get_request_id(request)
    forward_context = normalize_params(request_body.forward_context)
    total_amount_json = normalize_param(request_body.total_amount_json) or None
    plain_amount = normalize_param(request_body.amount) or None

    try:
        # 1. Total to split
        if request_body.total is not None:
            total = Money(request_body.total.cents, request_body.total.currency)
        elif total_amount_json or plain_amount:
            total = resolve_total(total_amount_json, plain_amount, settings.default_currency)
        elif request_body.checkout_token:
            details = await checkout_client.get_checkout_details(request_body.checkout_token)
            total = details.total
            if details.merchant_id:
                forward_context.setdefault("merchantId", details.merchant_id)
        else:
            raise InvalidAmountError("No total amount to split")

        # 2. Participants
        if request_body.current_user is not None:
            current_user = request_body.current_user.to_domain()
        else:
            current_user = await checkout_client.get_current_user()

        if request_body.participants is not None:
            others = [p.to_domain() for p in request_body.participants]
        else:
            others = await checkout_client.get_user_details(request_body.user_ids)

        participants = build_participants(current_user, others)
        _check_participant_count(participants)

        # 3. Even split
        flow = SplitFlow.start(total.amount_cents, participants, total.currency)

        # 4. Persist
        db_flow = SplitFlowRepository(db).create_flow(
            flow,
            current_user_id=current_user.id,
            checkout_token=request_body.checkout_token,
            forward_context=forward_context,
        )
        db.commit()

    except HTTPException:
        db.rollback()
        raise

    except DomainException as e:
        db.rollback()
        record_split("even", "error")
        logging.warning(f"Split flow not created: {e}", extra={"request_id": request_id})
        raise to_http_exception(e)

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    record_split("even", "ok", len(participants))
    log_split_event(
        request_id, str(db_flow.id), "even", flow.mode.value, total.amount_cents, len(participants),
        (time.time() - start_time) * 1000,
    )
    return _to_response(db_flow, flow)


@router.get("/flows", response_model=List[FlowResponse])
def list_flows(
    user_id: str = Query(..., description="Current user identifier"),
    db: Session = Depends(get_db),
):
    """Recent split flows started by a user"""
    repo = SplitFlowRepository(db)
    return [_to_response(db_flow, repo.to_domain(db_flow)) for db_flow in repo.get_flows_by_user(user_id, limit=20)]


@router.get("/flows/{flow_id}", response_model=FlowResponse)
def get_flow(flow_id: str, db: Session = Depends(get_db)):
    db_flow, flow = _load_flow(flow_id, db)
    return _to_response(db_flow, flow)


@router.post("/flows/{flow_id}/adjust", response_model=FlowResponse)
def begin_adjust(flow_id: str, request: Request, db: Session = Depends(get_db)):
    """Enter adjusting mode; the edit buffer starts as the current allocation"""
    return _run_operation(flow_id, "begin_adjust", lambda flow: flow.begin_adjust(), db, get_request_id(request))


@router.patch("/flows/{flow_id}/adjust", response_model=FlowResponse)
def edit_amounts(flow_id: str, request_body: EditRequest, request: Request, db: Session = Depends(get_db)):
    """Record user-entered amounts while adjusting"""

    def apply_edits(flow: SplitFlow) -> None:
        for pid, amount in request_body.amounts.items():
            flow.edit(pid, to_cents(amount))

    return _run_operation(flow_id, "edit", apply_edits, db, get_request_id(request))


@router.put("/flows/{flow_id}/adjust", response_model=FlowResponse)
def save_adjustments(flow_id: str, request: Request, db: Session = Depends(get_db)):
    """
    Lock the edited participants and redistribute the remainder.

    Errors:
        422 AmountExceedsTotal: the flow stays in adjusting mode, allocation unchanged
        500 ReconciliationFailed: previous allocation kept
    """
    return _run_operation(flow_id, "adjust", lambda flow: flow.save(), db, get_request_id(request))


@router.delete("/flows/{flow_id}/adjust", response_model=FlowResponse)
def discard_adjustments(flow_id: str, request: Request, db: Session = Depends(get_db)):
    return _run_operation(flow_id, "discard", lambda flow: flow.discard(), db, get_request_id(request))


@router.post("/flows/{flow_id}/even", response_model=FlowResponse)
def split_flow_evenly(flow_id: str, request: Request, db: Session = Depends(get_db)):
    """Drop manual adjustments and split evenly again"""
    return _run_operation(flow_id, "split_evenly", lambda flow: flow.split_evenly(), db, get_request_id(request))


@router.post("/flows/{flow_id}/reset", response_model=FlowResponse)
def reset_flow(flow_id: str, request_body: ResetRequest, request: Request, db: Session = Depends(get_db)):
    """Upstream total or participant list changed: even split over the new inputs"""

    def apply_reset(flow: SplitFlow) -> None:
        allocation = flow.allocation
        current_user = next(p for p in allocation.participants if p.is_current_user)

        if request_body.participants is not None:
            participants = build_participants(current_user, [p.to_domain() for p in request_body.participants])
            _check_participant_count(participants)
        else:
            participants = list(allocation.participants)

        if request_body.total is not None:
            flow.reset(request_body.total.cents, participants, request_body.total.currency)
        else:
            flow.reset(allocation.total_cents, participants)

    return _run_operation(flow_id, "reset", apply_reset, db, get_request_id(request))


@router.post("/flows/{flow_id}/finalize", response_model=FinalizeResponse)
def finalize_flow(flow_id: str, request: Request, db: Session = Depends(get_db)):
    """
    Produce the forward-navigation params for the next checkout screen.

    Returns:
        amount (current user's share), otherUsers (JSON list of {userId, amount})
        and the carried-through context, plus the encoded query string
    """
    request_id = get_request_id(request)
    db_flow, flow = _load_flow(flow_id, db)

    try:
        params = flow.finalize(db_flow.current_user_id, db_flow.forward_context)
        query = urlencode(params)
    except DomainException as e:
        record_split("finalize", "error")
        logging.warning(f"Split finalize rejected: {e}", extra={"request_id": request_id, "flow_id": flow_id})
        raise to_http_exception(e)

    record_split("finalize", "ok", len(flow.allocation.participants))
    return FinalizeResponse(flow_id=str(db_flow.id), params=params, query=query)
