"""Data access layer for split flows"""

import uuid
from typing import Dict, List, Optional
from sqlalchemy.orm import Session
from splitpay_gateway.infrastructure.database.models import SplitFlowRecord
from splitpay_gateway.domain.models import Participant, SplitAllocation, SplitMode
from splitpay_gateway.domain.workflow import SplitFlow


def _participants_to_json(participants) -> List[Dict]:
    return [
        {
            "id": p.id,
            "display_name": p.display_name,
            "is_current_user": p.is_current_user,
            "logo": p.logo,
        }
        for p in participants
    ]


def _participants_from_json(data: List[Dict]) -> List[Participant]:
    return [
        Participant(
            id=item["id"],
            display_name=item["display_name"],
            is_current_user=item.get("is_current_user", False),
            logo=item.get("logo"),
        )
        for item in data
    ]


class SplitFlowRepository:
    """Repository for split flows"""

    def __init__(self, db: Session):
        self.db = db

    def create_flow(
        self,
        flow: SplitFlow,
        current_user_id: str,
        checkout_token: Optional[str] = None,
        forward_context: Optional[Dict[str, str]] = None,
    ) -> SplitFlowRecord:
        """Persist a new split flow"""
        db_flow = SplitFlowRecord(
            checkout_token=checkout_token,
            current_user_id=current_user_id,
            forward_context=forward_context or {},
        )
        self._apply(db_flow, flow)
        self.db.add(db_flow)
        self.db.flush()  # Get ID without committing
        return db_flow

    def _flow_query(self, flow_id: uuid.UUID, for_update: bool = False):
        query = self.db.query(SplitFlowRecord).filter(SplitFlowRecord.id == flow_id)
        if for_update:
            # SELECT ... FOR UPDATE on Postgres; SQLite ignores it
            query = query.with_for_update()
        return query

    def get_flow_by_id(self, flow_id: uuid.UUID, for_update: bool = False) -> Optional[SplitFlowRecord]:
        """Fetch a split flow record, row-locked until commit when for_update is set"""
        return self._flow_query(flow_id, for_update).first()

    def get_flows_by_user(self, current_user_id: str, limit: int = 10) -> List[SplitFlowRecord]:
        """Fetch recent flows started by a user"""
        return (
            self.db.query(SplitFlowRecord)
            .filter(SplitFlowRecord.current_user_id == current_user_id)
            .order_by(SplitFlowRecord.created_at.desc())
            .limit(limit)
            .all()
        )

    def save_flow(self, db_flow: SplitFlowRecord, flow: SplitFlow) -> SplitFlowRecord:
        """Write the domain flow's state back onto its record"""
        self._apply(db_flow, flow)
        self.db.flush()
        return db_flow

    @staticmethod
    def to_domain(db_flow: SplitFlowRecord) -> SplitFlow:
        """Rebuild the domain state machine from a record"""
        participants = _participants_from_json(db_flow.participants)
        allocation = SplitAllocation(
            total_cents=db_flow.total_cents,
            currency=db_flow.currency,
            participants=tuple(participants),
            shares={pid: int(cents) for pid, cents in db_flow.shares},
        )
        return SplitFlow(
            allocation=allocation,
            mode=SplitMode(db_flow.mode),
            edits={pid: int(cents) for pid, cents in (db_flow.edits or {}).items()},
            mode_before_adjust=SplitMode(db_flow.mode_before_adjust) if db_flow.mode_before_adjust else None,
        )

    @staticmethod
    def _apply(db_flow: SplitFlowRecord, flow: SplitFlow) -> None:
        allocation = flow.allocation
        db_flow.total_cents = allocation.total_cents
        db_flow.currency = allocation.currency
        db_flow.mode = flow.mode.value
        db_flow.mode_before_adjust = flow.mode_before_adjust.value if flow.mode_before_adjust else None
        db_flow.participants = _participants_to_json(allocation.participants)
        db_flow.shares = [[pid, cents] for pid, cents in allocation.shares.items()]
        db_flow.edits = dict(flow.edits)
