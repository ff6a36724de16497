"""Split flow state machine: even split, manual adjustment, save/discard"""

import logging
from typing import Dict, Mapping, Optional, Sequence

from splitpay_gateway.domain.exceptions import (
    InvalidAmountError,
    InvalidFlowStateError,
    UnknownParticipantError,
)
from splitpay_gateway.domain.forwarding import build_forward_params
from splitpay_gateway.domain.models import Participant, SplitAllocation, SplitMode
from splitpay_gateway.domain import splitting

logger = logging.getLogger(__name__)


class SplitFlow:
    """
    One user's split of a checkout total.

    Transitions:
        EVEN --begin_adjust--> ADJUSTING --save--> CUSTOM
        ADJUSTING --discard--> mode before adjusting
        any --split_evenly / reset--> EVEN

    The published allocation only changes on a successful save, split_evenly
    or reset. A failed save leaves the flow in ADJUSTING with its edits so the
    user can correct them.
    """

    def __init__(
        self,
        allocation: SplitAllocation,
        mode: SplitMode = SplitMode.EVEN,
        edits: Optional[Mapping[str, int]] = None,
        mode_before_adjust: Optional[SplitMode] = None,
    ):
        self.allocation = allocation
        self.mode = mode
        self.edits: Dict[str, int] = dict(edits or {})
        self.mode_before_adjust = mode_before_adjust

    @classmethod
    def start(
        cls,
        total_cents: int,
        participants: Sequence[Participant],
        currency: str = "USD",
    ) -> "SplitFlow":
        """Open a flow with an even split"""
        return cls(splitting.even_split(total_cents, participants, currency))

    @property
    def locked_ids(self):
        """Participants whose edited amount differs from the published allocation"""
        if self.mode != SplitMode.ADJUSTING:
            return []
        return [
            pid
            for pid in self.allocation.participant_ids
            if self.edits.get(pid, self.allocation.shares[pid]) != self.allocation.shares[pid]
        ]

    def _require_mode(self, *modes: SplitMode) -> None:
        if self.mode not in modes:
            raise InvalidFlowStateError(f"Operation not allowed in '{self.mode.value}' mode")

    def begin_adjust(self) -> None:
        self._require_mode(SplitMode.EVEN, SplitMode.CUSTOM)
        self.mode_before_adjust = self.mode
        self.edits = dict(self.allocation.shares)
        self.mode = SplitMode.ADJUSTING

    def edit(self, participant_id: str, amount_cents: int) -> None:
        """Record a user-entered amount while adjusting"""
        self._require_mode(SplitMode.ADJUSTING)
        if participant_id not in self.allocation.shares:
            raise UnknownParticipantError(participant_id)
        if amount_cents < 0:
            raise InvalidAmountError(f"Amount for {participant_id} must be non-negative")
        self.edits[participant_id] = amount_cents

    def save(self) -> SplitAllocation:
        """
        Lock edited participants and redistribute the remainder.

        Raises:
            AmountExceedsTotal: edited amounts exceed the total
            ReconciliationFailed: redistribution did not reconcile
        """
        self._require_mode(SplitMode.ADJUSTING)
        locked = {pid: self.edits[pid] for pid in self.locked_ids}

        if not locked:
            # Nothing edited: leave the allocation and previous mode as they were
            self.mode = self.mode_before_adjust or SplitMode.EVEN
            self.edits = {}
            return self.allocation

        self.allocation = splitting.adjust(self.allocation, locked)
        self.mode = SplitMode.CUSTOM
        self.edits = {}
        logger.debug("Split adjusted", extra={"locked_count": len(locked)})
        return self.allocation

    def discard(self) -> None:
        self._require_mode(SplitMode.ADJUSTING)
        self.mode = self.mode_before_adjust or SplitMode.EVEN
        self.edits = {}

    def split_evenly(self) -> SplitAllocation:
        self.allocation = splitting.split_evenly(self.allocation)
        self.mode = SplitMode.EVEN
        self.edits = {}
        self.mode_before_adjust = None
        return self.allocation

    def reset(
        self,
        total_cents: int,
        participants: Sequence[Participant],
        currency: Optional[str] = None,
    ) -> SplitAllocation:
        """Upstream total or participant list changed: start over with an even split"""
        self.allocation = splitting.even_split(
            total_cents, participants, currency or self.allocation.currency
        )
        self.mode = SplitMode.EVEN
        self.edits = {}
        self.mode_before_adjust = None
        return self.allocation

    def finalize(self, current_user_id: str, extra: Optional[Mapping[str, Optional[str]]] = None) -> Dict[str, str]:
        """Forward params for the next screen; adjustments must be saved or discarded first"""
        self._require_mode(SplitMode.EVEN, SplitMode.CUSTOM)
        return build_forward_params(self.allocation, current_user_id, extra)
