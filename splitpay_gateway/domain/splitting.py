"""Even and adjustable amount splitting with exact-cent reconciliation"""

from typing import Dict, List, Mapping, Sequence

from splitpay_gateway.domain.exceptions import (
    AmountExceedsTotal,
    DuplicateParticipantError,
    EmptyParticipantsError,
    InvalidAmountError,
    ReconciliationFailed,
    UnknownParticipantError,
)
from splitpay_gateway.domain.models import Participant, SplitAllocation


def distribute_cents(total_cents: int, count: int) -> List[int]:
    """
    Divide total_cents into count shares.

    Every share but the last is floor(total / count); the last absorbs the
    remainder (at most count-1 cents), so the shares always sum to the total.

    Example:
        10000 cents / 3 -> [3333, 3333, 3334]
    """
    if count <= 0:
        return []

    base_share = total_cents // count
    remainder = total_cents - base_share * count

    shares = [base_share] * count
    shares[-1] += remainder
    return shares


def even_split(
    total_cents: int,
    participants: Sequence[Participant],
    currency: str = "USD",
) -> SplitAllocation:
    """
    Split a total evenly across participants in the given order.

    Requirements:
    - At least one participant
    - Non-negative total
    - First n-1 participants get the floor share, the last absorbs leftover cents

    Raises:
        EmptyParticipantsError: participants is empty
        InvalidAmountError: total is negative
        DuplicateParticipantError: a participant id repeats
    """
    if not participants:
        raise EmptyParticipantsError("Cannot split between zero participants")
    if total_cents < 0:
        raise InvalidAmountError(f"Total must be non-negative, got {total_cents} cents")

    seen = set()
    for p in participants:
        if p.id in seen:
            raise DuplicateParticipantError(p.id)
        seen.add(p.id)

    amounts = distribute_cents(total_cents, len(participants))
    shares = {p.id: cents for p, cents in zip(participants, amounts)}

    return SplitAllocation(
        total_cents=total_cents,
        currency=currency,
        participants=tuple(participants),
        shares=shares,
    )


def adjust(allocation: SplitAllocation, locked_entries: Mapping[str, int]) -> SplitAllocation:
    """
    Keep locked participants' amounts and redistribute the rest.

    Unlocked participants share total - sum(locked) evenly with the same
    last-absorbs-remainder rule as even_split. When every participant is
    locked and the locked amounts fall short of the total, the last locked
    participant (in participant order) absorbs the leftover.

    The input allocation is never modified; on any error the caller keeps
    publishing it.

    Args:
        allocation: Current allocation
        locked_entries: participant id -> cents entered by the user

    Raises:
        UnknownParticipantError: locked id is not part of the allocation
        InvalidAmountError: locked amount is negative
        AmountExceedsTotal: locked amounts sum to more than the total
        ReconciliationFailed: result does not sum to the total
    """
    participant_ids = allocation.participant_ids

    for pid, cents in locked_entries.items():
        if pid not in allocation.shares:
            raise UnknownParticipantError(pid)
        if cents < 0:
            raise InvalidAmountError(f"Amount for {pid} must be non-negative")

    locked_sum = sum(locked_entries.values())
    if locked_sum > allocation.total_cents:
        raise AmountExceedsTotal(locked_sum, allocation.total_cents)

    leftover = allocation.total_cents - locked_sum
    unlocked_ids = [pid for pid in participant_ids if pid not in locked_entries]

    new_shares: Dict[str, int] = {}
    if unlocked_ids:
        redistributed = dict(zip(unlocked_ids, distribute_cents(leftover, len(unlocked_ids))))
        for pid in participant_ids:
            new_shares[pid] = locked_entries[pid] if pid in locked_entries else redistributed[pid]
    else:
        for pid in participant_ids:
            new_shares[pid] = locked_entries[pid]
        if leftover > 0:
            last_locked = participant_ids[-1]
            new_shares[last_locked] += leftover

    result = SplitAllocation(
        total_cents=allocation.total_cents,
        currency=allocation.currency,
        participants=allocation.participants,
        shares=new_shares,
    )
    verify_reconciled(result)
    return result


def split_evenly(allocation: SplitAllocation) -> SplitAllocation:
    """Discard manual adjustments and return a fresh even split"""
    return even_split(allocation.total_cents, allocation.participants, allocation.currency)


def verify_reconciled(allocation: SplitAllocation) -> None:
    """Raise ReconciliationFailed unless shares cover every participant and sum to the total"""
    allocated = allocation.allocated_cents
    if set(allocation.shares) != set(allocation.participant_ids):
        raise ReconciliationFailed(allocated, allocation.total_cents)
    if allocated != allocation.total_cents:
        raise ReconciliationFailed(allocated, allocation.total_cents)
