"""Serialize a final split allocation into forward-navigation query params"""

import json
from typing import Dict, List, Mapping, Optional

from splitpay_gateway.domain.exceptions import UnknownParticipantError
from splitpay_gateway.domain.models import SplitAllocation
from splitpay_gateway.domain.splitting import verify_reconciled
from splitpay_gateway.utils.params import canonicalize_discount_list


def other_users_payload(allocation: SplitAllocation, current_user_id: str) -> List[Dict[str, str]]:
    """Shares of everyone but the current user as [{"userId": ..., "amount": "12.34"}]"""
    return [
        {"userId": pid, "amount": allocation.share_of(pid).amount}
        for pid in allocation.participant_ids
        if pid != current_user_id
    ]


def build_forward_params(
    allocation: SplitAllocation,
    current_user_id: str,
    extra: Optional[Mapping[str, Optional[str]]] = None,
) -> Dict[str, str]:
    """
    Build query params handed to the next checkout screen.

    Carries every non-empty extra param through unchanged (discountList is
    canonicalized), then sets:
    - amount: the current user's share
    - otherUsers: JSON list of the other participants' shares

    Raises:
        UnknownParticipantError: current user is not part of the allocation
        ReconciliationFailed: allocation does not sum to its total
    """
    if current_user_id not in allocation.shares:
        raise UnknownParticipantError(current_user_id)
    verify_reconciled(allocation)

    params: Dict[str, str] = {}
    for key, value in (extra or {}).items():
        if value is None or value == "":
            continue
        params[key] = str(value)

    if "discountList" in params:
        params["discountList"] = canonicalize_discount_list(params["discountList"])

    params["amount"] = allocation.share_of(current_user_id).amount
    params["otherUsers"] = json.dumps(other_users_payload(allocation, current_user_id), separators=(",", ":"))
    return params
