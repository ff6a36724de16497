"""Participant list construction for a split"""

from typing import Iterable, List

from splitpay_gateway.domain.models import Participant

CURRENT_USER_LABEL = "You"


def build_participants(current_user: Participant, others: Iterable[Participant]) -> List[Participant]:
    """
    Build the ordered participant list for a split.

    The current user comes first, exactly once, labelled "You". Other
    participants keep their given order; duplicates and repeats of the
    current user are dropped.
    """
    participants = [
        Participant(
            id=current_user.id,
            display_name=CURRENT_USER_LABEL,
            is_current_user=True,
            logo=current_user.logo,
        )
    ]
    seen = {current_user.id}

    for other in others:
        if other.id in seen:
            continue
        seen.add(other.id)
        participants.append(
            Participant(id=other.id, display_name=other.display_name, is_current_user=False, logo=other.logo)
        )

    return participants
