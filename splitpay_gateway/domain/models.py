"""Domain models - pure Python dataclasses representing split entities"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple


@dataclass(frozen=True)
class Money:
    """Non-negative currency amount held as integer cents"""

    amount_cents: int
    currency: str = "USD"

    @property
    def amount(self) -> str:
        """Decimal string with exactly 2 fractional digits, e.g. "12.30" """
        return f"{self.amount_cents // 100}.{self.amount_cents % 100:02d}"

    def to_dict(self) -> Dict[str, str]:
        return {"amount": self.amount, "currency": self.currency}


@dataclass(frozen=True)
class Participant:
    """Someone taking a share of the split"""

    id: str
    display_name: str
    is_current_user: bool = False
    logo: Optional[str] = None


class SplitMode(str, Enum):
    """Modes of a split flow"""

    EVEN = "even"
    ADJUSTING = "adjusting"
    CUSTOM = "custom"  # saved manual adjustment


@dataclass(frozen=True)
class SplitAllocation:
    """
    Total divided among participants.

    shares maps participant id -> cents in participant order and covers every
    participant exactly once. Instances are never mutated; operations return
    new allocations.
    """

    total_cents: int
    currency: str
    participants: Tuple[Participant, ...]
    shares: Dict[str, int] = field(default_factory=dict)

    @property
    def allocated_cents(self) -> int:
        return sum(self.shares.values())

    @property
    def participant_ids(self) -> List[str]:
        return [p.id for p in self.participants]

    @property
    def total(self) -> Money:
        return Money(self.total_cents, self.currency)

    def share_of(self, participant_id: str) -> Money:
        return Money(self.shares[participant_id], self.currency)

    def as_money(self) -> Dict[str, Money]:
        return {pid: Money(cents, self.currency) for pid, cents in self.shares.items()}


@dataclass
class CheckoutDetails:
    """Subset of the checkout API's details-by-token payload used for splitting"""

    checkout_id: str
    total: Money
    merchant_id: str
    status: Optional[str] = None


@dataclass
class ContactPage:
    """One page of the contacts search"""

    contacts: List[Participant]
    page_number: int
    total_pages: int
    last: bool

    @property
    def next_page(self) -> Optional[int]:
        return self.page_number + 1 if self.page_number + 1 < self.total_pages else None
