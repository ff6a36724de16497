"""Pydantic schemas for API request/response validation"""

from pydantic import BaseModel, Field, field_validator
from typing import Dict, List, Optional

from splitpay_gateway.domain.exceptions import InvalidAmountError
from splitpay_gateway.domain.models import Money, Participant, SplitAllocation
from splitpay_gateway.domain.money import to_cents


def _check_amount(value: str) -> str:
    try:
        to_cents(value)
    except InvalidAmountError as e:
        raise ValueError(str(e)) from e
    return value.strip()


class MoneySchema(BaseModel):
    """Currency amount as a decimal string with at most 2 fractional digits"""

    amount: str = Field(..., description="Decimal amount, e.g. \"100.00\"")
    currency: str = Field("USD", min_length=3, max_length=3)

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, value: str) -> str:
        return _check_amount(value)

    @field_validator("currency")
    @classmethod
    def upper_currency(cls, value: str) -> str:
        return value.upper()

    @property
    def cents(self) -> int:
        return to_cents(self.amount)

    @classmethod
    def from_money(cls, money: Money) -> "MoneySchema":
        return cls(amount=money.amount, currency=money.currency)


class ParticipantSchema(BaseModel):
    """Participant in a split"""

    id: str = Field(..., min_length=1)
    display_name: str = ""
    is_current_user: bool = False
    logo: Optional[str] = None

    def to_domain(self) -> Participant:
        return Participant(
            id=self.id,
            display_name=self.display_name or self.id,
            is_current_user=self.is_current_user,
            logo=self.logo,
        )

    @classmethod
    def from_domain(cls, participant: Participant) -> "ParticipantSchema":
        return cls(
            id=participant.id,
            display_name=participant.display_name,
            is_current_user=participant.is_current_user,
            logo=participant.logo,
        )


class ShareSchema(BaseModel):
    """One participant's share"""

    participant_id: str
    amount: str

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, value: str) -> str:
        return _check_amount(value)


class AllocationResponse(BaseModel):
    """Split allocation in participant order"""

    total: MoneySchema
    shares: List[ShareSchema]

    @classmethod
    def from_domain(cls, allocation: SplitAllocation) -> "AllocationResponse":
        return cls(
            total=MoneySchema.from_money(allocation.total),
            shares=[
                ShareSchema(participant_id=pid, amount=allocation.share_of(pid).amount)
                for pid in allocation.participant_ids
            ],
        )


class EvenSplitRequest(BaseModel):
    """Request body for POST /v1/split/even"""

    total: MoneySchema
    participants: List[ParticipantSchema] = Field(..., min_length=1)


class AdjustRequest(BaseModel):
    """Request body for POST /v1/split/adjust"""

    total: MoneySchema
    participants: List[ParticipantSchema] = Field(..., min_length=1)
    locked: Dict[str, str] = Field(..., description="Participant id -> amount entered by the user")

    @field_validator("locked")
    @classmethod
    def validate_locked(cls, value: Dict[str, str]) -> Dict[str, str]:
        return {pid: _check_amount(amount) for pid, amount in value.items()}


class FlowCreateRequest(BaseModel):
    """Request body for POST /v1/flows"""

    checkout_token: Optional[str] = Field(None, description="Resolve the total from the checkout API")
    total: Optional[MoneySchema] = Field(None, description="Explicit total, overrides the checkout total")
    total_amount_json: Optional[str] = Field(None, description="Money JSON as carried in navigation params")
    amount: Optional[str] = Field(None, description="Plain amount fallback, e.g. \"12.34\"")
    current_user: Optional[ParticipantSchema] = Field(None, description="Fetched from the checkout API when omitted")
    user_ids: List[str] = Field(default_factory=list, description="Other participants to look up")
    participants: Optional[List[ParticipantSchema]] = Field(None, description="Other participants, skips lookup")
    forward_context: Dict[str, str] = Field(default_factory=dict, description="Params carried to the next screen")


class EditRequest(BaseModel):
    """Request body for PATCH /v1/flows/{flow_id}/adjust"""

    amounts: Dict[str, str] = Field(..., min_length=1)

    @field_validator("amounts")
    @classmethod
    def validate_amounts(cls, value: Dict[str, str]) -> Dict[str, str]:
        return {pid: _check_amount(amount) for pid, amount in value.items()}


class ResetRequest(BaseModel):
    """Request body for POST /v1/flows/{flow_id}/reset"""

    total: Optional[MoneySchema] = None
    participants: Optional[List[ParticipantSchema]] = Field(None, description="Other participants")


class FlowResponse(BaseModel):
    """Split flow state"""

    flow_id: str
    mode: str
    checkout_token: Optional[str] = None
    participants: List[ParticipantSchema]
    allocation: AllocationResponse
    edits: Optional[List[ShareSchema]] = None
    locked_ids: List[str] = Field(default_factory=list)
    created_at: str
    updated_at: str


class FinalizeResponse(BaseModel):
    """Response for POST /v1/flows/{flow_id}/finalize"""

    flow_id: str
    params: Dict[str, str]
    query: str


class ContactPageResponse(BaseModel):
    """Response for GET /v1/contacts"""

    contacts: List[ParticipantSchema]
    page_number: int
    total_pages: int
    next_page: Optional[int] = None
