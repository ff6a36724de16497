"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class InvalidAmountError(DomainException):
    """Amount is negative, non-numeric, or has more than 2 fractional digits"""

    pass


class EmptyParticipantsError(DomainException):
    """A split needs at least one participant"""

    pass


class UnknownParticipantError(DomainException):
    """Locked or edited entry refers to a participant not in the allocation"""

    def __init__(self, participant_id: str):
        super().__init__(f"Unknown participant: {participant_id}")
        self.participant_id = participant_id


class AmountExceedsTotal(DomainException):
    """User-locked amounts sum to more than the total being split"""

    def __init__(self, locked_cents: int, total_cents: int):
        super().__init__(
            f"Sum of locked amounts ({locked_cents} cents) exceeds total ({total_cents} cents)"
        )
        self.locked_cents = locked_cents
        self.total_cents = total_cents


class ReconciliationFailed(DomainException):
    """Allocation does not sum to the total after an adjustment"""

    def __init__(self, allocated_cents: int, total_cents: int):
        super().__init__(
            f"Allocation sums to {allocated_cents} cents, expected {total_cents} cents"
        )
        self.allocated_cents = allocated_cents
        self.total_cents = total_cents


class InvalidFlowStateError(DomainException):
    """Operation is not allowed in the split flow's current mode"""

    pass


class CheckoutAPIError(DomainException):
    """Checkout API returned an error or is unavailable"""

    pass


class AuthenticationError(CheckoutAPIError):
    """No usable access token, or the checkout API rejected it after a refresh"""

    pass


class DuplicateParticipantError(DomainException):
    """The same participant id appears more than once in a split"""

    def __init__(self, participant_id: str):
        super().__init__(f"Duplicate participant: {participant_id}")
        self.participant_id = participant_id
