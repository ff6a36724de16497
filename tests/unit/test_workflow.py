"""Unit tests for the split flow state machine"""

import json
import pytest
from splitpay_gateway.domain.models import Participant, SplitMode
from splitpay_gateway.domain.splitting import even_split
from splitpay_gateway.domain.workflow import SplitFlow
from splitpay_gateway.domain.exceptions import (
    AmountExceedsTotal,
    InvalidFlowStateError,
    UnknownParticipantError,
)


@pytest.fixture
def flow(three_participants) -> SplitFlow:
    return SplitFlow.start(10000, three_participants)


def test_start_is_even(flow):
    assert flow.mode == SplitMode.EVEN
    assert flow.allocation.shares == {"A": 3333, "B": 3333, "C": 3334}


def test_adjust_save_moves_to_custom(flow):
    """Test Even -> Adjusting -> Custom"""
    flow.begin_adjust()
    assert flow.mode == SplitMode.ADJUSTING

    flow.edit("A", 5000)
    assert flow.locked_ids == ["A"]

    allocation = flow.save()
    assert flow.mode == SplitMode.CUSTOM
    assert allocation.shares == {"A": 5000, "B": 2500, "C": 2500}
    assert flow.edits == {}


def test_save_exceeding_total_keeps_state(flow):
    """Test failed save stays in adjusting with allocation unchanged"""
    before = flow.allocation
    flow.begin_adjust()
    flow.edit("A", 15000)

    with pytest.raises(AmountExceedsTotal):
        flow.save()

    assert flow.mode == SplitMode.ADJUSTING
    assert flow.allocation is before
    assert flow.edits["A"] == 15000


def test_save_without_edits_returns_to_previous_mode(flow):
    flow.begin_adjust()
    flow.save()
    assert flow.mode == SplitMode.EVEN


def test_edit_back_to_current_value_is_not_locked(flow):
    flow.begin_adjust()
    flow.edit("B", 1000)
    flow.edit("B", 3333)
    assert flow.locked_ids == []


def test_discard_restores_previous_mode(flow):
    flow.begin_adjust()
    flow.edit("A", 5000)
    flow.save()

    flow.begin_adjust()
    flow.edit("B", 100)
    flow.discard()

    assert flow.mode == SplitMode.CUSTOM
    assert flow.allocation.shares == {"A": 5000, "B": 2500, "C": 2500}


def test_split_evenly_after_adjustments(flow, three_participants):
    flow.begin_adjust()
    flow.edit("A", 5000)
    flow.save()

    allocation = flow.split_evenly()

    assert flow.mode == SplitMode.EVEN
    assert allocation == even_split(10000, three_participants)


def test_reset_with_new_participants(flow, three_participants):
    flow.begin_adjust()
    flow.edit("A", 5000)
    flow.save()

    allocation = flow.reset(9000, three_participants[:2])

    assert flow.mode == SplitMode.EVEN
    assert allocation.shares == {"A": 4500, "B": 4500}


def test_edit_requires_adjusting(flow):
    with pytest.raises(InvalidFlowStateError):
        flow.edit("A", 100)


def test_begin_adjust_twice(flow):
    flow.begin_adjust()
    with pytest.raises(InvalidFlowStateError):
        flow.begin_adjust()


def test_edit_unknown_participant(flow):
    flow.begin_adjust()
    with pytest.raises(UnknownParticipantError):
        flow.edit("Z", 100)


def test_finalize_requires_saved_state(flow):
    flow.begin_adjust()
    with pytest.raises(InvalidFlowStateError):
        flow.finalize("A")


def test_finalize_builds_forward_params(flow):
    params = flow.finalize("A", {"merchantId": "m_1"})

    assert params["merchantId"] == "m_1"
    assert params["amount"] == "33.33"
    assert json.loads(params["otherUsers"]) == [
        {"userId": "B", "amount": "33.33"},
        {"userId": "C", "amount": "33.34"},
    ]


def test_single_participant_flow():
    flow = SplitFlow.start(2500, [Participant(id="me", display_name="You", is_current_user=True)])
    assert flow.finalize("me") == {"amount": "25.00", "otherUsers": "[]"}
