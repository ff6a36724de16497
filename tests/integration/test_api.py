"""Integration tests for API endpoints"""

import json
import uuid
import pytest
from urllib.parse import parse_qs
from fastapi.testclient import TestClient


@pytest.fixture
def flow_body():
    """Flow with an explicit total and participants, no checkout API lookups"""
    return {
        "total": {"amount": "100.00", "currency": "USD"},
        "current_user": {"id": "A", "display_name": "Ann"},
        "participants": [
            {"id": "B", "display_name": "Bob"},
            {"id": "C", "display_name": "Carol"},
        ],
        "forward_context": {"merchantId": "m_1", "discountList": "d1,d2", "split": ""},
    }


def shares_of(data: dict) -> dict:
    return {s["participant_id"]: s["amount"] for s in data["allocation"]["shares"]}


def test_health_endpoint(client: TestClient):
    """Test health check endpoint"""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_metrics_endpoint(client: TestClient):
    """Test Prometheus metrics endpoint"""
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "splitpay_split_operations_total" in response.text


def test_request_id_is_echoed(client: TestClient):
    response = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"


def test_split_even(client: TestClient):
    """Test POST /v1/split/even"""
    response = client.post(
        "/v1/split/even",
        json={
            "total": {"amount": "100.00", "currency": "usd"},
            "participants": [{"id": "A"}, {"id": "B"}, {"id": "C"}],
        },
    )

    assert response.status_code == 200
    data = response.json()
    assert data["total"] == {"amount": "100.00", "currency": "USD"}
    assert [s["amount"] for s in data["shares"]] == ["33.33", "33.33", "33.34"]


@pytest.mark.parametrize("amount", ["12.345", "-1.00", "abc", "1e30", "123456789012345678901234567890"])
def test_split_even_rejects_invalid_amount(client: TestClient, amount: str):
    response = client.post(
        "/v1/split/even",
        json={"total": {"amount": amount}, "participants": [{"id": "A"}]},
    )
    assert response.status_code == 422


def test_split_even_rejects_empty_participants(client: TestClient):
    response = client.post("/v1/split/even", json={"total": {"amount": "10.00"}, "participants": []})
    assert response.status_code == 422


def test_split_even_rejects_duplicates(client: TestClient):
    response = client.post(
        "/v1/split/even",
        json={"total": {"amount": "10.00"}, "participants": [{"id": "A"}, {"id": "A"}]},
    )
    assert response.status_code == 422
    assert response.json()["detail"]["error"] == "DuplicateParticipantError"


def test_split_even_too_many_participants(client: TestClient):
    participants = [{"id": f"p{i}"} for i in range(51)]
    response = client.post("/v1/split/even", json={"total": {"amount": "10.00"}, "participants": participants})

    assert response.status_code == 422
    assert response.json()["detail"]["error"] == "TooManyParticipants"


def test_split_adjust(client: TestClient):
    """Test POST /v1/split/adjust redistributes around a locked amount"""
    response = client.post(
        "/v1/split/adjust",
        json={
            "total": {"amount": "100.00"},
            "participants": [{"id": "A"}, {"id": "B"}, {"id": "C"}],
            "locked": {"A": "50.00"},
        },
    )

    assert response.status_code == 200
    assert [s["amount"] for s in response.json()["shares"]] == ["50.00", "25.00", "25.00"]


def test_split_adjust_exceeds_total(client: TestClient):
    response = client.post(
        "/v1/split/adjust",
        json={
            "total": {"amount": "100.00"},
            "participants": [{"id": "A"}, {"id": "B"}, {"id": "C"}],
            "locked": {"A": "150.00"},
        },
    )

    assert response.status_code == 422
    assert response.json()["detail"]["error"] == "AmountExceedsTotal"


def test_split_adjust_unknown_participant(client: TestClient):
    response = client.post(
        "/v1/split/adjust",
        json={"total": {"amount": "100.00"}, "participants": [{"id": "A"}], "locked": {"Z": "1.00"}},
    )

    assert response.status_code == 400
    assert response.json()["detail"]["error"] == "UnknownParticipantError"


def test_create_flow(client: TestClient, flow_body: dict):
    """Test POST /v1/flows starts with an even split, current user first"""
    response = client.post("/v1/flows", json=flow_body)

    assert response.status_code == 201
    data = response.json()
    assert data["mode"] == "even"
    assert data["participants"][0] == {"id": "A", "display_name": "You", "is_current_user": True, "logo": None}
    assert shares_of(data) == {"A": "33.33", "B": "33.33", "C": "33.34"}
    assert data["edits"] is None
    assert data["locked_ids"] == []


def test_create_flow_from_checkout_token(client: TestClient):
    """Test total, current user and participants resolved through the checkout API"""
    response = client.post(
        "/v1/flows",
        json={"checkout_token": "tok_100", "user_ids": ["user_alice", "user_bob"]},
    )

    assert response.status_code == 201
    data = response.json()
    assert data["checkout_token"] == "tok_100"
    assert [p["id"] for p in data["participants"]] == ["user_me", "user_alice", "user_bob"]
    assert data["participants"][0]["display_name"] == "You"
    assert data["allocation"]["total"]["amount"] == "100.00"

    finalize = client.post(f"/v1/flows/{data['flow_id']}/finalize")
    assert finalize.json()["params"]["merchantId"] == "merchant_1"


def test_create_flow_from_navigation_params(client: TestClient):
    """Test zero Money JSON falls back to the plain amount"""
    response = client.post(
        "/v1/flows",
        json={
            "total_amount_json": '{"amount": "0", "currency": "USD"}',
            "amount": "12.34",
            "current_user": {"id": "A"},
            "participants": [{"id": "B"}],
        },
    )

    assert response.status_code == 201
    assert shares_of(response.json()) == {"A": "6.17", "B": "6.17"}


def test_create_flow_oversized_plain_amount(client: TestClient):
    response = client.post(
        "/v1/flows",
        json={"amount": "1e30", "current_user": {"id": "A"}, "participants": [{"id": "B"}]},
    )

    assert response.status_code == 422
    assert response.json()["detail"]["error"] == "InvalidAmountError"


def test_create_flow_normalizes_navigation_params(client: TestClient):
    """Test "undefined", blank and quoted params are cleaned before they are forwarded"""
    response = client.post(
        "/v1/flows",
        json={
            "total_amount_json": "null",
            "amount": '"100.00"',
            "current_user": {"id": "A"},
            "participants": [{"id": "B"}],
            "forward_context": {"powerMode": "undefined", "merchantId": '"m1"', "plan": " "},
        },
    )
    assert response.status_code == 201

    params = client.post(f"/v1/flows/{response.json()['flow_id']}/finalize").json()["params"]

    assert params["merchantId"] == "m1"
    assert "powerMode" not in params
    assert "plan" not in params
    assert params["amount"] == "50.00"


def test_create_flow_unknown_checkout(client: TestClient):
    response = client.post("/v1/flows", json={"checkout_token": "tok_missing", "user_ids": []})

    assert response.status_code == 503
    assert response.json()["detail"]["error"] == "CheckoutAPIError"


def test_create_flow_without_total(client: TestClient):
    response = client.post("/v1/flows", json={"current_user": {"id": "A"}, "participants": []})

    assert response.status_code == 422
    assert response.json()["detail"]["error"] == "InvalidAmountError"


def test_flow_adjust_lifecycle(client: TestClient, flow_body: dict):
    """Test even -> adjusting -> custom -> finalize -> even"""
    flow_id = client.post("/v1/flows", json=flow_body).json()["flow_id"]

    response = client.post(f"/v1/flows/{flow_id}/adjust")
    assert response.status_code == 200
    assert response.json()["mode"] == "adjusting"
    assert len(response.json()["edits"]) == 3

    response = client.patch(f"/v1/flows/{flow_id}/adjust", json={"amounts": {"A": "50.00"}})
    assert response.status_code == 200
    assert response.json()["locked_ids"] == ["A"]

    response = client.put(f"/v1/flows/{flow_id}/adjust")
    assert response.status_code == 200
    data = response.json()
    assert data["mode"] == "custom"
    assert shares_of(data) == {"A": "50.00", "B": "25.00", "C": "25.00"}

    response = client.post(f"/v1/flows/{flow_id}/finalize")
    assert response.status_code == 200
    params = response.json()["params"]
    assert params["amount"] == "50.00"
    assert params["merchantId"] == "m_1"
    assert params["discountList"] == '["d1", "d2"]'
    assert "split" not in params
    assert json.loads(params["otherUsers"]) == [
        {"userId": "B", "amount": "25.00"},
        {"userId": "C", "amount": "25.00"},
    ]
    assert parse_qs(response.json()["query"])["amount"] == ["50.00"]

    response = client.post(f"/v1/flows/{flow_id}/even")
    assert response.json()["mode"] == "even"
    assert shares_of(response.json()) == {"A": "33.33", "B": "33.33", "C": "33.34"}


def test_flow_save_exceeding_total_keeps_allocation(client: TestClient, flow_body: dict):
    """Test failed save is rejected and the flow stays in adjusting"""
    flow_id = client.post("/v1/flows", json=flow_body).json()["flow_id"]
    client.post(f"/v1/flows/{flow_id}/adjust")
    client.patch(f"/v1/flows/{flow_id}/adjust", json={"amounts": {"A": "150.00"}})

    response = client.put(f"/v1/flows/{flow_id}/adjust")

    assert response.status_code == 422
    assert response.json()["detail"]["error"] == "AmountExceedsTotal"

    data = client.get(f"/v1/flows/{flow_id}").json()
    assert data["mode"] == "adjusting"
    assert shares_of(data) == {"A": "33.33", "B": "33.33", "C": "33.34"}


def test_flow_discard(client: TestClient, flow_body: dict):
    flow_id = client.post("/v1/flows", json=flow_body).json()["flow_id"]
    client.post(f"/v1/flows/{flow_id}/adjust")
    client.patch(f"/v1/flows/{flow_id}/adjust", json={"amounts": {"B": "1.00"}})

    response = client.delete(f"/v1/flows/{flow_id}/adjust")

    assert response.status_code == 200
    assert response.json()["mode"] == "even"
    assert shares_of(response.json())["B"] == "33.33"


def test_flow_finalize_while_adjusting(client: TestClient, flow_body: dict):
    flow_id = client.post("/v1/flows", json=flow_body).json()["flow_id"]
    client.post(f"/v1/flows/{flow_id}/adjust")

    response = client.post(f"/v1/flows/{flow_id}/finalize")

    assert response.status_code == 409
    assert response.json()["detail"]["error"] == "InvalidFlowStateError"


def test_flow_edit_unknown_participant(client: TestClient, flow_body: dict):
    flow_id = client.post("/v1/flows", json=flow_body).json()["flow_id"]
    client.post(f"/v1/flows/{flow_id}/adjust")

    response = client.patch(f"/v1/flows/{flow_id}/adjust", json={"amounts": {"Z": "1.00"}})

    assert response.status_code == 400


def test_flow_reset(client: TestClient, flow_body: dict):
    """Test new total and participants restart with an even split"""
    flow_id = client.post("/v1/flows", json=flow_body).json()["flow_id"]

    response = client.post(
        f"/v1/flows/{flow_id}/reset",
        json={"total": {"amount": "90.00"}, "participants": [{"id": "B", "display_name": "Bob"}]},
    )

    assert response.status_code == 200
    data = response.json()
    assert data["mode"] == "even"
    assert shares_of(data) == {"A": "45.00", "B": "45.00"}
    assert data["participants"][0]["is_current_user"] is True


def test_list_flows(client: TestClient, flow_body: dict):
    """Test GET /v1/flows?user_id="""
    client.post("/v1/flows", json=flow_body)
    client.post("/v1/flows", json=flow_body)

    response = client.get("/v1/flows?user_id=A")

    assert response.status_code == 200
    assert len(response.json()) == 2
    assert client.get("/v1/flows?user_id=nobody").json() == []


def test_get_flow_not_found(client: TestClient):
    """Test GET /v1/flows/{flow_id} with non-existent ID"""
    response = client.get(f"/v1/flows/{uuid.uuid4()}")
    assert response.status_code == 404


def test_get_flow_invalid_id(client: TestClient):
    response = client.get("/v1/flows/not-a-uuid")
    assert response.status_code == 400


def test_contacts(client: TestClient):
    """Test GET /v1/contacts"""
    response = client.get("/v1/contacts?page=0&size=2&exclude=user_me")

    assert response.status_code == 200
    data = response.json()
    assert [c["id"] for c in data["contacts"]] == ["user_alice", "user_bob"]
    assert data["next_page"] == 1
