import uuid

import pytest
from fastapi.testclient import TestClient

from ..core.config import Settings
from ..main import create_app


def _settings(tmp_path) -> Settings:
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'test.db'}",
        seed_accounts={"user_a": 100, "user_b": 0},
        _env_file=None,
    )


@pytest.fixture
def client(tmp_path) -> TestClient:
    app = create_app(_settings(tmp_path))
    with TestClient(app) as test_client:
        yield test_client


def _transfer(client: TestClient, key: str | None, **body):
    payload = {"from_account": "user_a", "to_account": "user_b", "amount": 10}
    payload.update(body)
    headers = {"Idempotency-Key": key} if key is not None else {}
    return client.post("/transfers", json=payload, headers=headers)


def _balance(client: TestClient, account_id: str) -> int:
    return client.get(f"/accounts/{account_id}").json()["balance"]


def test_health(client: TestClient) -> None:
    assert client.get("/health").json() == {"status": "ok"}


def test_seeded_accounts(client: TestClient) -> None:
    response = client.get("/accounts/user_a")
    assert response.status_code == 200
    assert response.json() == {"id": "user_a", "balance": 100}


def test_transfer_and_replay(client: TestClient) -> None:
    key = str(uuid.uuid4())

    first = _transfer(client, key)
    assert first.status_code == 201
    assert first.json()["status"] == "executed"
    assert first.json()["message"] == "Payment Successful"
    assert "Idempotent-Replayed" not in first.headers

    second = _transfer(client, key)
    assert second.status_code == 200
    assert second.json()["status"] == "replayed"
    assert second.json()["message"] == "Transaction already processed (Cached Response)"
    assert second.headers["Idempotent-Replayed"] == "true"
    assert second.json()["record"] == first.json()["record"]

    assert _balance(client, "user_a") == 90
    assert _balance(client, "user_b") == 10


def test_missing_idempotency_key(client: TestClient) -> None:
    response = _transfer(client, None)
    assert response.status_code == 400
    assert response.json()["detail"] == "Missing Idempotency-Key header"
    assert _balance(client, "user_a") == 100


def test_blank_idempotency_key(client: TestClient) -> None:
    response = _transfer(client, "   ")
    assert response.status_code == 400


@pytest.mark.parametrize("amount", [0, -10])
def test_non_positive_amount(client: TestClient, amount: int) -> None:
    response = _transfer(client, str(uuid.uuid4()), amount=amount)
    assert response.status_code == 400
    assert response.json()["reason"] == "invalid_request"


def test_self_transfer_rejected(client: TestClient) -> None:
    response = _transfer(client, str(uuid.uuid4()), to_account="user_a")
    assert response.status_code == 400
    assert response.json()["detail"] == "Cannot transfer to the same account"


def test_unknown_account(client: TestClient) -> None:
    response = _transfer(client, str(uuid.uuid4()), to_account="ghost")
    assert response.status_code == 404
    assert response.json() == {
        "detail": "Account ghost not found",
        "reason": "not_found",
    }
    assert _balance(client, "user_a") == 100


def test_insufficient_funds(client: TestClient) -> None:
    response = _transfer(client, str(uuid.uuid4()), amount=500)
    assert response.status_code == 409
    assert response.json()["reason"] == "insufficient_funds"


def test_get_transfer(client: TestClient) -> None:
    key = str(uuid.uuid4())
    _transfer(client, key, amount=25)

    response = client.get(f"/transfers/{key}")
    assert response.status_code == 200
    assert response.json()["amount"] == 25
    assert response.json()["outcome"] == "success"

    assert client.get(f"/transfers/{uuid.uuid4()}").status_code == 404


def test_unknown_account_lookup(client: TestClient) -> None:
    response = client.get("/accounts/ghost")
    assert response.status_code == 404
    assert response.json()["detail"] == "Account ghost not found"


def test_restart_keeps_balances(tmp_path) -> None:
    settings = _settings(tmp_path)
    with TestClient(create_app(settings)) as client:
        _transfer(client, "k1")

    with TestClient(create_app(settings)) as client:
        assert _balance(client, "user_a") == 90
        assert _transfer(client, "k1").status_code == 200


def test_openapi_documents_failure_statuses(client: TestClient) -> None:
    responses = client.get("/openapi.json").json()["paths"]["/transfers"]["post"]["responses"]
    for code in ("400", "404", "409", "500", "503", "504"):
        assert code in responses
