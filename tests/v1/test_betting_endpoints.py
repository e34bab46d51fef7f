"""Tests for the metered betting and connection endpoints."""

import httpx
import pytest
from fastapi import FastAPI, status
from fastapi.testclient import TestClient

from autobet_meter.api.v1.dependencies import get_orchestrator_dep
from autobet_meter.services.classifier import (
    ClassifierClient,
    ClassifierConfig,
    ClassifierError,
    ClassifierOutputError,
)
from autobet_meter.services.metering import MeteredCycleOrchestrator
from tests.conftest import FakeClassifier, ManualClock

OPEN = {"startBetting": True, "timer": 12}


def _body(user_id: str | None = "user-1", image: str | None = "QUJD") -> dict[str, str]:
    payload = {}
    if user_id is not None:
        payload["id"] = user_id
    if image is not None:
        payload["image"] = image
    return payload


def test_check_betting_then_cached_answer(
    client: TestClient, fake_classifier: FakeClassifier, clock: ManualClock, make_account
) -> None:
    make_account("user-1", 5)
    fake_classifier.queue(OPEN, delay=2)

    r = client.post("/api/check-betting", json=_body())
    assert r.status_code == status.HTTP_200_OK
    assert r.json() == {"startBetting": True, "timer": 9.0, "balance": 4}

    clock.advance(1)
    r = client.post("/api/check-betting", json=_body())
    assert r.status_code == status.HTTP_200_OK
    assert r.json() == {"startBetting": True, "timer": 8.0, "balance": 3}
    assert len(fake_classifier.calls) == 1


def test_check_betting_closed_window(
    client: TestClient, fake_classifier: FakeClassifier, make_account
) -> None:
    make_account("user-1", 5)
    fake_classifier.queue({"startBetting": False, "timer": 0})

    r = client.post("/api/check-betting", json=_body())

    assert r.status_code == status.HTTP_200_OK
    assert r.json() == {"startBetting": False, "timer": 0.0, "balance": 4}


def test_missing_image(client: TestClient, make_account) -> None:
    make_account("user-1", 5)

    r = client.post("/api/check-betting", json=_body(image=None))

    assert r.status_code == status.HTTP_400_BAD_REQUEST
    assert r.json() == {"error": "Image is required"}


def test_missing_user_id(client: TestClient) -> None:
    r = client.post("/api/check-betting", json=_body(user_id=None))

    assert r.status_code == status.HTTP_400_BAD_REQUEST
    assert r.json() == {"error": "User ID is required"}


def test_unknown_user(client: TestClient) -> None:
    r = client.post("/api/check-betting", json=_body(user_id="ghost"))

    assert r.status_code == status.HTTP_404_NOT_FOUND
    assert r.json() == {"error": "User not found"}


def test_insufficient_balance(client: TestClient, make_account) -> None:
    make_account("user-1", 0)

    r = client.post("/api/check-betting", json=_body())

    assert r.status_code == status.HTTP_400_BAD_REQUEST
    assert r.json() == {"error": "Insufficient balance"}


def test_classifier_failure_is_500_and_still_charged(
    client: TestClient, fake_classifier: FakeClassifier, make_account
) -> None:
    make_account("user-1", 5)
    fake_classifier.queue(ClassifierError("provider down"))

    r = client.post("/api/check-betting", json=_body())
    assert r.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert r.json() == {"error": "Failed to check betting status"}

    r = client.get("/api/balance", params={"id": "user-1"})
    assert r.json() == {"balance": 4}


def test_malformed_classifier_output_is_500(
    client: TestClient, fake_classifier: FakeClassifier, make_account
) -> None:
    make_account("user-1", 5)
    fake_classifier.queue(ClassifierOutputError("garbage"))

    r = client.post("/api/check-betting", json=_body())

    assert r.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert r.json() == {"error": "Classifier returned malformed output"}


def test_wrong_method(client: TestClient) -> None:
    r = client.get("/api/check-betting")

    assert r.status_code == status.HTTP_405_METHOD_NOT_ALLOWED
    assert r.json() == {"error": "Method not allowed"}


@pytest.mark.parametrize(
    "path",
    ["/api/check-betting", "/api/check-betting-2", "/api/check-connection", "/api/balance"],
)
def test_bare_options_request(client: TestClient, path: str) -> None:
    r = client.options(path)

    assert r.status_code == status.HTTP_200_OK
    assert r.content == b""


def test_cors_preflight(client: TestClient) -> None:
    r = client.options(
        "/api/check-betting",
        headers={
            "Origin": "https://player.example",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "Content-Type",
        },
    )

    assert r.status_code == status.HTTP_200_OK
    assert r.headers["access-control-allow-origin"] == "*"
    assert "POST" in r.headers["access-control-allow-methods"]


def test_invalid_json_body(client: TestClient) -> None:
    r = client.post(
        "/api/check-betting",
        content=b"{not json",
        headers={"Content-Type": "application/json"},
    )

    assert r.status_code == status.HTTP_400_BAD_REQUEST
    assert r.json() == {"error": "Invalid request body"}


def test_check_betting_2(
    client: TestClient, fake_classifier: FakeClassifier, make_account
) -> None:
    make_account("user-1", 5)
    fake_classifier.queue({"startBetting": True, "timer": 6.04})

    r = client.post("/api/check-betting-2", json=_body())

    assert r.status_code == status.HTTP_200_OK
    assert r.json() == {"startBetting": True, "timer": 6.0, "balance": 3}
    assert fake_classifier.calls[0]["model"] == "fast-model"


def test_check_connection(
    client: TestClient, fake_classifier: FakeClassifier, make_account
) -> None:
    make_account("user-1", 5)
    fake_classifier.queue({"needRefresh": False})

    r = client.post("/api/check-connection", json=_body())

    assert r.status_code == status.HTTP_200_OK
    assert r.json() == {"needRefresh": False, "balance": 2}


def test_balance_endpoint(client: TestClient, make_account) -> None:
    make_account("user-1", 7)

    r = client.get("/api/balance", params={"id": "user-1"})
    assert r.status_code == status.HTTP_200_OK
    assert r.json() == {"balance": 7}

    r = client.get("/api/balance", params={"id": "ghost"})
    assert r.status_code == status.HTTP_404_NOT_FOUND
    assert r.json() == {"error": "User not found"}

    r = client.get("/api/balance")
    assert r.status_code == status.HTTP_400_BAD_REQUEST
    assert r.json() == {"error": "User ID is required"}


def test_unknown_path_is_not_found(client: TestClient) -> None:
    r = client.get("/api/does-not-exist")

    assert r.status_code == status.HTTP_404_NOT_FOUND
    assert r.json() == {"error": "Not Found"}


def test_wrong_method_on_balance(client: TestClient) -> None:
    r = client.post("/api/balance", json=_body())

    assert r.status_code == status.HTTP_405_METHOD_NOT_ALLOWED
    assert r.json() == {"error": "Method not allowed"}


def test_non_object_classifier_reply_is_json_error(
    client: TestClient, orchestrator: MeteredCycleOrchestrator, make_account
) -> None:
    make_account("user-1", 5)
    orchestrator.classifier = ClassifierClient(
        ClassifierConfig(
            base_url="https://classifier.test/api/v1",
            api_key="secret",
            default_model="main-model",
            timeout_seconds=2.0,
            max_retries=0,
            max_tokens=64,
        ),
        transport=httpx.MockTransport(lambda request: httpx.Response(200, json=[])),
    )

    r = client.post("/api/check-betting", json=_body())

    assert r.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert r.headers["content-type"] == "application/json"
    assert r.json() == {"error": "Classifier returned malformed output"}
    assert client.get("/api/balance", params={"id": "user-1"}).json() == {"balance": 4}


@pytest.mark.parametrize(
    ("path", "message"),
    [
        ("/api/check-betting", "Failed to check betting status"),
        ("/api/check-connection", "Failed to check connection status"),
    ],
)
def test_unexpected_classifier_crash_is_json_error(
    client: TestClient, fake_classifier: FakeClassifier, make_account, path: str, message: str
) -> None:
    make_account("user-1", 5)
    fake_classifier.queue(KeyError("choices"))

    r = client.post(path, json=_body())

    assert r.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert r.json() == {"error": message}


def test_unhandled_error_renders_json(app: FastAPI) -> None:
    def broken_orchestrator() -> MeteredCycleOrchestrator:
        raise RuntimeError("orchestrator wiring failed")

    app.dependency_overrides[get_orchestrator_dep] = broken_orchestrator
    try:
        test_client = TestClient(app, base_url="http://test", raise_server_exceptions=False)
        r = test_client.post("/api/check-betting", json=_body())
    finally:
        app.dependency_overrides.pop(get_orchestrator_dep, None)

    assert r.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert r.json() == {"error": "Internal server error"}
