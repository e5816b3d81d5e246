# tests/test_errors.py
"""The JSON error envelope produced by the global exception handlers."""

from __future__ import annotations

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError

from inkwell.core.errors import (
    GENERIC_SERVER_ERROR_MESSAGE,
    ConflictError,
    NotFoundError,
    duplicate_key_info,
    register_exception_handlers,
)
from inkwell.core.settings import settings


class Payload(BaseModel):
    name: str


@pytest.fixture()
def error_client() -> TestClient:
    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/missing")
    async def missing() -> None:
        raise NotFoundError("Widget not found", details={"widget_id": 7})

    @app.get("/taken")
    async def taken() -> None:
        raise ConflictError("Name already exists")

    @app.post("/validate")
    async def validate(payload: Payload) -> dict[str, str]:
        return {"name": payload.name}

    @app.get("/duplicate")
    async def duplicate() -> None:
        raise IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed: user_account.email"))

    @app.get("/boom")
    async def boom() -> None:
        raise RuntimeError("kaboom")

    return TestClient(app, raise_server_exceptions=False)


def test_application_error_envelope(error_client: TestClient) -> None:
    r = error_client.get("/missing")
    assert r.status_code == 404
    body = r.json()
    assert body["success"] is False
    error = body["error"]
    assert error["code"] == "NOT_FOUND"
    assert error["message"] == "Widget not found"
    assert error["statusCode"] == 404
    assert error["path"] == "/missing"
    assert error["details"] == {"widget_id": 7}
    assert error["timestamp"]


def test_details_are_omitted_when_absent(error_client: TestClient) -> None:
    error = error_client.get("/taken").json()["error"]
    assert error["code"] == "CONFLICT"
    assert "details" not in error


def test_validation_errors_are_bad_requests(error_client: TestClient) -> None:
    r = error_client.post("/validate", json={})
    assert r.status_code == 400
    error = r.json()["error"]
    assert error["code"] == "BAD_REQUEST"
    assert error["message"] == "Validation failed"
    assert error["details"][0]["loc"] == ["body", "name"]


def test_integrity_errors_are_conflicts(error_client: TestClient) -> None:
    r = error_client.get("/duplicate")
    assert r.status_code == 409
    assert r.json()["error"]["message"] == "Duplicate key error"
    assert r.json()["error"]["details"] == {"field": "email"}


def test_unknown_route_uses_the_envelope(error_client: TestClient) -> None:
    r = error_client.get("/nowhere")
    assert r.status_code == 404
    assert r.json()["error"]["message"] == "Not Found"


def test_unhandled_errors_expose_details_outside_production(error_client: TestClient) -> None:
    r = error_client.get("/boom")
    assert r.status_code == 500
    error = r.json()["error"]
    assert error["code"] == "INTERNAL_SERVER_ERROR"
    assert error["message"] == "kaboom"
    assert error["details"]["name"] == "RuntimeError"
    assert "kaboom" in error["details"]["stack"]


def test_unhandled_errors_are_scrubbed_in_production(
    error_client: TestClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(settings, "environment", "production")
    error = error_client.get("/boom").json()["error"]
    assert error["message"] == GENERIC_SERVER_ERROR_MESSAGE
    assert "details" not in error


def test_client_error_details_survive_production(
    error_client: TestClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(settings, "environment", "production")

    invalid = error_client.post("/validate", json={}).json()["error"]
    assert invalid["message"] == "Validation failed"
    assert invalid["details"][0]["loc"] == ["body", "name"]

    duplicate = error_client.get("/duplicate").json()["error"]
    assert duplicate["details"] == {"field": "email"}


@pytest.mark.parametrize(
    ("message", "expected"),
    [
        (
            'duplicate key value violates unique constraint "ix_user_account_email"\n'
            "DETAIL:  Key (email)=(a@example.com) already exists.",
            {"field": "email", "value": "a@example.com"},
        ),
        ("UNIQUE constraint failed: category.name", {"field": "name"}),
        ("FOREIGN KEY constraint failed", None),
    ],
)
def test_duplicate_key_info(message: str, expected: dict[str, str] | None) -> None:
    assert duplicate_key_info(IntegrityError("INSERT", {}, Exception(message))) == expected
