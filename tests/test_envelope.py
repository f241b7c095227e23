"""
Unit tests for the response envelope and the error handlers.
"""

from datetime import date, datetime
from decimal import Decimal

import pytest
from flask import Flask
from sqlalchemy.exc import IntegrityError

from zook_admin.envelope import register_error_handlers, success_response, to_json
from zook_admin.errors import ConflictError, ForbiddenError, InternalError, NotFoundError
from zook_admin.schemas.admins import AdminCreate
from zook_admin.schemas.common import parse_body


@pytest.fixture
def envelope_client():
    app = Flask(__name__)
    register_error_handlers(app)

    @app.route("/ok")
    def ok():
        return success_response({"price": Decimal("9.50")}, "Fine")

    @app.route("/created")
    def created():
        return success_response(None, "Made", 201)

    @app.route("/missing")
    def missing():
        raise NotFoundError("Store not found")

    @app.route("/forbidden")
    def forbidden():
        raise ForbiddenError("Cannot modify resources from a different country")

    @app.route("/conflict")
    def conflict():
        raise ConflictError()

    @app.route("/internal")
    def internal():
        raise InternalError("Failed to retrieve stores")

    @app.route("/invalid")
    def invalid():
        parse_body(AdminCreate, {"username": "x", "password": "short", "role": "chef"})

    @app.route("/not-json")
    def not_json():
        parse_body(AdminCreate, ["not", "an", "object"])

    @app.route("/integrity")
    def integrity():
        raise IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed"))

    @app.route("/boom")
    def boom():
        raise RuntimeError("kaboom")

    return app.test_client()


# ── Tests: to_json ───────────────────────────────────────────────────

def test_to_json_converts_nested_values():
    out = to_json({
        "amount": Decimal("1.25"),
        "when": datetime(2024, 1, 2, 3, 4, 5),
        "day": date(2024, 1, 2),
        "rows": [{"n": Decimal("2")}],
    })
    assert out == {
        "amount": 1.25,
        "when": "2024-01-02T03:04:05",
        "day": "2024-01-02",
        "rows": [{"n": 2.0}],
    }


# ── Tests: success envelope ──────────────────────────────────────────

def test_success_envelope(envelope_client):
    resp = envelope_client.get("/ok")
    assert resp.status_code == 200
    assert resp.get_json() == {"status": "success", "message": "Fine", "data": {"price": 9.5}}


def test_success_custom_status(envelope_client):
    resp = envelope_client.get("/created")
    assert resp.status_code == 201
    assert resp.get_json()["data"] is None


# ── Tests: error envelope ────────────────────────────────────────────

@pytest.mark.parametrize("path,status,message", [
    ("/missing", 404, "Store not found"),
    ("/forbidden", 403, "Cannot modify resources from a different country"),
    ("/conflict", 409, "Resource already exists"),
    ("/internal", 500, "Failed to retrieve stores"),
    ("/not-json", 400, "Request body must be a JSON object"),
    ("/integrity", 409, "Resource already exists or violates a constraint"),
    ("/boom", 500, "Internal server error"),
    ("/no-such-route", 404, "Endpoint not found"),
])
def test_error_envelope(envelope_client, path, status, message):
    resp = envelope_client.get(path)
    assert resp.status_code == status
    body = resp.get_json()
    assert body["status"] == "error"
    assert body["message"] == message


def test_validation_errors_list_fields(envelope_client):
    resp = envelope_client.get("/invalid")
    assert resp.status_code == 400
    body = resp.get_json()
    assert body["message"] == "Validation failed"
    fields = {e["field"] for e in body["data"]}
    assert {"username", "password", "role"} <= fields


def test_method_not_allowed(envelope_client):
    resp = envelope_client.post("/ok")
    assert resp.status_code == 405
    assert resp.get_json()["message"] == "Method not allowed"
