"""HTTP-level tests for the hardware, auth and project endpoints."""

import os
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

from portal.db.seed import init_db
from portal.db.session import get_db
from portal.main import app

SEED = {
    "HWSET1": {"capacity": 250, "checked_out": 20},
    "HWSET2": {"capacity": 300, "checked_out": 70},
}


@pytest.fixture()
def client():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine, SEED)
    TestingSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.pop(get_db, None)
        engine.dispose()


@pytest.fixture()
def user_client(client):
    resp = client.post("/api/signup", json={"username": "alice", "password": "wonderland"})
    assert resp.status_code == 200
    return client


def test_health(client):
    assert client.get("/health").json() == {"ok": True}
    assert client.get("/api/health").json() == {"ok": True}


def test_status_is_public_and_sorted(client):
    resp = client.get("/api/hardware")

    assert resp.status_code == 200
    body = resp.json()
    assert list(body["hardware"]) == ["HWSET1", "HWSET2"]
    assert body["hardware"]["HWSET1"] == {"capacity": 250, "checkedOut": 20}
    assert "X-Request-ID" in resp.headers


def test_mutations_require_authentication(client):
    resp = client.post("/api/hardware/HWSET1/checkout", json={"quantity": 1})

    assert resp.status_code == 401
    assert resp.json() == {"error": "Not authenticated"}
    assert client.get("/api/hardware").json()["hardware"]["HWSET1"]["checkedOut"] == 20


def test_checkout_and_checkin_scenario(user_client):
    resp = user_client.post("/api/hardware/hwset1/checkout", json={"quantity": 50})
    assert resp.status_code == 200
    assert resp.json() == {"hardware": {"name": "HWSET1", "capacity": 250, "checkedOut": 70}}

    resp = user_client.post("/api/hardware/HWSET1/checkin", json={"quantity": 100})
    assert resp.status_code == 400
    assert resp.json() == {"error": "Cannot check in more than checked out.", "checkedOut": 70}

    resp = user_client.post("/api/hardware/HWSET1/checkin", json={"quantity": 70})
    assert resp.status_code == 200
    assert resp.json()["hardware"]["checkedOut"] == 0


def test_checkout_over_capacity_reports_available(user_client):
    resp = user_client.post("/api/hardware/HWSET2/checkout", json={"quantity": 231})

    assert resp.status_code == 400
    assert resp.json() == {"error": "Insufficient hardware. Available: 230", "available": 230}
    assert user_client.get("/api/hardware").json()["hardware"]["HWSET2"]["checkedOut"] == 70


def test_unknown_set_returns_not_found(user_client):
    resp = user_client.post("/api/hardware/HWSET9/checkout", json={"quantity": 1})

    assert resp.status_code == 404
    assert resp.json() == {"error": "Hardware not found"}
    assert "HWSET9" not in user_client.get("/api/hardware").json()["hardware"]


@pytest.mark.parametrize(
    "body",
    [{}, {"quantity": 0}, {"quantity": -4}, {"quantity": "abc"}, {"quantity": 1.5}, {"quantity": True}],
)
def test_invalid_quantity_is_rejected(user_client, body):
    resp = user_client.post("/api/hardware/HWSET1/checkout", json=body)

    assert resp.status_code == 400
    assert resp.json()["error"] == "Validation failed"


def test_oversized_quantity_reports_current_counts(user_client):
    huge = 2**63

    resp = user_client.post("/api/hardware/HWSET1/checkout", json={"quantity": huge})
    assert resp.status_code == 400
    assert resp.json() == {"error": "Insufficient hardware. Available: 230", "available": 230}

    resp = user_client.post("/api/hardware/HWSET1/checkin", json={"quantity": huge})
    assert resp.status_code == 400
    assert resp.json() == {"error": "Cannot check in more than checked out.", "checkedOut": 20}

    assert user_client.get("/api/hardware").json()["hardware"]["HWSET1"]["checkedOut"] == 20


def test_boolean_batch_quantity_is_rejected(user_client):
    resp = user_client.post(
        "/api/hardware/batch",
        json={"action": "checkout", "quantities": {"HWSET1": True}},
    )

    assert resp.status_code == 400
    assert resp.json()["error"] == "Validation failed"
    assert user_client.get("/api/hardware").json()["hardware"]["HWSET1"]["checkedOut"] == 20


def test_storage_failure_returns_service_unavailable(user_client, monkeypatch):
    def broken_execute(self, *args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("database is locked"))

    monkeypatch.setattr(Session, "execute", broken_execute)
    resp = user_client.get("/api/hardware")
    assert resp.status_code == 503
    assert resp.json() == {"error": "Hardware storage unavailable, try again"}

    resp = user_client.post("/api/hardware/HWSET1/checkout", json={"quantity": 5})
    assert resp.status_code == 503
    assert resp.json() == {"error": "Hardware storage unavailable, try again"}
    monkeypatch.undo()

    assert user_client.get("/api/hardware").json()["hardware"]["HWSET1"]["checkedOut"] == 20


def test_numeric_string_quantity_is_coerced(user_client):
    resp = user_client.post("/api/hardware/HWSET1/checkout", json={"quantity": "5"})

    assert resp.status_code == 200
    assert resp.json()["hardware"]["checkedOut"] == 25


def test_batch_surfaces_partial_application(user_client):
    resp = user_client.post(
        "/api/hardware/batch",
        json={"action": "checkout", "quantities": {"HWSET1": 10, "HWSET2": 400}},
    )

    assert resp.status_code == 207
    body = resp.json()
    assert body["hardware"] == {"HWSET1": {"name": "HWSET1", "capacity": 250, "checkedOut": 30}}
    assert body["errors"] == {"HWSET2": {"error": "Insufficient hardware. Available: 230", "available": 230}}


def test_batch_success(user_client):
    resp = user_client.post(
        "/api/hardware/batch",
        json={"action": "checkin", "quantities": {"HWSET1": 0, "HWSET2": 70}},
    )

    assert resp.status_code == 200
    body = resp.json()
    assert body["errors"] == {}
    assert body["hardware"]["HWSET2"]["checkedOut"] == 0


def test_signup_login_logout_flow(client):
    assert client.get("/api/me").status_code == 401

    resp = client.post("/api/signup", json={"username": "bob", "password": "builder"})
    assert resp.status_code == 200
    assert resp.json()["user"]["username"] == "bob"
    assert client.get("/api/me").json()["user"]["username"] == "bob"

    assert client.post("/api/signup", json={"username": "bob", "password": "x"}).status_code == 409

    assert client.post("/api/logout").json() == {"ok": True}
    assert client.get("/api/me").json() == {"user": None}
    assert client.post("/api/logout").status_code == 401

    bad = client.post("/api/login", json={"username": "bob", "password": "nope"})
    assert bad.status_code == 401
    assert bad.json() == {"error": "Invalid username/password"}

    good = client.post("/api/login", json={"username": "bob", "password": "builder"})
    assert good.status_code == 200
    assert client.get("/api/portal-summary").status_code == 200


def test_missing_credentials(client):
    resp = client.post("/api/signup", json={"username": "carol"})

    assert resp.status_code == 400
    assert resp.json() == {"error": "Missing fields"}


def test_bearer_token_authorizes_checkout(client):
    client.post("/api/signup", json={"username": "dave", "password": "pw"})
    client.post("/api/logout")

    tokens = client.post("/api/auth/token", json={"username": "dave", "password": "pw"}).json()
    headers = {"Authorization": f"Bearer {tokens['access_token']}"}
    resp = client.post("/api/hardware/HWSET1/checkout", json={"quantity": 1}, headers=headers)
    assert resp.status_code == 200

    refreshed = client.post("/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert refreshed.status_code == 200

    bogus = {"Authorization": "Bearer nonsense"}
    assert client.post("/api/hardware/HWSET1/checkout", json={"quantity": 1}, headers=bogus).status_code == 401


def test_projects_create_join_and_list(client):
    client.post("/api/signup", json={"username": "erin", "password": "pw"})
    resp = client.post("/api/projects", json={"id": "EE461", "name": "Robot arm", "description": "Servos"})
    assert resp.status_code == 201
    assert resp.json()["project"]["members"] == ["erin"]

    assert client.post("/api/projects", json={"id": "EE461", "name": "Again"}).status_code == 409
    assert [p["id"] for p in client.get("/api/projects").json()["projects"]] == ["EE461"]

    client.post("/api/logout")
    client.post("/api/signup", json={"username": "frank", "password": "pw"})
    assert client.get("/api/projects/EE461").status_code == 403
    assert client.post("/api/projects/NOPE/join").status_code == 404

    joined = client.post("/api/projects/EE461/join")
    assert joined.status_code == 200
    assert joined.json()["project"]["members"] == ["erin", "frank"]
    assert client.get("/api/projects/EE461").status_code == 200

    example = client.post("/api/projects/JK3002/join")
    assert example.json()["project"]["name"] == "Example Project"
