from fastapi import FastAPI
from fastapi.testclient import TestClient

from conftest import signup
from main import debug_router


def test_unknown_route(client):
    res = client.get("/nowhere")
    assert res.status_code == 404
    assert res.json() == {"success": False, "message": "Route GET /nowhere not found"}


def test_wrong_method_falls_through_to_not_found(client):
    res = client.get("/signup")
    assert res.status_code == 404
    assert res.json()["message"] == "Route GET /signup not found"


def test_diagnostic_routes_disabled_by_default(client):
    assert client.get("/").status_code == 404
    assert client.post("/", json={"Email": "raw@x.com"}).status_code == 404


def test_disabled_diagnostic_route_ignores_body(client):
    res = client.post("/", content=b"{not json", headers={"content-type": "application/json"})
    assert res.status_code == 404
    assert res.json() == {"success": False, "message": "Route POST / not found"}


def test_diagnostic_routes_when_mounted(client, users):
    signup(client)
    debug_app = FastAPI()
    debug_app.include_router(debug_router)
    debug_client = TestClient(debug_app)

    res = debug_client.post("/", json={"Email": "raw@x.com"})
    assert res.json()["success"] is True
    assert users.count_documents({}) == 2

    dump = debug_client.get("/").json()
    assert {d["Email"] for d in dump} == {"a@x.com", "raw@x.com"}
    assert all("Password" not in d for d in dump)
    assert all(isinstance(d["_id"], str) for d in dump)
