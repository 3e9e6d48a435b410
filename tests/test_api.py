import pytest
from fastapi.testclient import TestClient

from sop_compiler.api.app import create_app
from sop_compiler.config.settings import Settings


@pytest.fixture
def client():
    app = create_app(settings=Settings())
    with TestClient(app) as c:
        yield c


@pytest.fixture
def sample_document():
    return {
        "title": "Order fulfilment",
        "description": "Ship paid orders",
        "version": "1.0.0",
        "triggers": [{"type": "webhook", "config": {"path": "orders"}}],
        "steps": [
            {"id": "s1", "order": 1, "title": "Load order", "type": "action",
             "actionType": "http_request", "nextSteps": ["s2"]},
            {"id": "s2", "order": 2, "title": "Paid", "type": "decision",
             "conditions": [{"field": "paid", "operator": "equals", "value": True, "nextStep": "s3"}]},
            {"id": "s3", "order": 3, "title": "Ship", "type": "action", "actionType": "send_email"},
        ],
    }


def test_validate(client, sample_document):
    resp = client.post("/api/sop/validate", json=sample_document)
    assert resp.status_code == 200
    assert resp.json() == {"valid": True, "errors": [], "warnings": []}


def test_validate_reports_issues(client, sample_document):
    sample_document["steps"][0]["nextSteps"] = ["missing"]
    resp = client.post("/api/sop/validate", json=sample_document)
    assert resp.status_code == 200
    body = resp.json()
    assert body["valid"] is False
    assert body["errors"][0]["message"] == "Referenced step not found: missing"


def test_compile_and_decompile(client, sample_document):
    resp = client.post("/api/sop/compile", json=sample_document)
    assert resp.status_code == 200
    workflow = resp.json()
    assert [n["name"] for n in workflow["nodes"]] == ["Webhook Trigger", "Load order", "Paid", "Ship"]
    assert workflow["nodes"][2]["typeVersion"] == 2
    assert workflow["connections"]["Paid"]["main"][0][0]["node"] == "Ship"

    resp = client.post("/api/sop/decompile", json=workflow)
    assert resp.status_code == 200
    document = resp.json()
    assert [s["id"] for s in document["steps"]] == ["s1", "s2", "s3"]
    assert document["steps"][0]["nextSteps"] == ["s2"]
    assert document["steps"][1]["conditions"][0]["nextStep"] == "s3"
    assert document["triggers"] == [{"type": "webhook", "config": {"path": "orders"}}]


def test_compile_invalid_document(client, sample_document):
    sample_document["title"] = ""
    resp = client.post("/api/sop/compile", json=sample_document)
    assert resp.status_code == 422
    detail = resp.json()["detail"]
    assert "Title is required" in detail["message"]
    assert detail["errors"][0]["field"] == "title"


def test_decompile_cycle(client):
    workflow = {
        "name": "Loop",
        "nodes": [
            {"id": "a", "name": "A", "type": "n8n-nodes-base.code", "typeVersion": 2, "position": [0, 0]},
            {"id": "b", "name": "B", "type": "n8n-nodes-base.code", "typeVersion": 2, "position": [0, 0]},
        ],
        "connections": {
            "A": {"main": [[{"node": "B", "type": "main", "index": 0}]]},
            "B": {"main": [[{"node": "A", "type": "main", "index": 0}]]},
        },
    }
    resp = client.post("/api/sop/decompile", json=workflow)
    assert resp.status_code == 422
    assert "Cycle" in resp.json()["detail"]["message"]


def test_markup_and_parse(client, sample_document):
    resp = client.post("/api/sop/markup", json=sample_document)
    assert resp.status_code == 200
    markup = resp.json()["markup"]
    assert markup.startswith("# SOP: Order fulfilment")

    resp = client.post("/api/sop/parse", json={"markup": markup})
    assert resp.status_code == 200
    parsed = resp.json()
    assert parsed["title"] == "Order fulfilment"
    assert [s["title"] for s in parsed["steps"]] == ["Load order", "Paid", "Ship"]
    assert parsed["steps"][1]["conditions"][0]["value"] is True


def test_action_types(client):
    resp = client.get("/api/sop/action-types")
    assert resp.status_code == 200
    types = resp.json()
    assert types["http_request"] == {"type": "n8n-nodes-base.httpRequest", "typeVersion": 4}
    assert len(types) == 10


def test_malformed_body_rejected(client):
    resp = client.post("/api/sop/compile", json={"steps": "not a list"})
    assert resp.status_code == 422
