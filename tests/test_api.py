"""Tests for the HTTP API."""
import copy

import pytest
from httpx import AsyncClient, ASGITransport

from routeflow.config import get_settings
from routeflow.main import app

from conftest import DOCUMENT

settings = get_settings()

RULE = DOCUMENT["rules"][0]


def client():
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


@pytest.mark.asyncio
async def test_evaluate_match():
    async with client() as c:
        response = await c.post("/v1/rules/evaluate", json={"ruleSet": DOCUMENT, "input": {"intent": "sales"}})

    assert response.status_code == 200
    data = response.json()
    assert data["destination"] == "Sales_Queue"
    assert data["matchedRuleNames"] == ["salesRouting"]
    assert data["trace"][0]["ruleName"] == "salesRouting"
    assert data["trace"][0]["checks"][0]["fact"] == "inputValue.intent"
    assert "executionTimeMs" in data


@pytest.mark.asyncio
async def test_evaluate_trace_covers_every_rule_until_match():
    async with client() as c:
        response = await c.post("/v1/rules/evaluate", json={"ruleSet": DOCUMENT, "input": {"intent": "billing"}})

    data = response.json()
    assert data["destination"] == "General_Queue"
    assert [step["ruleName"] for step in data["trace"]] == ["salesRouting", "catchAll"]


@pytest.mark.asyncio
async def test_evaluate_rejects_too_many_input_keys():
    facts = {f"key{i}": i for i in range(settings.MAX_INPUT_KEYS + 1)}
    async with client() as c:
        response = await c.post("/v1/rules/evaluate", json={"ruleSet": DOCUMENT, "input": facts})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_evaluate_rejects_malformed_condition():
    doc = copy.deepcopy(DOCUMENT)
    doc["rules"][0]["conditions"] = {"all": [], "fact": "x"}
    async with client() as c:
        response = await c.post("/v1/rules/evaluate", json={"ruleSet": doc, "input": {}})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_validate_document():
    doc = copy.deepcopy(DOCUMENT)
    doc["rules"][1]["name"] = "salesRouting"
    async with client() as c:
        ok = await c.post("/v1/rules/validate", json=DOCUMENT)
        dup = await c.post("/v1/rules/validate", json=doc)

    assert ok.status_code == 200
    assert ok.json() == {"isValid": True, "errors": [], "warnings": []}
    assert dup.json()["errors"] == ['Duplicate rule name "salesRouting"']


@pytest.mark.asyncio
async def test_project_and_reconstruct():
    async with client() as c:
        projected = await c.post("/v1/graph/project", json={"rule": RULE})
        assert projected.status_code == 200
        body = projected.json()
        graph = body["graph"]

        assert body["complexity"]["complexity"] == "simple"
        assert [n["type"] for n in graph["nodes"]] == ["header", "logical", "factTest", "event"]

        graph["nodes"][2]["data"]["value"] = "renewals"
        rebuilt = await c.post("/v1/graph/reconstruct", json={"graph": graph, "original": RULE})

    assert rebuilt.status_code == 200
    rule = rebuilt.json()
    assert rule["name"] == "salesRouting"
    assert rule["defaultDestination"] == "General_Queue"
    assert rule["conditions"]["all"][0]["value"] == "renewals"
    assert set(rule["layout"]["nodes"]) == {n["id"] for n in graph["nodes"]}


@pytest.mark.asyncio
async def test_reconstruct_structural_error_is_422():
    async with client() as c:
        graph = (await c.post("/v1/graph/project", json={"rule": RULE})).json()["graph"]
        graph["nodes"] = [n for n in graph["nodes"] if n["type"] != "event"]
        response = await c.post("/v1/graph/reconstruct", json={"graph": graph, "original": RULE})

    assert response.status_code == 422
    detail = response.json()["detail"]
    assert detail["code"] == "MISSING_REQUIRED_NODE"
    assert "event" in detail["message"]


@pytest.mark.asyncio
async def test_malformed_fact_params_are_reported_not_raised():
    async with client() as c:
        graph = (await c.post("/v1/graph/project", json={"rule": RULE})).json()["graph"]
        graph["nodes"][2]["data"]["params"] = "intent"
        validated = await c.post("/v1/graph/validate", json=graph)
        rebuilt = await c.post("/v1/graph/reconstruct", json={"graph": graph, "original": RULE})

    assert validated.status_code == 200
    assert validated.json()["isValid"] is False
    assert rebuilt.status_code == 422
    assert rebuilt.json()["detail"]["code"] == "INVALID_GRAPH_STRUCTURE"


@pytest.mark.asyncio
async def test_graph_validate_and_layout():
    async with client() as c:
        graph = (await c.post("/v1/graph/project", json={"rule": RULE})).json()["graph"]
        graph["edges"].append({"id": "loop", "source": graph["nodes"][2]["id"], "target": graph["nodes"][1]["id"]})
        validated = await c.post("/v1/graph/validate", json=graph)

        graph["edges"].pop()
        graph["nodes"][1]["position"] = {"x": 0, "y": 0}
        laid_out = await c.post("/v1/graph/layout", json=graph)

    result = validated.json()
    assert result["isValid"] is False
    assert any("circular dependency" in e for e in result["errors"])

    assert laid_out.status_code == 200
    assert laid_out.json()["nodes"][1]["position"] != {"x": 0, "y": 0}


@pytest.mark.asyncio
async def test_list_templates():
    async with client() as c:
        everything = await c.get("/v1/templates")
        basic = await c.get("/v1/templates", params={"category": "Basic"})
        search = await c.get("/v1/templates", params={"q": "language"})
        categories = await c.get("/v1/templates/categories")

    assert everything.json()["total"] == 6
    assert [t["id"] for t in basic.json()["templates"]] == ["simple-equal"]
    assert "language-routing" in [t["id"] for t in search.json()["templates"]]
    assert "Time-Based" in categories.json()


@pytest.mark.asyncio
async def test_apply_template():
    async with client() as c:
        applied = await c.post("/v1/templates/simple-equal/apply", json={"variables": {"value": "refund"}})
        missing = await c.post("/v1/templates/simple-equal/apply", json={"variables": {"destination": ""}})
        unknown = await c.post("/v1/templates/nope/apply", json={})

    assert applied.status_code == 200
    assert applied.json()["conditions"]["all"][0]["value"] == "refund"
    assert missing.status_code == 422
    assert missing.json()["detail"]["details"]["missing"] == ["destination"]
    assert unknown.status_code == 404
