import pytest
from fastapi.testclient import TestClient

from api import app, get_orchestrator
from fakes import FakeSampler
from query_autocomplete import AutoCompleteOrchestrator


@pytest.fixture
def sampler(schema):
    return FakeSampler(schema)


@pytest.fixture
def client(sampler):
    orchestrator = AutoCompleteOrchestrator(sampler)
    app.dependency_overrides[get_orchestrator] = lambda: orchestrator
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def test_sample_returns_flag_schema(client):
    response = client.post("/sample", json={"connection": "default", "collection": "users"})

    assert response.status_code == 200
    body = response.json()
    assert body["num"] == 3
    assert body["schema"]["age"] == {"double": [30.0, 42.5], "null": True}
    assert body["schema"]["address"] == {"object": True}


def test_sample_unknown_connection(client):
    response = client.post("/sample", json={"connection": "nope", "collection": "users"})

    assert response.status_code == 404
    assert "nope" in response.json()["detail"]


def test_sample_failure_is_bad_gateway(client, sampler):
    sampler.error = "connection refused"
    response = client.post("/sample", json={"connection": "default", "collection": "users"})

    assert response.status_code == 502


def test_suggest_after_sample(client):
    client.post("/sample", json={"connection": "default", "collection": "users"})
    response = client.post(
        "/suggest",
        json={"connection": "default", "collection": "users", "text": "age: {$g}", "cursor": 8},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["loading"] is False
    assert body["suggestions"] == [
        {"text": "$gt", "kind": "operator", "highlight": ["", "$g", "t"]},
        {"text": "$gte", "kind": "operator", "highlight": ["", "$g", "te"]},
    ]


def test_suggest_while_loading(client):
    response = client.post(
        "/suggest",
        json={"connection": "default", "collection": "orders", "text": "", "cursor": 0},
    )

    assert response.status_code == 200
    assert response.json() == {"suggestions": [], "loading": True}


def test_suggest_unknown_connection(client):
    response = client.post(
        "/suggest",
        json={"connection": "nope", "collection": "users", "text": "", "cursor": 0},
    )

    assert response.status_code == 404


def test_replace(client):
    response = client.post(
        "/replace",
        json={"text": "address.ci", "cursor": 10, "suggestion": "city", "kind": "field"},
    )

    assert response.status_code == 200
    assert response.json() == {"text": "'address.city': ", "cursor": 13}


def test_replace_rejects_unknown_kind(client):
    response = client.post(
        "/replace",
        json={"text": "", "cursor": 0, "suggestion": "a", "kind": "nope"},
    )

    assert response.status_code == 422
