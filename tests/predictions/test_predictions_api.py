"""Prediction create/read/update/delete endpoint tests."""

from __future__ import annotations

import json

import httpx
import pytest
from httpx import AsyncClient

from calledit.ai.classifier import CategoryClassifier, get_classifier
from calledit.config import Settings
from tests.conftest import auth_headers


async def _create(client: AsyncClient, headers: dict, **body) -> httpx.Response:
    payload = {"prediction": "Team X wins", "category": "sports", "isPrivate": False}
    payload.update(body)
    return await client.post("/api/predictions", json=payload, headers=headers)


@pytest.mark.asyncio
async def test_outcome_update_scenario(client: AsyncClient, make_profile) -> None:
    """Owner creates and resolves; a second user cannot change the outcome."""
    alice = await make_profile(email="alice@example.com", full_name="Alice A")
    bob = await make_profile(email="bob@example.com")
    alice_headers = auth_headers(alice.id, alice.email)

    response = await _create(client, alice_headers)
    assert response.status_code == 201
    created = response.json()["prediction"]
    assert created["outcome"] == "pending"
    assert created["author"]["name"] == "Alice"

    feed = (await client.get("/api/feed")).json()["predictions"]
    assert feed[0]["id"] == created["id"]
    assert feed[0]["outcome"] == "pending"

    response = await client.put(
        "/api/predictions", json={"id": created["id"], "outcome": "true"}, headers=alice_headers
    )
    assert response.status_code == 200
    assert response.json() == {"success": True}
    assert (await client.get("/api/feed")).json()["predictions"][0]["outcome"] == "true"

    response = await client.put(
        "/api/predictions",
        json={"id": created["id"], "outcome": "false"},
        headers=auth_headers(bob.id, bob.email),
    )
    assert response.status_code == 403
    assert "error" in response.json()
    assert (await client.get("/api/feed")).json()["predictions"][0]["outcome"] == "true"


@pytest.mark.asyncio
async def test_create_requires_session(client: AsyncClient) -> None:
    response = await client.post("/api/predictions", json={"prediction": "x", "category": "sports"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_first_request_creates_profile(client: AsyncClient) -> None:
    headers = auth_headers("new-user-id", "new@example.com", full_name="Nova Newton")
    response = await _create(client, headers)
    assert response.status_code == 201
    assert response.json()["prediction"]["author"]["name"] == "Nova"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    [
        {"prediction": ""},
        {"prediction": "   "},
        {"prediction": "x" * 281},
        {"category": "health"},
        {"category": "astrology"},
    ],
)
async def test_create_validation(client: AsyncClient, make_profile, body) -> None:
    user = await make_profile(email="u@example.com")
    response = await _create(client, auth_headers(user.id, user.email), **body)
    assert response.status_code == 400
    assert "error" in response.json()


@pytest.mark.asyncio
async def test_create_without_category_falls_back_to_default(client: AsyncClient, make_profile) -> None:
    """No LLM key is configured in tests, so classification degrades to the default."""
    user = await make_profile(email="u@example.com")
    response = await client.post(
        "/api/predictions", json={"prediction": "Something odd happens"}, headers=auth_headers(user.id, user.email)
    )
    assert response.status_code == 201
    assert response.json()["prediction"]["category"] == "not-on-my-bingo"


@pytest.mark.asyncio
async def test_create_uses_classifier(app, client: AsyncClient, make_profile) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        text = json.dumps({"category": "financial-markets", "targetDate": "2026-12-31", "tags": ["btc"]})
        return httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": text}]}}]})

    settings = Settings(llm_api_key="test-key")
    app.dependency_overrides[get_classifier] = lambda: CategoryClassifier(
        settings, client=httpx.AsyncClient(transport=httpx.MockTransport(handler))
    )
    user = await make_profile(email="u@example.com")

    response = await client.post(
        "/api/predictions", json={"prediction": "BTC at 200k by NYE"}, headers=auth_headers(user.id, user.email)
    )
    assert response.status_code == 201
    prediction = response.json()["prediction"]
    assert prediction["category"] == "financial-markets"
    assert prediction["targetDate"] == "2026-12-31"
    assert prediction["meta"]["tags"] == ["btc"]

    analyzed = await client.post(
        "/api/predictions/analyze", json={"text": "BTC at 200k by NYE"}, headers=auth_headers(user.id, user.email)
    )
    assert analyzed.status_code == 200
    assert analyzed.json()["category"] == "financial-markets"
    assert analyzed.json()["targetDate"] == "2026-12-31"


@pytest.mark.asyncio
async def test_analyze_without_llm_is_500(client: AsyncClient, make_profile) -> None:
    user = await make_profile(email="u@example.com")
    response = await client.post(
        "/api/predictions/analyze", json={"text": "anything"}, headers=auth_headers(user.id, user.email)
    )
    assert response.status_code == 500
    assert response.json() == {"error": "Failed to analyze prediction"}


@pytest.mark.asyncio
async def test_private_prediction_visible_only_to_owner(client: AsyncClient, make_profile, make_prediction) -> None:
    owner = await make_profile(email="owner@example.com")
    other = await make_profile(email="other@example.com")
    secret = await make_prediction(owner, is_private=True)

    assert (await client.get(f"/api/predictions/{secret.id}")).status_code == 404
    assert (
        await client.get(f"/api/predictions/{secret.id}", headers=auth_headers(other.id, other.email))
    ).status_code == 404
    response = await client.get(f"/api/predictions/{secret.id}", headers=auth_headers(owner.id, owner.email))
    assert response.status_code == 200
    assert response.json()["prediction"]["id"] == secret.id


@pytest.mark.asyncio
async def test_evidence_can_be_set_and_cleared(client: AsyncClient, make_profile, make_prediction) -> None:
    owner = await make_profile(email="owner@example.com")
    prediction = await make_prediction(owner)
    headers = auth_headers(owner.id, owner.email)

    await client.put(
        "/api/predictions", json={"id": prediction.id, "evidenceImageUrl": "https://img/x.png"}, headers=headers
    )
    view = (await client.get(f"/api/predictions/{prediction.id}")).json()["prediction"]
    assert view["evidenceImageUrl"] == "https://img/x.png"

    await client.put("/api/predictions", json={"id": prediction.id, "outcome": "false"}, headers=headers)
    view = (await client.get(f"/api/predictions/{prediction.id}")).json()["prediction"]
    assert view["evidenceImageUrl"] == "https://img/x.png"
    assert view["outcome"] == "false"

    await client.put("/api/predictions", json={"id": prediction.id, "evidenceImageUrl": None}, headers=headers)
    view = (await client.get(f"/api/predictions/{prediction.id}")).json()["prediction"]
    assert "evidenceImageUrl" not in view


@pytest.mark.asyncio
async def test_invalid_outcome_rejected(client: AsyncClient, make_profile, make_prediction) -> None:
    owner = await make_profile(email="owner@example.com")
    prediction = await make_prediction(owner)
    response = await client.put(
        "/api/predictions", json={"id": prediction.id, "outcome": "maybe"}, headers=auth_headers(owner.id, owner.email)
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_soft_delete(client: AsyncClient, db_session, make_profile, make_prediction) -> None:
    owner = await make_profile(email="owner@example.com")
    other = await make_profile(email="other@example.com")
    prediction = await make_prediction(owner)

    response = await client.delete(
        "/api/predictions", params={"id": prediction.id}, headers=auth_headers(other.id, other.email)
    )
    assert response.status_code == 403

    response = await client.delete(
        "/api/predictions", params={"id": prediction.id}, headers=auth_headers(owner.id, owner.email)
    )
    assert response.status_code == 200
    assert (await client.get("/api/feed")).json()["predictions"] == []
    assert (await client.get(f"/api/predictions/{prediction.id}")).status_code == 404

    await db_session.refresh(prediction)
    assert prediction.deleted_at is not None


@pytest.mark.asyncio
async def test_soft_delete_via_update(client: AsyncClient, make_profile, make_prediction) -> None:
    owner = await make_profile(email="owner@example.com")
    prediction = await make_prediction(owner)
    headers = auth_headers(owner.id, owner.email)

    response = await client.put(
        "/api/predictions", json={"id": prediction.id, "deletedAt": "2026-06-01T00:00:00Z"}, headers=headers
    )
    assert response.status_code == 200
    assert (await client.get("/api/dashboard", headers=headers)).json()["predictions"] == []


@pytest.mark.asyncio
async def test_update_unknown_prediction(client: AsyncClient, make_profile) -> None:
    owner = await make_profile(email="owner@example.com")
    response = await client.put(
        "/api/predictions", json={"id": "missing", "outcome": "true"}, headers=auth_headers(owner.id, owner.email)
    )
    assert response.status_code == 404
