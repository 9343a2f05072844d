"""Friendship endpoint tests."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select

from calledit.db.models import Friendship
from calledit.exceptions import ConflictError
from calledit.social import friendship_service
from tests.conftest import auth_headers


async def _edge_count(db_session) -> int:
    return (await db_session.execute(select(func.count()).select_from(Friendship))).scalar_one()


@pytest.mark.asyncio
async def test_request_accept_and_list(client: AsyncClient, make_profile) -> None:
    alice = await make_profile(email="alice@example.com", full_name="Alice Smith")
    bob = await make_profile(email="bob@example.com", username="bobby")
    alice_h = auth_headers(alice.id, alice.email)
    bob_h = auth_headers(bob.id, bob.email)

    response = await client.post("/api/friends", json={"targetEmail": "BOB@example.com"}, headers=alice_h)
    assert response.status_code == 200
    assert response.json() == {"success": True}

    sent = (await client.get("/api/friends", headers=alice_h)).json()
    assert sent["friends"] == []
    assert len(sent["sentRequests"]) == 1
    assert sent["sentRequests"][0]["friend"]["id"] == bob.id

    received = (await client.get("/api/friends", headers=bob_h)).json()
    assert len(received["requests"]) == 1
    request = received["requests"][0]
    assert request["user"]["name"] == "Alice"
    assert request["status"] == "pending"

    response = await client.put(
        "/api/friends", json={"friendshipId": request["id"], "status": "accepted"}, headers=bob_h
    )
    assert response.status_code == 200

    # Counterpart is normalized from both sides of the stored edge
    alice_view = (await client.get("/api/friends", headers=alice_h)).json()
    bob_view = (await client.get("/api/friends", headers=bob_h)).json()
    assert alice_view["friends"][0]["friend"]["id"] == bob.id
    assert bob_view["friends"][0]["friend"]["id"] == alice.id
    assert alice_view["sentRequests"] == []
    assert bob_view["requests"] == []


@pytest.mark.asyncio
async def test_single_edge_regardless_of_direction(client: AsyncClient, db_session, make_profile) -> None:
    alice = await make_profile(email="alice@example.com")
    bob = await make_profile(email="bob@example.com")

    first = await client.post(
        "/api/friends", json={"targetEmail": bob.email}, headers=auth_headers(alice.id, alice.email)
    )
    assert first.status_code == 200

    again = await client.post(
        "/api/friends", json={"targetEmail": bob.email}, headers=auth_headers(alice.id, alice.email)
    )
    reverse = await client.post(
        "/api/friends", json={"targetEmail": alice.email}, headers=auth_headers(bob.id, bob.email)
    )
    assert again.status_code == 409
    assert reverse.status_code == 409
    assert reverse.json() == {"error": "Friendship status: pending"}
    assert await _edge_count(db_session) == 1


@pytest.mark.asyncio
async def test_send_request_errors(client: AsyncClient, make_profile) -> None:
    alice = await make_profile(email="alice@example.com")
    headers = auth_headers(alice.id, alice.email)

    yourself = await client.post("/api/friends", json={"targetEmail": alice.email}, headers=headers)
    assert yourself.status_code == 400
    assert yourself.json() == {"error": "Cannot add yourself"}

    unknown = await client.post("/api/friends", json={"targetEmail": "ghost@example.com"}, headers=headers)
    assert unknown.status_code == 404

    missing = await client.post("/api/friends", json={}, headers=headers)
    assert missing.status_code == 400


@pytest.mark.asyncio
async def test_only_recipient_may_respond(client: AsyncClient, make_profile) -> None:
    alice = await make_profile(email="alice@example.com")
    bob = await make_profile(email="bob@example.com")
    carol = await make_profile(email="carol@example.com")
    await client.post("/api/friends", json={"targetEmail": bob.email}, headers=auth_headers(alice.id, alice.email))
    friendship_id = (await client.get("/api/friends", headers=auth_headers(bob.id, bob.email))).json()["requests"][0][
        "id"
    ]

    for actor in (alice, carol):
        response = await client.put(
            "/api/friends",
            json={"friendshipId": friendship_id, "status": "accepted"},
            headers=auth_headers(actor.id, actor.email),
        )
        assert response.status_code == 403

    still_pending = (await client.get("/api/friends", headers=auth_headers(bob.id, bob.email))).json()
    assert still_pending["requests"][0]["status"] == "pending"


@pytest.mark.asyncio
async def test_respond_validation_and_conflict(client: AsyncClient, make_profile) -> None:
    alice = await make_profile(email="alice@example.com")
    bob = await make_profile(email="bob@example.com")
    bob_h = auth_headers(bob.id, bob.email)
    await client.post("/api/friends", json={"targetEmail": bob.email}, headers=auth_headers(alice.id, alice.email))
    friendship_id = (await client.get("/api/friends", headers=bob_h)).json()["requests"][0]["id"]

    bad = await client.put("/api/friends", json={"friendshipId": friendship_id, "status": "pending"}, headers=bob_h)
    assert bad.status_code == 400

    missing = await client.put("/api/friends", json={"friendshipId": "nope", "status": "accepted"}, headers=bob_h)
    assert missing.status_code == 404

    blocked = await client.put("/api/friends", json={"friendshipId": friendship_id, "status": "blocked"}, headers=bob_h)
    assert blocked.status_code == 200

    again = await client.put("/api/friends", json={"friendshipId": friendship_id, "status": "accepted"}, headers=bob_h)
    assert again.status_code == 409

    lists = (await client.get("/api/friends", headers=bob_h)).json()
    assert lists == {"friends": [], "requests": [], "sentRequests": []}


@pytest.mark.asyncio
async def test_follow_and_check(client: AsyncClient, make_profile) -> None:
    alice = await make_profile(email="alice@example.com")
    bob = await make_profile(email="bob@example.com")
    alice_h = auth_headers(alice.id, alice.email)
    bob_h = auth_headers(bob.id, bob.email)

    check = await client.get("/api/friends/check", params={"targetUserId": bob.id}, headers=alice_h)
    assert check.json() == {"isFollowing": False}

    for _ in range(2):
        response = await client.post("/api/friends/follow", json={"targetUserId": bob.id}, headers=alice_h)
        assert response.status_code == 200

    check = await client.get("/api/friends/check", params={"targetUserId": bob.id}, headers=alice_h)
    assert check.json() == {"isFollowing": True}
    reverse = await client.get("/api/friends/check", params={"targetUserId": alice.id}, headers=bob_h)
    assert reverse.json() == {"isFollowing": False}


@pytest.mark.asyncio
async def test_follow_errors(client: AsyncClient, make_profile) -> None:
    alice = await make_profile(email="alice@example.com")
    headers = auth_headers(alice.id, alice.email)

    assert (await client.post("/api/friends/follow", json={"targetUserId": alice.id}, headers=headers)).status_code == 400
    assert (await client.post("/api/friends/follow", json={"targetUserId": "ghost"}, headers=headers)).status_code == 404
    assert (await client.get("/api/friends/check", headers=headers)).status_code == 400


@pytest.mark.asyncio
async def test_friends_require_session(client: AsyncClient) -> None:
    assert (await client.get("/api/friends")).status_code == 401
    assert (await client.post("/api/friends", json={"targetEmail": "a@b.c"})).status_code == 401


async def _seed_edge(db_session, requester_id: str, target_id: str) -> None:
    db_session.add(
        Friendship(
            user_id=requester_id,
            friend_id=target_id,
            status="pending",
            pair_key=friendship_service.pair_key(requester_id, target_id),
            created_at=datetime.now(timezone.utc),
        )
    )
    await db_session.commit()


@pytest.mark.asyncio
async def test_unique_pair_rejects_request_when_lookup_misses(db_session, make_profile, monkeypatch) -> None:
    """The pair constraint alone keeps a single edge for the two profiles."""
    alice = await make_profile(email="alice@example.com")
    bob = await make_profile(email="bob@example.com")
    await _seed_edge(db_session, bob.id, alice.id)

    async def no_edge(*_args):
        return None

    monkeypatch.setattr(friendship_service, "get_edge_between", no_edge)
    with pytest.raises(ConflictError):
        await friendship_service.send_request(db_session, alice, "bob@example.com")
    assert await _edge_count(db_session) == 1


@pytest.mark.asyncio
async def test_follow_losing_insert_race_returns_existing_edge(db_session, make_profile, monkeypatch) -> None:
    alice = await make_profile(email="alice@example.com")
    bob = await make_profile(email="bob@example.com")
    alice_id, bob_id = alice.id, bob.id
    await _seed_edge(db_session, bob_id, alice_id)

    real_lookup = friendship_service.get_edge_between
    calls: list[int] = []

    async def stale_first_lookup(db, a, b):
        calls.append(1)
        if len(calls) == 1:
            return None
        return await real_lookup(db, a, b)

    monkeypatch.setattr(friendship_service, "get_edge_between", stale_first_lookup)
    edge = await friendship_service.follow(db_session, alice, bob_id)

    assert edge.user_id == bob_id
    assert edge.friend_id == alice_id
    assert len(calls) == 2
    assert await _edge_count(db_session) == 1
