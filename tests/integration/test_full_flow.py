from datetime import datetime, timedelta, timezone

import pytest

from app.core.config import settings
from app.models.content import ArtistProfile, Song


@pytest.mark.asyncio
async def test_health_check(client):
    """Test health endpoint"""
    response = await client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"


@pytest.mark.asyncio
async def test_plays_and_likes_show_up_in_user_metrics(client, seed):
    """Test complete flow: track plays and likes → query user analytics"""
    await seed(
        ArtistProfile(artist_id="a1", name="Artist One"),
        Song(song_id="S1", artist_id="a1", title="Song One", genre="lofi"),
    )

    # 1. Track events
    for _ in range(3):
        response = await client.post("/api/analytics/songs/S1/play", json={"user_id": "u1", "duration": 120})
        assert response.status_code == 202
        assert response.json() == {"recorded": True, "projected": True}

    for _ in range(2):
        response = await client.post("/api/analytics/songs/S1/like", json={"user_id": "u1"})
        assert response.status_code == 202

    # 2. Query the acting user
    response = await client.get("/api/analytics/users/u1?days=1")
    assert response.status_code == 200
    metrics = response.json()
    assert metrics["total_plays"] == 3
    assert metrics["total_likes"] == 2
    assert metrics["total_actions"] == 5
    assert metrics["favorite_genres"] == ["lofi"]

    # 3. Projections and read models agree
    response = await client.get("/api/analytics/songs/S1")
    assert response.json() == {"song_id": "S1", "plays": 3, "unique_listeners": 1, "likes": 2}

    response = await client.get("/api/analytics/artists/a1")
    assert response.status_code == 200
    assert response.json()["total_plays"] == 3

    response = await client.get("/api/analytics/trending?days=1")
    assert response.json()[0]["song_id"] == "S1"


@pytest.mark.asyncio
async def test_generic_event_endpoint(client):
    response = await client.post("/api/analytics", json={
        "action": "nft_mint",
        "context": "profile",
        "user_id": "u1",
        "nft_id": "n1",
        "metadata": {"chain": "polygon"}
    })
    assert response.status_code == 202
    assert response.json()["message"] == "Analytics tracked successfully"

    response = await client.get("/api/analytics/users/u1")
    assert response.json()["total_actions"] == 1


@pytest.mark.asyncio
async def test_unknown_action_is_rejected(client):
    response = await client.post("/api/analytics", json={"action": "teleport", "user_id": "u1"})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_session_lifecycle(client):
    response = await client.post("/api/analytics/sessions", json={
        "user_id": "u1",
        "device_info": {"type": "mobile", "os": "android"}
    })
    assert response.status_code == 201
    session_id = response.json()["session_id"]

    response = await client.patch(f"/api/analytics/sessions/{session_id}", json={
        "page_views_increment": 2,
        "actions": ["play"]
    })
    assert response.status_code == 200

    # Ending twice is fine
    for _ in range(2):
        response = await client.delete(f"/api/analytics/sessions/{session_id}")
        assert response.status_code == 200

    response = await client.get(f"/api/analytics/sessions/{session_id}")
    assert response.status_code == 200
    session = response.json()
    assert session["is_active"] is False
    assert session["page_views"] == 3
    assert session["actions"] == ["session_start", "play"]

    response = await client.get("/api/analytics/users/u1")
    assert response.json()["session_count"] == 1


@pytest.mark.asyncio
async def test_unknown_resources(client):
    response = await client.get("/api/analytics/sessions/session_missing")
    assert response.status_code == 404
    assert response.json() == {"error": "Session not found"}

    response = await client.get("/api/analytics/artists/ghost")
    assert response.status_code == 404
    assert response.json() == {"error": "Artist analytics not found"}

    response = await client.get("/api/analytics/content/s1/song")
    assert response.status_code == 404

    # Updating an unknown session is a silent no-op
    response = await client.patch("/api/analytics/sessions/session_missing", json={"page_views_increment": 1})
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_search_subscription_and_order_tracking(client):
    response = await client.post("/api/analytics/search", json={
        "user_id": "u1",
        "query": "lofi",
        "results_count": 8,
        "clicked_results": [{"item_id": "S1", "item_type": "song", "position": 0}]
    })
    assert response.status_code == 202

    response = await client.post("/api/analytics/subscriptions", json={
        "user_id": "u1",
        "subscription_id": "sub1",
        "artist_id": "a1",
        "tier": "gold",
        "action": "subscribed",
        "amount": 199,
        "period": {"start": "2026-01-01T00:00:00Z", "end": "2026-02-01T00:00:00Z"}
    })
    assert response.status_code == 202

    response = await client.post("/api/analytics/orders", json={
        "user_id": "u1",
        "order_id": "o1",
        "type": "merch",
        "items": [{"item_id": "tee", "item_type": "merch", "quantity": 1, "price": 499}],
        "total_amount": 499,
        "status": "placed",
        "payment_status": "completed"
    })
    assert response.status_code == 202

    response = await client.get("/api/analytics/searches/popular")
    assert response.json()[0]["query"] == "lofi"
    assert response.json()[0]["click_through_rate"] == 1

    response = await client.get("/api/analytics/subscriptions")
    assert response.json()["total_subscriptions"] == 1


@pytest.mark.asyncio
async def test_content_performance_roundtrip(client):
    response = await client.patch("/api/analytics/content/S1/song", json={
        "artist_id": "a1",
        "metrics": {"views": 20, "likes": 4, "shares": 1}
    })
    assert response.status_code == 200

    response = await client.get("/api/analytics/content/S1/song")
    assert response.status_code == 200
    snapshot = response.json()
    assert snapshot["artist_id"] == "a1"
    assert snapshot["metrics"]["engagement_rate"] == 25


@pytest.mark.asyncio
async def test_window_parameter_is_validated(client):
    response = await client.get("/api/analytics/users/u1?days=0")
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_platform_metrics_require_api_key(client, monkeypatch):
    monkeypatch.setattr(settings, "api_key", "secret")

    response = await client.get("/api/analytics/platform")
    assert response.status_code == 403

    response = await client.get("/api/analytics/platform", headers={"X-API-Key": "secret"})
    assert response.status_code == 200
    assert response.json()["total_signups"] == 0


@pytest.mark.asyncio
async def test_event_without_context_is_rejected(client):
    response = await client.post("/api/analytics", json={"action": "play", "user_id": "u1"})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_user_route_tolerates_malformed_metadata(client, seed, make_event):
    occurred_at = datetime.now(timezone.utc) - timedelta(minutes=5)
    await seed(
        make_event("share", occurred_at, user_id="u9", properties={"genre": ["rock", "pop"]}),
        make_event("play", occurred_at, user_id="u9", properties={"duration": "180"}),
        make_event("play", occurred_at, user_id="u9", properties=["not", "an", "object"]),
    )

    response = await client.get("/api/analytics/users/u9")

    assert response.status_code == 200
    data = response.json()
    assert data["total_plays"] == 2
    assert data["favorite_genres"] == []
    assert data["listening_hours"] == 0
