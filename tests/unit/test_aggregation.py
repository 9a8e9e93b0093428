from datetime import timedelta

import pytest

from app.models.content import ArtistProfile, Song
from app.models.records import SearchQuery, SubscriptionEvent
from app.models.session import UserSession
from app.services.aggregation import AggregationQueries


def user_session(session_id, user_id, start_time):
    return UserSession(
        session_id=session_id,
        user_id=user_id,
        start_time=start_time,
        last_activity=start_time,
        page_views=1,
        actions=[],
        is_active=True,
    )


@pytest.mark.asyncio
async def test_events_in_window_is_half_open(db, clock, seed, make_event):
    now = clock.now
    await seed(
        make_event("play", now - timedelta(days=7), user_id="u1", song_id="edge"),
        make_event("play", now - timedelta(days=1), user_id="u1", song_id="inside"),
        make_event("play", now - timedelta(days=7, seconds=1), user_id="u1", song_id="old"),
        make_event("play", now, user_id="u1", song_id="at_now"),
        make_event("play", now + timedelta(hours=1), user_id="u1", song_id="future"),
        make_event("play", now - timedelta(days=1), user_id="u2", song_id="other_user"),
    )

    events = await AggregationQueries(db, clock).events_in_window(7, user_id="u1")

    assert [event.song_id for event in events] == ["edge", "inside"]


@pytest.mark.asyncio
async def test_trending_songs_ranked_by_score(db, clock, seed, make_event):
    rows = []
    for i in range(10):
        rows.append(make_event("play", user_id=f"u{i % 5}", song_id="A"))
    for _ in range(5):
        rows.append(make_event("play", user_id="u1", song_id="B"))
        rows.append(make_event("like", user_id="u1", song_id="B"))
    # outside the lookback
    rows.append(make_event("share", clock.now - timedelta(days=8), user_id="u1", song_id="B"))
    await seed(*rows)

    songs = await AggregationQueries(db, clock).trending_songs(limit=10, days=7)

    assert [(song["song_id"], song["trending_score"]) for song in songs] == [("A", 17.5), ("B", 16.5)]
    assert songs[1]["likes"] == 5
    assert songs[1]["shares"] == 0


@pytest.mark.asyncio
async def test_artist_growth_rate_edges(db, clock, seed, make_event):
    await seed(*(make_event("play", clock.now - timedelta(days=d), artist_id="a1") for d in (1, 2, 3)))
    queries = AggregationQueries(db, clock)

    assert await queries.artist_growth_rate("a1", 30) == 100
    assert await queries.artist_growth_rate("quiet", 30) == 0


@pytest.mark.asyncio
async def test_followers_respect_unfollow_flag(db, clock, seed, make_event):
    now = clock.now
    await seed(
        make_event("follow", now - timedelta(days=90), user_id="u1", artist_id="a1", properties={"following": True}),
        make_event("follow", now - timedelta(days=2), user_id="u2", artist_id="a1", properties={"following": True}),
        make_event("follow", now - timedelta(days=2), user_id="u3", artist_id="a1", properties={"following": False}),
        make_event("follow", now - timedelta(days=2), user_id="u2", artist_id="a1"),
    )
    queries = AggregationQueries(db, clock)

    assert await queries.artist_followers("a1") == 2
    assert await queries.artist_new_followers("a1", 30) == 1


@pytest.mark.asyncio
async def test_artist_uploads_and_earnings(db, clock, seed, make_event):
    now = clock.now
    await seed(
        make_event("create_song", artist_id="a1"),
        make_event("create_song", artist_id="a1"),
        make_event("create_merch", artist_id="a1"),
        make_event("subscription_payment", artist_id="a1", value=99),
        make_event("merch_sale", artist_id="a1", value=2),
        make_event("ad_revenue", artist_id="a1", value=1.5),
        make_event("ad_revenue", now - timedelta(days=45), artist_id="a1", value=100),
    )
    queries = AggregationQueries(db, clock)

    assert await queries.artist_uploads("a1") == {"songs": 2, "blogs": 0, "events": 0, "merch": 1}
    assert await queries.artist_earnings("a1", 30) == {
        "subscriptions": 99.0, "merch": 2.0, "events": 0.0, "ads": 1.5, "total": 102.5
    }


@pytest.mark.asyncio
async def test_top_songs_by_artist_joins_catalogue(db, clock, seed, make_event):
    await seed(
        Song(song_id="s1", artist_id="a1", title="First", genre="lofi"),
        make_event("play", user_id="u1", artist_id="a1", song_id="s1"),
        make_event("play", user_id="u2", artist_id="a1", song_id="s1"),
        make_event("play", user_id="u1", artist_id="a1", song_id="s2"),
    )

    top = await AggregationQueries(db, clock).top_songs_by_artist("a1", 30, limit=5)

    assert top == [
        {"song_id": "s1", "title": "First", "genre": "lofi", "plays": 2, "unique_listeners": 2},
        {"song_id": "s2", "title": None, "genre": None, "plays": 1, "unique_listeners": 1},
    ]


@pytest.mark.asyncio
async def test_song_stats_nets_unlikes(db, clock, seed, make_event):
    await seed(
        make_event("play", user_id="u1", song_id="s1"),
        make_event("like", user_id="u1", song_id="s1", properties={"liked": True}),
        make_event("like", user_id="u2", song_id="s1", properties={"liked": True}),
        make_event("like", user_id="u2", song_id="s1", properties={"liked": False}),
    )

    stats = await AggregationQueries(db, clock).song_stats("s1")

    assert stats == {"song_id": "s1", "plays": 1, "unique_listeners": 1, "likes": 1}


@pytest.mark.asyncio
async def test_dau_and_mau(db, clock, seed):
    now = clock.now
    await seed(
        user_session("s-1", "u1", now - timedelta(hours=2)),
        user_session("s-2", "u1", now - timedelta(hours=1)),
        user_session("s-3", "u2", now - timedelta(hours=3)),
        user_session("s-4", "u3", now - timedelta(days=10)),
        user_session("s-5", "u4", now - timedelta(days=20)),
    )
    queries = AggregationQueries(db, clock)

    assert await queries.dau() == 2
    # March 15: the session 20 days back falls in February
    assert await queries.mau() == 3


@pytest.mark.asyncio
async def test_retention_rate(db, clock, seed, make_event):
    cohort_date = clock.now - timedelta(days=14)
    await seed(
        make_event("signup", cohort_date + timedelta(hours=1), user_id="u1"),
        make_event("signup", cohort_date + timedelta(hours=2), user_id="u2"),
        user_session("s-1", "u1", cohort_date + timedelta(days=7, hours=3)),
        user_session("s-2", "u2", cohort_date + timedelta(days=9)),
    )
    queries = AggregationQueries(db, clock)

    assert await queries.retention_rate(7, cohort_date) == 50
    assert await queries.retention_rate(7, cohort_date - timedelta(days=1)) == 0


@pytest.mark.asyncio
async def test_popular_searches(db, clock, seed):
    def search(query, clicks):
        return SearchQuery(
            occurred_at=clock.now - timedelta(hours=1),
            query=query,
            results_count=10,
            clicked_results=[{"item_id": "s1", "item_type": "song", "position": 0}] * clicks,
        )

    await seed(search("lofi", 1), search("lofi", 0), search("jazz", 2))
    queries = AggregationQueries(db, clock)

    searches = await queries.popular_searches(limit=10, days=7)

    assert [s["query"] for s in searches] == ["lofi", "jazz"]
    assert searches[0]["click_through_rate"] == 0.5
    assert searches[0]["avg_results"] == 10
    assert await queries.search_conversion_rate("lofi", 7) == 50
    assert await queries.search_conversion_rate("nothing", 7) == 0


@pytest.mark.asyncio
async def test_merch_sales(db, clock, seed, make_event):
    await seed(
        make_event("merch_sale", merch_id="tee", value=2, properties={"price": 10}),
        make_event("merch_sale", merch_id="tee", value=1, properties={"price": 10}),
        make_event("merch_sale", merch_id="cap", value=1, properties={"price": 25}),
    )

    sales = await AggregationQueries(db, clock).merch_sales(clock.now - timedelta(days=30), clock.now)

    assert sales["total_sales"] == 4
    assert sales["total_revenue"] == 55
    assert [p["merch_id"] for p in sales["best_selling_products"]] == ["tee", "cap"]


@pytest.mark.asyncio
async def test_subscription_summary(db, clock, seed):
    def subscription(action):
        return SubscriptionEvent(
            occurred_at=clock.now - timedelta(days=1),
            user_id="u1",
            subscription_id="sub1",
            artist_id="a1",
            tier="gold",
            action=action,
            amount=99,
            period_start=clock.now - timedelta(days=1),
            period_end=clock.now + timedelta(days=29),
            properties={},
        )

    await seed(*(subscription(a) for a in ("subscribed", "subscribed", "subscribed", "renewed", "cancelled")))

    summary = await AggregationQueries(db, clock).subscription_summary(clock.now - timedelta(days=30), clock.now)

    assert summary == {
        "total_subscriptions": 4,
        "active_subscriptions": 3,
        "churn_rate": 25,
        "renewals": 1,
        "upgrades": 0,
    }


@pytest.mark.asyncio
async def test_growth_trends_buckets_by_day(db, clock, seed, make_event):
    now = clock.now
    await seed(
        make_event("signup", now - timedelta(hours=1), user_id="u1"),
        make_event("signup", now - timedelta(days=2), user_id="u2"),
        make_event("purchase", now - timedelta(hours=2), value=20),
        make_event("signup", now - timedelta(days=5), user_id="u3"),
    )

    trends = await AggregationQueries(db, clock).growth_trends(3)

    assert trends == {
        "dates": ["2026-03-13", "2026-03-14", "2026-03-15"],
        "user_growth": [1, 0, 1],
        "revenue_growth": [0, 0, 20.0],
    }


@pytest.mark.asyncio
async def test_has_artist(db, clock, seed, make_event):
    await seed(ArtistProfile(artist_id="profiled"), make_event("play", artist_id="active"))
    queries = AggregationQueries(db, clock)

    assert await queries.has_artist("profiled")
    assert await queries.has_artist("active")
    assert not await queries.has_artist("ghost")


@pytest.mark.asyncio
async def test_non_object_metadata_is_read_as_empty(db, clock, seed, make_event):
    await seed(
        make_event("follow", user_id="u1", artist_id="a1", properties=["following"]),
        make_event("like", user_id="u1", song_id="s1", properties="liked"),
        make_event("like", user_id="u2", song_id="s1", properties={"liked": True}),
        make_event("merch_sale", merch_id="tee", value=2, properties=[10]),
        make_event("merch_sale", merch_id="tee", value=1, properties={"price": "10"}),
        make_event("merch_sale", merch_id="cap", value=1, properties={"price": 25}),
    )
    queries = AggregationQueries(db, clock)

    assert await queries.artist_followers("a1") == 1
    assert (await queries.song_stats("s1"))["likes"] == 1

    sales = await queries.merch_sales(clock.now - timedelta(days=1), clock.now)
    assert sales["total_sales"] == 4
    assert sales["total_revenue"] == 25
