import pytest
from sqlalchemy import func, select
from structlog.testing import capture_logs

from app.models.content import ArtistProfile, ContentPerformance, Song
from app.models.event import Event
from app.models.records import SearchQuery
from app.schemas.event import EventCreate
from app.schemas.records import ContentMetricsUpdate, SearchQueryCreate
from app.services.ingestion import IngestionService


class FailingSession:
    """Store double whose commits always fail"""

    def __init__(self):
        self.rolled_back = False

    def add(self, row):
        pass

    async def get(self, *args, **kwargs):
        return None

    async def commit(self):
        raise RuntimeError("database is unavailable")

    async def rollback(self):
        self.rolled_back = True


async def counters(db, song_id, artist_id):
    song = (await db.execute(
        select(Song.plays, Song.unique_listeners, Song.likes).where(Song.song_id == song_id)
    )).one()
    artist = (await db.execute(
        select(ArtistProfile.total_plays, ArtistProfile.total_likes).where(ArtistProfile.artist_id == artist_id)
    )).one()
    return tuple(song), tuple(artist)


@pytest.fixture
def catalogue(seed):
    async def _catalogue():
        await seed(
            ArtistProfile(artist_id="a1", name="Artist One"),
            Song(song_id="s1", artist_id="a1", title="First", genre="lofi"),
        )
    return _catalogue


@pytest.mark.asyncio
async def test_record_assigns_id_and_timestamp(db, clock):
    event_id = await IngestionService(db, clock).record(
        EventCreate(action="view", context="home", user_id="u1", metadata={"page": "/home"})
    )

    assert event_id is not None
    row = (await db.execute(select(Event.occurred_at, Event.action, Event.properties))).one()
    assert row.occurred_at == clock.now
    assert row.action == "view"
    assert row.properties == {"page": "/home"}


@pytest.mark.asyncio
async def test_record_never_raises_on_store_failure():
    store = FailingSession()

    with capture_logs() as logs:
        event_id = await IngestionService(store).record(EventCreate(action="play", context="player", user_id="u1"))

    assert event_id is None
    assert store.rolled_back
    assert any(
        log["event"] == "event_record_failed" and log["log_level"] == "error"
        for log in logs
    )


@pytest.mark.asyncio
async def test_track_song_play_updates_counters(db, clock, catalogue):
    await catalogue()
    service = IngestionService(db, clock)

    first = await service.track_song_play("u1", "s1", duration=180)
    second = await service.track_song_play("u1", "s1")
    third = await service.track_song_play("u2", "s1")

    assert first.recorded and first.projected
    assert second.projected and third.projected
    assert await counters(db, "s1", "a1") == ((3, 2, 0), (3, 0))

    genres = (await db.execute(select(Event.properties).where(Event.action == "play"))).scalars().all()
    assert all(properties["genre"] == "lofi" for properties in genres)


@pytest.mark.asyncio
async def test_track_song_play_unknown_song_only_records(db, clock):
    result = await IngestionService(db, clock).track_song_play("u1", "missing")

    assert result.recorded is True
    assert result.projected is False
    assert await db.scalar(select(func.count()).select_from(Event)) == 1


@pytest.mark.asyncio
async def test_track_song_like_never_goes_below_zero(db, clock, catalogue):
    await catalogue()
    service = IngestionService(db, clock)

    await service.track_song_like("u1", "s1", liked=True)
    await service.track_song_like("u1", "s1", liked=False)
    await service.track_song_like("u1", "s1", liked=False)

    assert await counters(db, "s1", "a1") == ((0, 0, 0), (0, 0))
    assert await db.scalar(select(func.count()).select_from(Event).where(Event.action == "like")) == 3


@pytest.mark.asyncio
async def test_track_artist_follow_records_flag(db, clock):
    await IngestionService(db, clock).track_artist_follow("u1", "a1", following=False)

    row = (await db.execute(select(Event.action, Event.artist_id, Event.properties))).one()
    assert row.action == "unfollow"
    assert row.artist_id == "a1"
    assert row.properties == {"following": False}


@pytest.mark.asyncio
async def test_track_search_query_stores_clicks(db, clock):
    record_id = await IngestionService(db, clock).track_search_query(SearchQueryCreate(
        user_id="u1",
        query="lofi beats",
        results_count=12,
        clicked_results=[{"item_id": "s1", "item_type": "song", "position": 0}],
    ))

    assert record_id is not None
    stored = (await db.execute(select(SearchQuery.query, SearchQuery.clicked_results))).one()
    assert stored.query == "lofi beats"
    assert stored.clicked_results == [{"item_id": "s1", "item_type": "song", "position": 0}]


@pytest.mark.asyncio
async def test_update_content_metrics_merges_fields(db, clock):
    service = IngestionService(db, clock)

    assert await service.update_content_metrics("s1", "song", ContentMetricsUpdate(
        metrics={"views": 10, "likes": 2, "shares": 1},
        demographics={"countries": {"IN": 5}},
    ))
    clock.advance(hours=1)
    assert await service.update_content_metrics("s1", "song", ContentMetricsUpdate(
        metrics={"plays": 4},
        trending={"score": 12.5},
        demographics={"countries": {"US": 1}},
    ))

    row = (await db.execute(
        select(
            ContentPerformance.metrics,
            ContentPerformance.trending,
            ContentPerformance.demographics,
            ContentPerformance.last_updated,
        )
    )).one()
    assert row.metrics["views"] == 10
    assert row.metrics["plays"] == 4
    assert row.metrics["engagement_rate"] == 30
    assert row.trending["score"] == 12.5
    assert row.trending["last_calculated"] == clock.now.isoformat()
    assert row.demographics == {"countries": {"IN": 5, "US": 1}}
    assert row.last_updated == clock.now
