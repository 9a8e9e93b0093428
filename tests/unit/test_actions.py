import pytest
from pydantic import ValidationError

from app.schemas.actions import (
    ACTION_DOMAINS,
    ACTION_ENUMS,
    GovernanceAction,
    MusicAction,
    NFTAction,
    action_domain,
    parse_action,
)
from app.schemas.event import EventCreate


def test_parse_action_resolves_domain_enum():
    assert parse_action("play") is MusicAction.PLAY
    assert parse_action("nft_bid") is NFTAction.NFT_BID
    assert parse_action("dao_proposal_vote") is GovernanceAction.DAO_PROPOSAL_VOTE


def test_parse_action_rejects_unknown():
    with pytest.raises(ValueError):
        parse_action("teleport")


def test_action_values_are_unique_across_domains():
    assert action_domain("play") == "music"
    assert action_domain(NFTAction.NFT_BID) == "nft"
    assert len(ACTION_DOMAINS) == sum(len(enum_cls) for enum_cls in ACTION_ENUMS.values())


def test_event_create_types_known_metadata():
    event = EventCreate(action="like", context="player", song_id="s1", metadata={"liked": False, "source": "feed"})

    assert event.action is MusicAction.LIKE
    assert event.metadata == {"liked": False, "source": "feed"}


def test_event_create_rejects_bad_metadata_type():
    with pytest.raises(ValidationError):
        EventCreate(action="play", context="player", metadata={"duration": -5})


def test_event_create_keeps_metadata_of_untyped_actions():
    event = EventCreate(action="nft_mint", context="nft_marketplace", metadata={"chain": "polygon"})
    assert event.metadata == {"chain": "polygon"}
    assert event.context.value == "nft_marketplace"


def test_event_create_rejects_unknown_action():
    with pytest.raises(ValidationError):
        EventCreate(action="teleport", context="home")


def test_event_create_requires_context():
    with pytest.raises(ValidationError):
        EventCreate(action="play", user_id="u1")

    with pytest.raises(ValidationError):
        EventCreate(action="play", context="nowhere", user_id="u1")
