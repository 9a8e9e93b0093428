"""Event taxonomy.

Trackable actions are split into one string enum per product domain so
each domain can be matched exhaustively on its own. ``EventAction`` is the
union accepted at ingest. Enum values are unique across domains.
"""

from enum import Enum
from typing import Union


class PlatformAction(str, Enum):
    SIGNUP = "signup"
    LOGIN = "login"
    VIEW = "view"
    SEARCH = "search"
    PROFILE_VIEW = "profile_view"
    DISCOVER_BROWSE = "discover_browse"
    GENRE_FILTER = "genre_filter"
    MOOD_FILTER = "mood_filter"
    BLOG_VIEW = "blog_view"
    CREATE_BLOG = "create_blog"
    COMMENT = "comment"
    REPLY = "reply"
    REPORT = "report"
    BLOCK = "block"
    UNBLOCK = "unblock"


class MusicAction(str, Enum):
    PLAY = "play"
    LIKE = "like"
    SHARE = "share"
    SHARE_SOCIAL = "share_social"
    DOWNLOAD = "download"
    REVIEW = "review"
    RATE_SONG = "rate_song"
    ADD_TO_PLAYLIST = "add_to_playlist"
    REMOVE_FROM_PLAYLIST = "remove_from_playlist"
    CREATE_PLAYLIST = "create_playlist"
    CREATE_SONG = "create_song"
    FOLLOW = "follow"
    UNFOLLOW = "unfollow"
    FOLLOW_ARTIST = "follow_artist"
    UNFOLLOW_ARTIST = "unfollow_artist"


class CommerceAction(str, Enum):
    PURCHASE = "purchase"
    SUBSCRIBE = "subscribe"
    UPGRADE_PREMIUM = "upgrade_premium"
    CANCEL_SUBSCRIPTION = "cancel_subscription"
    RENEW_SUBSCRIPTION = "renew_subscription"
    SUBSCRIPTION_PAYMENT = "subscription_payment"
    REFUND = "refund"
    RETURN_REQUEST = "return_request"
    ORDER_PLACED = "order_placed"
    ORDER_CANCELLED = "order_cancelled"
    PAYMENT_SUCCESS = "payment_success"
    PAYMENT_FAILED = "payment_failed"
    MERCH_VIEW = "merch_view"
    MERCH_SALE = "merch_sale"
    CREATE_MERCH = "create_merch"
    EVENT_REGISTRATION = "event_registration"
    EVENT_ATTENDANCE = "event_attendance"
    EVENT_TICKET_SALE = "event_ticket_sale"
    CREATE_EVENT = "create_event"


class AdAction(str, Enum):
    AD_IMPRESSION = "ad_impression"
    AD_CLICK = "ad_click"
    AD_COMPLETE = "ad_complete"
    AD_SKIP = "ad_skip"
    AD_REVENUE = "ad_revenue"


class NFTAction(str, Enum):
    NFT_VIEW = "nft_view"
    NFT_MINT = "nft_mint"
    NFT_LIST = "nft_list"
    NFT_DELIST = "nft_delist"
    NFT_BID = "nft_bid"
    NFT_AUCTION_START = "nft_auction_start"
    NFT_AUCTION_END = "nft_auction_end"
    NFT_SALE = "nft_sale"
    NFT_TRANSFER = "nft_transfer"
    NFT_ROYALTY_PAID = "nft_royalty_paid"


class FanClubAction(str, Enum):
    FANCLUB_JOIN = "fanclub_join"
    FANCLUB_LEAVE = "fanclub_leave"
    FANCLUB_POST = "fanclub_post"
    FANCLUB_REACTION = "fanclub_reaction"
    FANCLUB_TIER_UPGRADE = "fanclub_tier_upgrade"
    FANCLUB_EXCLUSIVE_ACCESS = "fanclub_exclusive_access"


class GovernanceAction(str, Enum):
    DAO_PROPOSAL_CREATE = "dao_proposal_create"
    DAO_PROPOSAL_VOTE = "dao_proposal_vote"
    DAO_PROPOSAL_EXECUTE = "dao_proposal_execute"
    DAO_DELEGATE = "dao_delegate"
    DAO_TOKEN_CLAIM = "dao_token_claim"
    DAO_TREASURY_DEPOSIT = "dao_treasury_deposit"


class CrossChainAction(str, Enum):
    WALLET_CONNECT = "wallet_connect"
    WALLET_DISCONNECT = "wallet_disconnect"
    BRIDGE_INITIATED = "bridge_initiated"
    BRIDGE_COMPLETED = "bridge_completed"
    BRIDGE_FAILED = "bridge_failed"
    CHAIN_SWITCH = "chain_switch"


class LoyaltyAction(str, Enum):
    LOYALTY_POINTS_EARNED = "loyalty_points_earned"
    LOYALTY_POINTS_SPENT = "loyalty_points_spent"
    LOYALTY_POINTS_STAKED = "loyalty_points_staked"
    LOYALTY_ACHIEVEMENT_UNLOCKED = "loyalty_achievement_unlocked"
    LOYALTY_TIER_CHANGE = "loyalty_tier_change"
    LOYALTY_REWARD_CLAIMED = "loyalty_reward_claimed"
    LOYALTY_STREAK_BONUS = "loyalty_streak_bonus"


EventAction = Union[
    PlatformAction,
    MusicAction,
    CommerceAction,
    AdAction,
    NFTAction,
    FanClubAction,
    GovernanceAction,
    CrossChainAction,
    LoyaltyAction,
]

ACTION_ENUMS: dict[str, type[Enum]] = {
    "platform": PlatformAction,
    "music": MusicAction,
    "commerce": CommerceAction,
    "ads": AdAction,
    "nft": NFTAction,
    "fan_club": FanClubAction,
    "governance": GovernanceAction,
    "cross_chain": CrossChainAction,
    "loyalty": LoyaltyAction,
}

ACTION_DOMAINS: dict[str, str] = {
    member.value: domain
    for domain, enum_cls in ACTION_ENUMS.items()
    for member in enum_cls
}


def parse_action(value: str) -> EventAction:
    """Resolve a raw action name to its domain enum member."""
    domain = ACTION_DOMAINS.get(value)
    if domain is None:
        raise ValueError(f"Unknown action: {value!r}")
    return ACTION_ENUMS[domain](value)


def action_domain(action: EventAction | str) -> str:
    value = action.value if isinstance(action, Enum) else action
    return ACTION_DOMAINS[value]


class EventContext(str, Enum):
    """UI surface an event originated from."""

    HOME = "home"
    PROFILE = "profile"
    DISCOVER = "discover"
    PLAYER = "player"
    CART = "cart"
    ADMIN = "admin"
    CHECKOUT = "checkout"
    SEARCH_RESULTS = "search_results"
    PLAYLIST = "playlist"
    ARTIST_PAGE = "artist_page"
    SONG_DETAILS = "song_details"
    EVENT_DETAILS = "event_details"
    MERCH_STORE = "merch_store"
    BLOG_POST = "blog_post"
    SETTINGS = "settings"
    NOTIFICATIONS = "notifications"
    FAVORITES = "favorites"
    LIBRARY = "library"
    TRENDING = "trending"
    NEW_RELEASES = "new_releases"
    TOP_CHARTS = "top_charts"
    RECOMMENDATIONS = "recommendations"
    SOCIAL_FEED = "social_feed"
    MESSAGES = "messages"
    HELP = "help"
    ABOUT = "about"
    NFT_MARKETPLACE = "nft_marketplace"
    DAO = "dao"
    FAN_CLUB = "fan_club"
    WALLET = "wallet"
    LOYALTY = "loyalty"
    UNKNOWN = "unknown"
