"""Derived ratios used by the metrics views.

Every function returns 0 when its denominator is zero.
"""

from dataclasses import dataclass

from app.core.config import settings


@dataclass(frozen=True)
class TrendingWeights:
    play: float = 1.0
    like: float = 2.0
    share: float = 3.0
    listener: float = 1.5

    @classmethod
    def from_settings(cls) -> "TrendingWeights":
        return cls(
            play=settings.trending_play_weight,
            like=settings.trending_like_weight,
            share=settings.trending_share_weight,
            listener=settings.trending_listener_weight,
        )


def percentage(part: float, whole: float) -> float:
    if not whole:
        return 0
    return part / whole * 100


def conversion_rate(subscribers: int, followers: int) -> float:
    return round(percentage(subscribers, followers))


def churn_rate(cancellations: int, total_subscriptions: int) -> float:
    return percentage(cancellations, total_subscriptions)


def engagement_rate(likes: int, shares: int, bids: int, views: int) -> int:
    return round(percentage(likes + shares + bids, views))


def retention_rate(retained_users: int, cohort_users: int) -> float:
    return percentage(retained_users, cohort_users)


def click_through_rate(total_clicks: int, search_count: int) -> float:
    if not search_count:
        return 0
    return total_clicks / search_count


def growth_rate(first_half: int, second_half: int) -> float:
    """Change between the two halves of a window, in percent.

    With no activity in the first half, any activity in the second half
    counts as 100% growth.
    """
    if first_half == 0:
        return 100 if second_half > 0 else 0
    return round((second_half - first_half) / first_half * 100, 2)


def trending_score(
        plays: int,
        likes: int,
        shares: int,
        unique_listeners: int,
        weights: TrendingWeights | None = None
) -> float:
    weights = weights or TrendingWeights()
    return (
        plays * weights.play
        + likes * weights.like
        + shares * weights.share
        + unique_listeners * weights.listener
    )
