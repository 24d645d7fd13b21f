"""
ITDA — Match Scorer

Deterministic 0–100 compatibility score between an influencer and a campaign:

  50                                   base
  + 10 × |shared categories|
  + 10   followers ≥ campaign minimum
  + 15   engagement ≥ campaign minimum
  +  5   verified
  + tier bonus (bronze 0, silver 5, gold 10, platinum 15)
  → min(100, total)

Works on ORM rows or plain dicts carrying the same attribute names, so digest
re-scoring can run from the applicant snapshots stored on a batch.
"""

from __future__ import annotations

from typing import Any

import structlog

logger = structlog.get_logger("itda.match_scoring_service")

_BASE_SCORE = 50
_CATEGORY_BONUS = 10
_FOLLOWER_BONUS = 10
_ENGAGEMENT_BONUS = 15
_VERIFIED_BONUS = 5
_MAX_SCORE = 100

TIER_BONUS: dict[str, int] = {
    "bronze": 0,
    "silver": 5,
    "gold": 10,
    "platinum": 15,
}

# (minimum score, label) checked top-down.
_RECOMMENDATION_LABELS: list[tuple[int, str]] = [
    (90, "strongly recommended"),
    (80, "recommended"),
    (70, "suitable"),
    (60, "possible"),
]

_ESTIMATED_REACH_SHARE = 0.3


def _field(obj: Any, name: str, default: Any = None) -> Any:
    if isinstance(obj, dict):
        return obj.get(name, default)
    return getattr(obj, name, default)


def shared_categories(influencer: Any, campaign: Any) -> list[str]:
    """Categories present on both sides, in the campaign's order."""
    mine = set(_field(influencer, "categories") or [])
    return [c for c in (_field(campaign, "categories") or []) if c in mine]


class MatchScoringService:
    """Pure scoring; no I/O."""

    def score(self, influencer: Any, campaign: Any) -> int:
        """Return the compatibility score in ``[0, 100]``."""
        total = _BASE_SCORE
        total += _CATEGORY_BONUS * len(shared_categories(influencer, campaign))

        if _field(influencer, "followers_count", 0) >= _field(campaign, "min_followers", 0):
            total += _FOLLOWER_BONUS
        if _field(influencer, "engagement_rate", 0.0) >= _field(
            campaign, "min_engagement_rate", 0.0
        ):
            total += _ENGAGEMENT_BONUS
        if _field(influencer, "is_verified", False):
            total += _VERIFIED_BONUS

        total += TIER_BONUS.get(_field(influencer, "tier", "bronze"), 0)
        return max(0, min(_MAX_SCORE, total))

    def explain(self, influencer: Any, campaign: Any) -> dict:
        """Score plus a human-readable breakdown for review screens."""
        score = self.score(influencer, campaign)
        followers = _field(influencer, "followers_count", 0)
        engagement = _field(influencer, "engagement_rate", 0.0)
        shared = shared_categories(influencer, campaign)

        strengths: list[str] = []
        weaknesses: list[str] = []

        if shared:
            strengths.append(f"Category match: {', '.join(shared)}")
        else:
            weaknesses.append("No shared categories")

        if followers >= _field(campaign, "min_followers", 0):
            strengths.append(f"Meets follower minimum ({followers:,})")
        else:
            weaknesses.append(
                f"Below follower minimum ({followers:,} < {_field(campaign, 'min_followers', 0):,})"
            )

        if engagement >= _field(campaign, "min_engagement_rate", 0.0):
            strengths.append(f"Engagement rate {engagement:.1f}%")
        else:
            weaknesses.append(f"Low engagement rate ({engagement:.1f}%)")

        if _field(influencer, "is_verified", False):
            strengths.append("Verified influencer")

        estimated_reach = int(followers * _ESTIMATED_REACH_SHARE)
        return {
            "score": score,
            "strengths": strengths,
            "weaknesses": weaknesses,
            "recommendation": self.recommendation_label(score),
            "estimated_reach": estimated_reach,
            "estimated_engagement": int(estimated_reach * engagement / 100),
        }

    @staticmethod
    def recommendation_label(score: int) -> str:
        for threshold, label in _RECOMMENDATION_LABELS:
            if score >= threshold:
                return label
        return "needs review"
