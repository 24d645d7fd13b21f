"""
ITDA — Pricing Estimator

Maps an influencer / campaign profile to an estimated sponsorship price range:

  base       = piecewise-linear function of follower count (five tiers)
  price      = base × engagement_mult × category_mult × volume_mult
  if price / budget > 0.5:  price = budget × 0.4
  estimated  = round_half_up(price, step)
  min / max  = round_half_up(estimated × 0.8 / 1.3, step)

The tier table is continuous at every threshold, so the estimate never drops
when an influencer crosses into a higher follower tier.  The ``factors`` list
is an explanatory breakdown with fixed weights and does not feed back into the
calculation.
"""

from __future__ import annotations

import math
from typing import Any, Iterable

import structlog

from app.config import get_settings

logger = structlog.get_logger("itda.pricing_service")

# ──────────────────────────────────────────────────────────────────────────────
# Constants
# ──────────────────────────────────────────────────────────────────────────────

# (lower bound, base price at lower bound, per-follower rate above it)
_FOLLOWER_TIERS: list[tuple[int, int, int]] = [
    (500_000, 5_850_000, 5),
    (100_000, 1_850_000, 10),
    (50_000, 1_100_000, 15),
    (10_000, 300_000, 20),
    (0, 0, 30),
]

_CATEGORY_MULTIPLIERS: dict[str, float] = {
    "뷰티": 1.3,
    "beauty": 1.3,
    "패션": 1.2,
    "fashion": 1.2,
    "테크": 1.4,
    "tech": 1.4,
    "푸드": 1.1,
    "food": 1.1,
    "여행": 1.25,
    "travel": 1.25,
    "피트니스": 1.15,
    "fitness": 1.15,
    "게이밍": 1.35,
    "gaming": 1.35,
    "라이프스타일": 1.0,
    "lifestyle": 1.0,
}

_BASELINE_ENGAGEMENT = 3.0
_ENGAGEMENT_SLOPE = 0.15

_VOLUME_THRESHOLD = 5
_VOLUME_STEP = 0.1

_BUDGET_RATIO_LIMIT = 0.5
_BUDGET_CAP_SHARE = 0.4

_MIN_PRICE_RATIO = 0.8
_MAX_PRICE_RATIO = 1.3

_BASE_CONFIDENCE = 85

# Fixed explanatory weights: followers / engagement / category / volume.
_FACTOR_WEIGHTS: tuple[int, int, int, int] = (40, 30, 20, 10)


def base_price_for_followers(followers: int) -> float:
    """Piecewise-linear base price for a follower count."""
    for lower, base, rate in _FOLLOWER_TIERS:
        if followers >= lower:
            return base + (followers - lower) * rate
    return 0.0


def category_multiplier(category: str | None) -> float:
    if not category:
        return 1.0
    return _CATEGORY_MULTIPLIERS.get(category.strip().lower(), 1.0)


def deliverable_count(deliverables: Iterable[Any] | None) -> int:
    """Total content pieces; an item without a ``count`` counts as one."""
    total = 0
    for item in deliverables or []:
        if isinstance(item, dict):
            count = item.get("count")
        else:
            count = getattr(item, "count", None)
        total += 1 if count is None else int(count)
    return total


class PricingService:
    """Stateless sponsorship price estimator."""

    def __init__(self) -> None:
        settings = get_settings()
        self.rounding_step: int = settings.PRICE_ROUNDING_STEP

    # ── Public API ────────────────────────────────────────────────────────

    def predict(
        self,
        followers: int,
        engagement_rate: float,
        category: str | None,
        budget: int | float,
        deliverables: Iterable[Any] | None = None,
    ) -> dict:
        """Estimate the price range for one influencer on one campaign.

        Parameters
        ----------
        followers:
            Non-negative follower count.
        engagement_rate:
            Engagement rate as a percentage (e.g. ``4.2``).
        category:
            Primary content category; unknown categories use multiplier 1.0.
        budget:
            Campaign budget; must be positive.
        deliverables:
            Items shaped like ``{"type": ..., "count": n}``.

        Returns
        -------
        dict
            ``{"estimated_price", "min_price", "max_price", "confidence",
            "factors"}`` with prices as integers rounded to the configured
            step.

        Raises
        ------
        ValueError
            If ``budget`` is not positive or ``followers`` is negative.
        """
        if budget <= 0:
            raise ValueError(f"budget must be positive, got {budget}")
        if followers < 0:
            raise ValueError(f"followers must be non-negative, got {followers}")

        price = base_price_for_followers(followers)
        price *= 1 + (engagement_rate - _BASELINE_ENGAGEMENT) * _ENGAGEMENT_SLOPE
        price *= category_multiplier(category)

        count = deliverable_count(deliverables)
        if count > _VOLUME_THRESHOLD:
            price *= 1 + (count - _VOLUME_THRESHOLD) * _VOLUME_STEP

        capped = price / budget > _BUDGET_RATIO_LIMIT
        if capped:
            price = budget * _BUDGET_CAP_SHARE

        estimated = self._round(price)
        result = {
            "estimated_price": estimated,
            "min_price": self._round(estimated * _MIN_PRICE_RATIO),
            "max_price": self._round(estimated * _MAX_PRICE_RATIO),
            "confidence": self._confidence(followers, engagement_rate),
            "factors": self._factors(followers, engagement_rate, category, count),
        }

        logger.debug(
            "price_predicted",
            followers=followers,
            engagement_rate=engagement_rate,
            category=category,
            deliverable_count=count,
            budget_capped=capped,
            estimated_price=estimated,
        )
        return result

    @staticmethod
    def recommendation(estimated_price: int | float, budget: int | float) -> str:
        """Describe how an estimate sits relative to the campaign budget."""
        if budget <= 0:
            raise ValueError(f"budget must be positive, got {budget}")
        ratio = estimated_price / budget
        if ratio < 0.2:
            return "very reasonable"
        if ratio < 0.4:
            return "fair"
        if ratio < 0.6:
            return "slightly high"
        return "over budget"

    # ── Internals ─────────────────────────────────────────────────────────

    def _round(self, value: float) -> int:
        # Half-up, not banker's rounding.
        step = self.rounding_step
        return int(math.floor(value / step + 0.5) * step)

    @staticmethod
    def _confidence(followers: int, engagement_rate: float) -> int:
        # Callers clamp to [0, 100] if they need to.
        confidence = _BASE_CONFIDENCE
        if followers > 100_000:
            confidence += 5
        if engagement_rate > 5:
            confidence += 5
        if engagement_rate < 2:
            confidence -= 10
        return confidence

    @staticmethod
    def _factors(
        followers: int,
        engagement_rate: float,
        category: str | None,
        count: int,
    ) -> list[dict]:
        w_followers, w_engagement, w_category, w_volume = _FACTOR_WEIGHTS
        return [
            {
                "name": "followers",
                "impact": w_followers,
                "description": f"{followers / 1000:.0f}K followers",
            },
            {
                "name": "engagement",
                "impact": w_engagement,
                "description": f"{engagement_rate:.1f}% engagement",
            },
            {
                "name": "category",
                "impact": w_category,
                "description": f"{category or 'general'} premium",
            },
            {
                "name": "content_volume",
                "impact": w_volume,
                "description": f"{count} deliverables",
            },
        ]
