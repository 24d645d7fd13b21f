"""Unit tests for PricingService — tiered base price, multipliers, and rounding."""
import pytest
from unittest.mock import patch, MagicMock

from app.services.pricing_service import (
    PricingService,
    base_price_for_followers,
    category_multiplier,
    deliverable_count,
)


@pytest.fixture
def pricing_service():
    with patch("app.services.pricing_service.get_settings") as mock:
        settings = MagicMock()
        settings.PRICE_ROUNDING_STEP = 10_000
        mock.return_value = settings
        service = PricingService()
    return service


class TestWorkedExample:
    """75K followers, 4.2% engagement, beauty, 8 deliverables, 5M budget."""

    def test_estimate_is_budget_capped(self, pricing_service):
        # base 1,475,000 x 1.18 x 1.3 x 1.3 = 2,941,445 -> ratio 0.59 > 0.5
        # -> 5,000,000 x 0.4 = 2,000,000
        result = pricing_service.predict(
            followers=75_000,
            engagement_rate=4.2,
            category="뷰티",
            budget=5_000_000,
            deliverables=[{"type": "reel", "count": 3}, {"type": "story", "count": 5}],
        )
        assert result["estimated_price"] == 2_000_000
        assert result["min_price"] == 1_600_000
        assert result["max_price"] == 2_600_000
        assert result["confidence"] == 85

    def test_factors_are_explanatory(self, pricing_service):
        result = pricing_service.predict(75_000, 4.2, "뷰티", 5_000_000, [{"count": 8}])
        names = [f["name"] for f in result["factors"]]
        assert names == ["followers", "engagement", "category", "content_volume"]
        assert sum(f["impact"] for f in result["factors"]) == 100
        assert result["factors"][0]["description"] == "75K followers"


class TestBasePrice:

    def test_tiers_are_continuous(self):
        for threshold in (10_000, 50_000, 100_000, 500_000):
            below = base_price_for_followers(threshold - 1)
            at = base_price_for_followers(threshold)
            assert at >= below
            assert at - below < 50

    def test_monotonic_in_followers(self, pricing_service):
        previous = -1
        for followers in range(0, 1_000_001, 25_000):
            price = pricing_service.predict(followers, 3.0, None, 10**12)["estimated_price"]
            assert price >= previous
            previous = price

    def test_zero_followers(self, pricing_service):
        result = pricing_service.predict(0, 3.0, None, 1_000_000)
        assert result["estimated_price"] == 0
        assert result["min_price"] == 0


class TestMultipliers:

    def test_unknown_category_is_neutral(self):
        assert category_multiplier("underwater basket weaving") == 1.0
        assert category_multiplier(None) == 1.0

    def test_english_alias_matches_korean(self):
        assert category_multiplier("Beauty") == category_multiplier("뷰티")

    def test_deliverables_without_count_count_as_one(self):
        assert deliverable_count([{"type": "post"}, {"type": "reel", "count": 4}]) == 5
        assert deliverable_count(None) == 0

    def test_volume_bonus_only_above_five(self, pricing_service):
        five = pricing_service.predict(20_000, 3.0, None, 10**12, [{"count": 5}])
        six = pricing_service.predict(20_000, 3.0, None, 10**12, [{"count": 6}])
        none = pricing_service.predict(20_000, 3.0, None, 10**12, [])
        assert five["estimated_price"] == none["estimated_price"]
        assert six["estimated_price"] > five["estimated_price"]

    def test_baseline_engagement_is_neutral(self, pricing_service):
        # 20K followers -> 300,000 + 10,000 x 20 = 500,000
        result = pricing_service.predict(20_000, 3.0, "lifestyle", 10**12)
        assert result["estimated_price"] == 500_000


class TestBudgetCap:

    def test_cap_applies_above_half_budget(self, pricing_service):
        result = pricing_service.predict(500_000, 3.0, None, 1_000_000)
        assert result["estimated_price"] == 400_000

    def test_no_cap_when_cheap(self, pricing_service):
        result = pricing_service.predict(20_000, 3.0, None, 10_000_000)
        assert result["estimated_price"] == 500_000

    def test_invalid_budget_raises(self, pricing_service):
        with pytest.raises(ValueError):
            pricing_service.predict(10_000, 3.0, None, 0)

    def test_negative_followers_raise(self, pricing_service):
        with pytest.raises(ValueError):
            pricing_service.predict(-1, 3.0, None, 1_000_000)


class TestRoundingAndConfidence:

    def test_half_up_rounding(self, pricing_service):
        assert pricing_service._round(15_000) == 20_000
        assert pricing_service._round(25_000) == 30_000
        assert pricing_service._round(14_999) == 10_000

    def test_confidence_adjustments(self, pricing_service):
        assert pricing_service.predict(200_000, 6.0, None, 10**12)["confidence"] == 95
        assert pricing_service.predict(5_000, 1.5, None, 10**12)["confidence"] == 75

    def test_recommendation_bands(self):
        assert PricingService.recommendation(100_000, 1_000_000) == "very reasonable"
        assert PricingService.recommendation(300_000, 1_000_000) == "fair"
        assert PricingService.recommendation(500_000, 1_000_000) == "slightly high"
        assert PricingService.recommendation(700_000, 1_000_000) == "over budget"
