"""Tests for behavioral profile extraction."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from marketfeed.core.exceptions import FeedUnavailableError
from marketfeed.personalization.profile import (
    ProfileExtractor,
    build_profile,
    extract_novelty_seeking,
    extract_preferred_categories,
    extract_preferred_horizon,
    extract_risk_tolerance,
)
from marketfeed.personalization.schemas import (
    ExtractedProfile,
    PreferredHorizon,
    RiskTolerance,
)


class TestExtractPreferredCategories:
    """Tests for category affinity normalization."""

    def test_normalizes_by_max_count(self) -> None:
        result = extract_preferred_categories({"Sport": 5, "Tech": 3, "Politics": 2})
        assert result == {"Sport": 1.0, "Tech": 0.6, "Politics": 0.4}

    def test_empty_counts(self) -> None:
        assert extract_preferred_categories({}) == {}

    def test_single_category(self) -> None:
        assert extract_preferred_categories({"Sport": 10}) == {"Sport": 1.0}

    def test_rounds_to_two_decimals(self) -> None:
        result = extract_preferred_categories({"Sport": 3, "Tech": 1})
        assert result["Tech"] == 0.33

    def test_all_zero_counts(self) -> None:
        assert extract_preferred_categories({"Sport": 0, "Tech": 0}) == {}

    def test_zero_count_categories_are_dropped(self) -> None:
        result = extract_preferred_categories({"Sport": 4, "Tech": 0})
        assert result == {"Sport": 1.0}
        ExtractedProfile(
            preferred_categories=result,
            risk_tolerance=RiskTolerance.MEDIUM,
            preferred_horizon=PreferredHorizon.MEDIUM,
            novelty_seeking=0.0,
        )


class TestExtractRiskTolerance:
    """Tests for stake-to-balance bucketing."""

    @pytest.mark.parametrize(
        ("avg_trade", "balance", "expected"),
        [
            (50, 500, RiskTolerance.LOW),
            (100, 1000, RiskTolerance.LOW),
            (330, 1000, RiskTolerance.MEDIUM),
            (400, 1000, RiskTolerance.MEDIUM),
            (660, 1000, RiskTolerance.MEDIUM),
            (800, 1000, RiskTolerance.HIGH),
            (1000, 1000, RiskTolerance.HIGH),
        ],
    )
    def test_buckets(self, avg_trade: float, balance: float, expected: RiskTolerance) -> None:
        assert extract_risk_tolerance(avg_trade, balance) == expected

    def test_ratio_capped_at_one(self) -> None:
        assert extract_risk_tolerance(2000, 1000) == RiskTolerance.HIGH

    def test_zero_balance_is_medium(self) -> None:
        assert extract_risk_tolerance(100, 0) == RiskTolerance.MEDIUM

    def test_negative_balance_is_medium(self) -> None:
        assert extract_risk_tolerance(100, -50) == RiskTolerance.MEDIUM


class TestExtractPreferredHorizon:
    """Tests for horizon bucketing."""

    @pytest.mark.parametrize("days", [0, 3, 6.9])
    def test_short(self, days: float) -> None:
        assert extract_preferred_horizon(days) == PreferredHorizon.SHORT

    @pytest.mark.parametrize("days", [7, 15, 30])
    def test_medium(self, days: float) -> None:
        assert extract_preferred_horizon(days) == PreferredHorizon.MEDIUM

    @pytest.mark.parametrize("days", [30.5, 31, 90])
    def test_long(self, days: float) -> None:
        assert extract_preferred_horizon(days) == PreferredHorizon.LONG


class TestExtractNoveltySeeking:
    """Tests for the new-market trade fraction."""

    def test_no_trades(self) -> None:
        assert extract_novelty_seeking(0, 0) == 0.0

    def test_fraction(self) -> None:
        assert extract_novelty_seeking(2, 5) == 0.4
        assert extract_novelty_seeking(5, 5) == 1.0
        assert extract_novelty_seeking(0, 5) == 0.0

    def test_rounding(self) -> None:
        assert extract_novelty_seeking(1, 3) == 0.33


class TestBuildProfile:
    """Tests for profile derivation from a trade history."""

    def test_no_trades_returns_none(self) -> None:
        assert build_profile([], 1000.0) is None

    def test_single_trade(self, make_trade) -> None:
        trades = [make_trade("Sport", 100.0, closes_in_days=14, market_age_days=3)]

        profile = build_profile(trades, 1000.0)

        assert profile is not None
        assert profile.preferred_categories == {"Sport": 1.0}
        assert profile.risk_tolerance == RiskTolerance.LOW
        assert profile.preferred_horizon == PreferredHorizon.MEDIUM
        assert profile.novelty_seeking == 1.0

    def test_category_normalization_and_novelty(self, make_trade) -> None:
        trades = [
            make_trade("Sport", 50.0, closes_in_days=5, market_age_days=30),
            make_trade("Sport", 50.0, closes_in_days=5, market_age_days=30),
            make_trade("Tech", 200.0, closes_in_days=5, market_age_days=2),
        ]

        profile = build_profile(trades, 500.0)

        assert profile is not None
        assert profile.preferred_categories == {"Sport": 1.0, "Tech": 0.5}
        assert profile.risk_tolerance == RiskTolerance.LOW
        assert profile.preferred_horizon == PreferredHorizon.SHORT
        assert profile.novelty_seeking == 0.33

    def test_trade_after_close_counts_as_zero_days(self, make_trade) -> None:
        trades = [
            make_trade(closes_in_days=-10),
            make_trade(closes_in_days=12),
        ]

        profile = build_profile(trades, 1000.0)

        # (0 + 12) / 2 = 6 days, not (-10 + 12) / 2
        assert profile is not None
        assert profile.preferred_horizon == PreferredHorizon.SHORT

    def test_market_exactly_seven_days_old_is_new(self, make_trade) -> None:
        profile = build_profile([make_trade(market_age_days=7)], 1000.0)
        assert profile is not None
        assert profile.novelty_seeking == 1.0

    def test_top_category_is_always_one(self, make_trade) -> None:
        trades = [make_trade("Politics")] * 3 + [make_trade("Crypto")] * 7
        profile = build_profile(trades, 1000.0)
        assert profile is not None
        assert max(profile.preferred_categories.values()) == 1.0
        assert profile.preferred_categories["Crypto"] == 1.0


class TestExtractedProfileValidation:
    """Tests for profile invariants enforced by the model."""

    def test_rejects_affinity_above_one(self) -> None:
        with pytest.raises(ValidationError):
            ExtractedProfile(preferred_categories={"Sport": 1.5})

    def test_rejects_unnormalized_affinities(self) -> None:
        with pytest.raises(ValidationError):
            ExtractedProfile(preferred_categories={"Sport": 0.5, "Tech": 0.2})

    def test_rejects_novelty_out_of_range(self) -> None:
        with pytest.raises(ValidationError):
            ExtractedProfile(novelty_seeking=1.2)


class TestProfileExtractor:
    """Tests for repository-backed profile computation."""

    @pytest.mark.asyncio
    async def test_unknown_user_returns_none(self, repository) -> None:
        extractor = ProfileExtractor(repository)

        assert await extractor.compute_profile("ghost") is None
        assert "get_trade_history" not in repository.calls

    @pytest.mark.asyncio
    async def test_cold_user_returns_none(self, repository) -> None:
        repository.balances["user-1"] = 1000.0

        assert await ProfileExtractor(repository).compute_profile("user-1") is None

    @pytest.mark.asyncio
    async def test_computes_profile(self, repository, make_trade) -> None:
        repository.balances["user-1"] = 1000.0
        repository.trades["user-1"] = [make_trade("Tech", 800.0, closes_in_days=60)]

        profile = await ProfileExtractor(repository).compute_profile("user-1")

        assert profile is not None
        assert profile.preferred_categories == {"Tech": 1.0}
        assert profile.risk_tolerance == RiskTolerance.HIGH
        assert profile.preferred_horizon == PreferredHorizon.LONG

    @pytest.mark.asyncio
    async def test_storage_failure_propagates(self, repository) -> None:
        repository.fail_with = FeedUnavailableError(operation="get_user_balance")

        with pytest.raises(FeedUnavailableError):
            await ProfileExtractor(repository).compute_profile("user-1")
