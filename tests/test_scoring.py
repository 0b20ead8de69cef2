"""Tests for market-to-profile scoring."""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from marketfeed.personalization.schemas import (
    ExtractedProfile,
    PreferredHorizon,
    RiskTolerance,
)
from marketfeed.personalization.scoring import (
    ScoringOptions,
    category_score,
    get_market_horizon,
    get_market_risk_level,
    level_match_score,
    recency_score,
    score_market_for_user,
    volume_score,
)


def _profile(**overrides) -> ExtractedProfile:
    values = {
        "preferred_categories": {"Sport": 1.0, "Tech": 0.5},
        "risk_tolerance": RiskTolerance.MEDIUM,
        "preferred_horizon": PreferredHorizon.MEDIUM,
    }
    values.update(overrides)
    return ExtractedProfile(**values)


@pytest.fixture
def options(now: datetime) -> ScoringOptions:
    return ScoringOptions(now=now)


class TestMarketLevels:
    """Tests for market risk and horizon derivation."""

    @pytest.mark.parametrize(
        ("days", "expected"),
        [
            (3, PreferredHorizon.SHORT),
            (7, PreferredHorizon.MEDIUM),
            (14, PreferredHorizon.MEDIUM),
            (30, PreferredHorizon.MEDIUM),
            (45, PreferredHorizon.LONG),
        ],
    )
    def test_market_horizon(
        self, now: datetime, days: int, expected: PreferredHorizon
    ) -> None:
        assert get_market_horizon(now + timedelta(days=days), now) == expected

    def test_closed_market_is_short(self, now: datetime) -> None:
        assert get_market_horizon(now - timedelta(days=2), now) == PreferredHorizon.SHORT

    @pytest.mark.parametrize(
        ("total_credits", "expected"),
        [
            (3000, RiskTolerance.LOW),
            (2000, RiskTolerance.LOW),
            (1000, RiskTolerance.MEDIUM),
            (500, RiskTolerance.HIGH),
            (100, RiskTolerance.HIGH),
        ],
    )
    def test_market_risk(self, total_credits: float, expected: RiskTolerance) -> None:
        assert get_market_risk_level(total_credits) == expected

    def test_level_match(self) -> None:
        assert level_match_score(RiskTolerance.LOW, RiskTolerance.LOW) == 1.0
        assert level_match_score(RiskTolerance.LOW, RiskTolerance.MEDIUM) == 0.5
        assert level_match_score(RiskTolerance.LOW, RiskTolerance.HIGH) == 0.2
        assert level_match_score(PreferredHorizon.LONG, PreferredHorizon.SHORT) == 0.2


class TestSubScores:
    """Tests for the individual scoring factors."""

    def test_category_score_unknown_category(self) -> None:
        assert category_score("Weather", {"Sport": 1.0}) == 0.0

    def test_category_score_non_string(self) -> None:
        assert category_score(None, {"Sport": 1.0}) == 0.0

    def test_recency_bounds(self, now: datetime) -> None:
        window = timedelta(days=30)
        assert recency_score(now, now, window) == 1.0
        assert recency_score(now + timedelta(hours=1), now, window) == 1.0
        assert recency_score(now - timedelta(days=30), now, window) == 0.0
        assert recency_score(now - timedelta(days=15), now, window) == pytest.approx(0.5)

    def test_recency_zero_window(self, now: datetime) -> None:
        assert recency_score(now - timedelta(hours=1), now, timedelta(0)) == 0.0

    def test_volume_score(self) -> None:
        assert volume_score(50, 100) == 0.5
        assert volume_score(200, 100) == 1.0
        assert volume_score(50, 0) == 0.0


class TestScoreMarketForUser:
    """Tests for the weighted market score."""

    def test_full_breakdown(self, make_market, options: ScoringOptions) -> None:
        market = make_market("ev-1", "Sport", volume_6h=50)

        # 0.35 * 1 + 0.20 * 1 + 0.20 * 1 + 0.15 * (1 - 2/30) + 0.10 * 1
        expected = 0.35 + 0.20 + 0.20 + 0.15 * (1 - 2 / 30) + 0.10
        assert score_market_for_user(market, _profile(), options) == pytest.approx(expected)

    def test_preferred_category_scores_higher(self, make_market, options) -> None:
        market = make_market("ev-1", "Sport")
        sport = _profile(preferred_categories={"Sport": 1.0})
        tech = _profile(preferred_categories={"Tech": 1.0})

        assert score_market_for_user(market, sport, options) > score_market_for_user(
            market, tech, options
        )

    def test_matching_risk_scores_higher(self, make_market, options) -> None:
        market = make_market("ev-1", total_credits=3000)
        low = _profile(risk_tolerance=RiskTolerance.LOW)
        high = _profile(risk_tolerance=RiskTolerance.HIGH)

        assert score_market_for_user(market, low, options) > score_market_for_user(
            market, high, options
        )

    def test_matching_horizon_scores_higher(self, make_market, options) -> None:
        market = make_market("ev-1", closes_in_days=60)
        long = _profile(preferred_horizon=PreferredHorizon.LONG)
        short = _profile(preferred_horizon=PreferredHorizon.SHORT)

        assert score_market_for_user(market, long, options) > score_market_for_user(
            market, short, options
        )

    def test_newer_market_scores_higher(self, make_market, options) -> None:
        fresh = make_market("fresh", created_hours_ago=1)
        stale = make_market("stale", created_hours_ago=24 * 20)

        profile = _profile()
        assert score_market_for_user(fresh, profile, options) > score_market_for_user(
            stale, profile, options
        )

    def test_pool_reference_volume(self, make_market, now: datetime) -> None:
        market = make_market("ev-1", "Weather", volume_6h=50)
        own = score_market_for_user(market, _profile(), ScoringOptions(now=now))
        pooled = score_market_for_user(
            market, _profile(), ScoringOptions(now=now, reference_volume=100)
        )

        assert own - pooled == pytest.approx(0.05)

    def test_without_volume_reference_defaults_to_floor(self, make_market, options) -> None:
        quiet = make_market("ev-1", "Weather", volume_6h=0.5)
        # reference is max(0.5, 1) = 1, so the volume factor is 0.5
        expected = 0.0 + 0.20 + 0.20 + 0.15 * (1 - 2 / 30) + 0.10 * 0.5
        assert score_market_for_user(quiet, _profile(), options) == pytest.approx(expected)

    @pytest.mark.parametrize("volume", [float("nan"), -10.0])
    def test_bad_volume_degrades_to_zero(self, make_market, options, volume: float) -> None:
        market = make_market("ev-1", "Weather", volume_6h=volume)

        score = score_market_for_user(market, _profile(), options)

        expected = 0.20 + 0.20 + 0.15 * (1 - 2 / 30)
        assert score == pytest.approx(expected)

    def test_score_is_bounded(self, make_market, options) -> None:
        profile = _profile()
        markets = [
            make_market("a", "Sport", volume_6h=1e9, created_hours_ago=-5),
            make_market("b", "Unknown", closes_in_days=-3, created_hours_ago=24 * 365),
            make_market("c", "Tech", total_credits=0.0),
        ]

        for market in markets:
            assert 0.0 <= score_market_for_user(market, profile, options) <= 1.0

    def test_empty_profile(self, make_market, options) -> None:
        market = make_market("ev-1", "Sport")
        score = score_market_for_user(market, ExtractedProfile(), options)
        assert 0.0 < score < 1.0
