"""Tests for recommendation parsing, normalization and fallback."""
from decimal import Decimal

import pytest

from chain_connector_base import MalformedRecommendationError
from rebalance_calculator import (
    fallback_allocation,
    normalize_recommendation,
    parse_fraction,
    parse_recommendation,
)


@pytest.mark.parametrize("raw,expected", [
    ("60%", Decimal("0.6")),
    ("62.5%", Decimal("0.625")),
    ("60", Decimal("0.6")),
    (" 40 % ", Decimal("0.4")),
    (0.6, Decimal("0.6")),
    (0, Decimal(0)),
])
def test_parse_fraction(raw, expected):
    assert parse_fraction(raw) == expected


@pytest.mark.parametrize("raw", [None, True, "abc", "-5%", -0.2, "", float("nan")])
def test_parse_fraction_rejects_garbage(raw):
    with pytest.raises(MalformedRecommendationError):
        parse_fraction(raw)


def test_sum_within_tolerance_kept_as_is(portfolio):
    result = normalize_recommendation("60%", "40.5%", portfolio)
    assert result.fraction("EURC") == Decimal("0.6")
    assert result.fraction("USDC") == Decimal("0.405")


def test_sum_over_tolerance_is_rescaled(portfolio):
    result = normalize_recommendation("60%", "45%", portfolio)

    assert abs(result.fraction("EURC") - Decimal("0.5714")) < Decimal("0.0001")
    assert abs(result.fraction("USDC") - Decimal("0.4286")) < Decimal("0.0001")
    assert abs(result.total() - 1) <= Decimal("0.01")


def test_zero_total_is_malformed(portfolio):
    with pytest.raises(MalformedRecommendationError):
        normalize_recommendation("0%", "0%", portfolio)


def test_parse_by_symbol_with_numeric_fractions(portfolio):
    result = parse_recommendation({"EURC": 0.7, "USDC": 0.3}, portfolio)
    assert result.fraction("EURC") == Decimal("0.7")
    assert result.is_fallback is False


def test_parse_by_recommendation_key(portfolio):
    payload = {"EUR": "55%", "USD": "45%", "reasoning": "ECB hawkish", "source": "advisor"}
    result = parse_recommendation(payload, portfolio)

    assert result.fraction("EURC") == Decimal("0.55")
    assert result.source == "advisor"


def test_fallback_flag_carried_through(portfolio):
    result = parse_recommendation({"EUR": "40%", "USD": "60%", "isFallback": True}, portfolio)
    assert result.is_fallback is True


def test_missing_asset_is_malformed(portfolio):
    with pytest.raises(MalformedRecommendationError):
        parse_recommendation({"EUR": "40%"}, portfolio)


def test_non_object_is_malformed(portfolio):
    with pytest.raises(MalformedRecommendationError):
        parse_recommendation(["40%", "60%"], portfolio)


def test_fallback_is_conservative_skew(portfolio):
    result = fallback_allocation(portfolio)

    assert result.is_fallback is True
    assert result.fraction("EURC") == Decimal("0.4")
    assert result.fraction("USDC") == Decimal("0.6")
