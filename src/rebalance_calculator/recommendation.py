"""Parsing and normalization of advisor recommendations"""

import re
import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Optional
from app_config import PortfolioConfig
from chain_connector_base import Allocation, MalformedRecommendationError
from .calculator import to_decimal

logger = logging.getLogger(__name__)

PERCENT_PATTERN = re.compile(r'^\s*(\d+(?:\.\d+)?)\s*%?\s*$')

DEFAULT_TOLERANCE = Decimal("0.01")


def parse_fraction(raw: Any) -> Decimal:
    """
    Parse one recommendation value into a fraction.

    Strings are percentages ("60%", "62.5%", "60"); numbers are already
    fractions (0.6).

    Raises:
        MalformedRecommendationError: If the value is missing, negative or not a number
    """
    if raw is None or isinstance(raw, bool):
        raise MalformedRecommendationError(f"Invalid recommendation value: {raw!r}")

    if isinstance(raw, str):
        match = PERCENT_PATTERN.match(raw)
        if not match:
            raise MalformedRecommendationError(f"Cannot parse percentage: {raw!r}")
        return Decimal(match.group(1)) / Decimal(100)

    try:
        value = to_decimal(raw)
    except (TypeError, ValueError, InvalidOperation) as e:
        raise MalformedRecommendationError(f"Invalid recommendation value: {raw!r}") from e

    if value < 0:
        raise MalformedRecommendationError(f"Recommendation value must be non-negative, got {raw!r}")
    return value


def normalize_recommendation(raw_a: Any, raw_b: Any, portfolio: PortfolioConfig,
                             tolerance: Any = DEFAULT_TOLERANCE,
                             source: Optional[str] = None) -> Allocation:
    """
    Turn a raw two-asset recommendation into an Allocation.

    Totals that deviate from 100% by more than tolerance are rescaled
    proportionally (60% / 45% becomes 57.1% / 42.9%).

    Raises:
        MalformedRecommendationError: If a value cannot be parsed or both are zero
    """
    fraction_a = parse_fraction(raw_a)
    fraction_b = parse_fraction(raw_b)
    total = fraction_a + fraction_b

    if total <= 0:
        raise MalformedRecommendationError("Recommendation values sum to zero")

    if abs(total - 1) > to_decimal(tolerance):
        logger.warning(
            f"Recommendation sums to {float(total) * 100:.2f}%, normalizing "
            f"({float(fraction_a) * 100:.2f}% / {float(fraction_b) * 100:.2f}%)"
        )
        fraction_a = fraction_a / total
        fraction_b = fraction_b / total

    return Allocation(
        weights={
            portfolio.primary.symbol: fraction_a,
            portfolio.secondary.symbol: fraction_b,
        },
        source=source
    )


def parse_recommendation(payload: Any, portfolio: PortfolioConfig,
                         tolerance: Any = DEFAULT_TOLERANCE) -> Allocation:
    """
    Parse an untrusted recommendation object into an Allocation.

    Each asset is looked up by its symbol (EURC) first and then by its
    recommendation key (EUR). An ``isFallback`` flag in the payload is carried
    through so fallback decisions stay distinguishable downstream.
    """
    if not isinstance(payload, Mapping):
        raise MalformedRecommendationError("Recommendation must be a JSON object")

    values = []
    for asset in portfolio.assets:
        if asset.symbol in payload:
            values.append(payload[asset.symbol])
        elif asset.recommendation_key in payload:
            values.append(payload[asset.recommendation_key])
        else:
            raise MalformedRecommendationError(
                f"Recommendation is missing {asset.symbol} ({asset.recommendation_key})"
            )

    source = payload.get('source')
    allocation = normalize_recommendation(
        values[0], values[1], portfolio,
        tolerance=tolerance,
        source=source if isinstance(source, str) else None
    )
    allocation.is_fallback = bool(payload.get('isFallback', False))
    return allocation


def fallback_allocation(portfolio: PortfolioConfig, primary_fraction: Any = Decimal("0.4"),
                        source: str = "fallback") -> Allocation:
    """Fixed allocation used when no recommendation is available"""
    fraction = to_decimal(primary_fraction)
    return Allocation(
        weights={
            portfolio.primary.symbol: fraction,
            portfolio.secondary.symbol: Decimal(1) - fraction,
        },
        is_fallback=True,
        source=source
    )
