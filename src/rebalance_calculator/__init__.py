from .calculator import (
    TradeCalculator,
    compute_allocation,
    should_rebalance,
    derive_trade_actions,
    compute_transfer_amount,
    to_decimal,
)
from .recommendation import (
    parse_fraction,
    normalize_recommendation,
    parse_recommendation,
    fallback_allocation,
)
from .models import TradeCalculationResult
from chain_connector_base import Allocation, TradeAction

__version__ = "1.0.0"

__all__ = [
    "TradeCalculator",
    "TradeCalculationResult",
    "compute_allocation",
    "should_rebalance",
    "derive_trade_actions",
    "compute_transfer_amount",
    "to_decimal",
    "parse_fraction",
    "normalize_recommendation",
    "parse_recommendation",
    "fallback_allocation",
    "Allocation",
    "TradeAction",
    "__version__",
]
