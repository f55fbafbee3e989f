"""Allocation math, threshold decision and trade-action derivation"""

from decimal import Decimal, ROUND_DOWN, localcontext
from typing import List, Optional, Union
import logging
import math
from app_config import PortfolioConfig, get_config
from chain_connector_base import Allocation, TradeAction, InsufficientBalanceError
from .models import TradeCalculationResult

Number = Union[Decimal, float, int, str]

# Enough digits for a uint256 balance multiplied by a fraction
_BALANCE_PRECISION = 100


def to_decimal(value: Number) -> Decimal:
    """Convert a number to Decimal without binary float artifacts (0.05 -> Decimal('0.05'))"""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise TypeError("Boolean is not a valid numeric value")
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            raise ValueError(f"Non-finite value: {value}")
        return Decimal(repr(value))
    return Decimal(value)


def compute_allocation(balance_a: int, balance_b: int, portfolio: PortfolioConfig) -> Allocation:
    """
    Convert two raw balances into fractions of their total.

    A zero total yields the all-zero allocation rather than an error.
    Balances are treated as equal-valued units (both assets are stablecoins).
    """
    if balance_a < 0 or balance_b < 0:
        raise ValueError(f"Balances must be non-negative, got {balance_a} and {balance_b}")

    symbol_a = portfolio.primary.symbol
    symbol_b = portfolio.secondary.symbol
    total = balance_a + balance_b

    if total == 0:
        return Allocation(weights={symbol_a: Decimal(0), symbol_b: Decimal(0)})

    with localcontext() as ctx:
        ctx.prec = _BALANCE_PRECISION
        fraction_a = Decimal(balance_a) / Decimal(total)
        fraction_b = Decimal(1) - fraction_a

    return Allocation(weights={symbol_a: fraction_a, symbol_b: fraction_b})


def primary_delta(current: Allocation, target: Allocation, portfolio: PortfolioConfig) -> Decimal:
    """Target minus current fraction of the primary asset"""
    symbol = portfolio.primary.symbol
    return target.fraction(symbol) - current.fraction(symbol)


def should_rebalance(current: Allocation, target: Allocation, threshold: Number,
                     force: bool, portfolio: PortfolioConfig) -> bool:
    """True when forced or when the primary asset's delta exceeds threshold"""
    if force:
        return True
    return abs(primary_delta(current, target, portfolio)) > to_decimal(threshold)


def derive_trade_actions(current: Allocation, target: Allocation, threshold: Number,
                         portfolio: PortfolioConfig) -> List[TradeAction]:
    """
    Derive the trade actions that move current toward target.

    Returns at most one action for the two-asset portfolio. The action's
    amount_fraction is a fraction of total portfolio value.
    """
    delta = primary_delta(current, target, portfolio)

    if abs(delta) <= to_decimal(threshold):
        return []

    primary = portfolio.primary
    secondary = portfolio.secondary

    if delta > 0:
        # Target wants more of the primary asset
        return [TradeAction(
            from_asset=secondary.symbol,
            to_asset=primary.symbol,
            amount_fraction=delta,
            source_chain=secondary.chain,
            destination_chain=primary.chain
        )]

    return [TradeAction(
        from_asset=primary.symbol,
        to_asset=secondary.symbol,
        amount_fraction=abs(delta),
        source_chain=primary.chain,
        destination_chain=secondary.chain
    )]


def compute_transfer_amount(source_balance: int, amount_fraction: Number) -> int:
    """
    Convert an action's fraction into an absolute amount of the source token.

    The fraction is applied to the current source-asset balance, rounding down
    to the token's smallest unit.

    Raises:
        InsufficientBalanceError: If the fraction exceeds the whole balance
        ValueError: If the fraction is negative
    """
    fraction = to_decimal(amount_fraction)

    if fraction < 0:
        raise ValueError(f"Amount fraction must be non-negative, got {fraction}")
    if fraction > 1:
        raise InsufficientBalanceError(
            f"Amount fraction {fraction} exceeds the available source balance {source_balance}"
        )

    with localcontext() as ctx:
        ctx.prec = _BALANCE_PRECISION
        amount = (Decimal(source_balance) * fraction).to_integral_value(rounding=ROUND_DOWN)

    return int(amount)


class TradeCalculator:
    """Evaluate the rebalance policy for a two-asset portfolio"""

    def __init__(self, portfolio: Optional[PortfolioConfig] = None, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)
        self.portfolio = portfolio or get_config().portfolio

    def calculate_trades(self, current: Allocation, target: Allocation, threshold: Number,
                         force: bool = False) -> TradeCalculationResult:
        """
        Decide whether to act and derive the trade actions.

        A forced evaluation derives actions with a zero threshold, so any
        non-zero delta produces an action and identical allocations produce none.
        """
        warnings = []
        delta = primary_delta(current, target, self.portfolio)
        primary_symbol = self.portfolio.primary.symbol

        if current.total() == 0:
            warnings.append("Wallet holds no balance of either asset")

        if not should_rebalance(current, target, threshold, force, self.portfolio):
            self.logger.info(
                f"Skipping rebalance: {primary_symbol} delta {float(delta) * 100:.2f}% within "
                f"{float(to_decimal(threshold)) * 100:.2f}% threshold "
                f"(target={float(target.fraction(primary_symbol)) * 100:.2f}%, "
                f"current={float(current.fraction(primary_symbol)) * 100:.2f}%)"
            )
            return TradeCalculationResult(should_rebalance=False, delta=delta, warnings=warnings)

        effective_threshold = Decimal(0) if force else threshold
        actions = derive_trade_actions(current, target, effective_threshold, self.portfolio)

        if force and not actions:
            warnings.append("Forced rebalance requested but allocation already matches target")

        return TradeCalculationResult(
            should_rebalance=True,
            delta=delta,
            actions=actions,
            warnings=warnings
        )
