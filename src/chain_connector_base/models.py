from decimal import Decimal
from typing import Annotated, Dict, List, Optional, Literal
from pydantic import BaseModel, ConfigDict, Field, PlainSerializer, computed_field
from pydantic.alias_generators import to_camel

# Decimal fractions are exact internally and rendered as plain numbers in JSON
Fraction = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]

# API-facing models render camelCase keys and accept either spelling
CAMEL_CASE = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Core allocation models
class Allocation(BaseModel):
    """Fractional split of portfolio value keyed by asset symbol"""
    model_config = CAMEL_CASE

    weights: Dict[str, Fraction]
    is_fallback: bool = False
    source: Optional[str] = None

    def fraction(self, symbol: str) -> Decimal:
        return self.weights.get(symbol, Decimal(0))

    def total(self) -> Decimal:
        return sum(self.weights.values(), Decimal(0))


class TradeAction(BaseModel):
    """Instruction to move a fraction of portfolio value between assets/chains"""
    model_config = CAMEL_CASE

    from_asset: str
    to_asset: str
    amount_fraction: Fraction
    source_chain: str
    destination_chain: str


# Wallet and balance models
class WalletDetails(BaseModel):
    """Wallet identity as returned by the wallet service"""
    id: str
    address: str
    chain_type: str = 'ethereum'


class TokenBalance(BaseModel):
    """Token amount in smallest units tagged with asset and chain"""
    symbol: str
    chain: str
    amount: int = Field(ge=0)


# Quote models
class QuoteStep(BaseModel):
    """Single transaction of a quoted route"""
    type: str = 'bridge'
    chain_key: str
    to: str
    data: str = '0x'
    value: int = 0
    gas_limit: Optional[int] = None


class Quote(BaseModel):
    """Externally computed route for a swap or bridge"""
    route: str
    src_amount: int
    dst_amount: int
    steps: List[QuoteStep]


# Execution result models
class TradeStatus:
    """Trade result statuses"""
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


class TradeResult(BaseModel):
    """Result of executing one trade action"""
    model_config = CAMEL_CASE

    status: Literal['success', 'failed', 'skipped']
    action: TradeAction
    transfer_amount: int = 0
    route: Optional[str] = None
    transaction_hashes: List[str] = Field(default_factory=list)
    final_balances: Dict[str, int] = Field(default_factory=dict)
    error: Optional[str] = None


class RebalanceResult(BaseModel):
    """Result of processing one recommendation for one wallet"""
    model_config = CAMEL_CASE

    success: bool
    status: Literal['rebalanced', 'no_action', 'failed', 'already_running']
    message: str
    wallet_id: str
    timestamp: str
    current_allocation: Optional[Allocation] = None
    target_allocation: Optional[Allocation] = None
    actions: List[TradeAction] = Field(default_factory=list)
    results: List[TradeResult] = Field(default_factory=list)
    error: Optional[str] = None

    @computed_field(alias="executedTrades")
    @property
    def executed_trades(self) -> int:
        return sum(1 for r in self.results if r.status == TradeStatus.SUCCESS)
