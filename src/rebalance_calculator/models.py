from decimal import Decimal
from typing import List
from pydantic import BaseModel, Field
from chain_connector_base import TradeAction

class TradeCalculationResult(BaseModel):
    """Result of policy evaluation with warnings"""
    should_rebalance: bool
    delta: Decimal
    actions: List[TradeAction] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
