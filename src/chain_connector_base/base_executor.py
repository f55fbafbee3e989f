from abc import ABC, abstractmethod
from typing import Optional
import logging
from .base_client import ChainClient, QuoteProvider
from .models import TradeAction, TradeResult, WalletDetails

class BaseTradeExecutor(ABC):
    """Base trade executor class with common functionality"""

    def __init__(self, chain_client: ChainClient, quote_provider: QuoteProvider,
                 logger: Optional[logging.Logger] = None):
        self.chain = chain_client
        self.quotes = quote_provider
        self.logger = logger or logging.getLogger(__name__)

    @abstractmethod
    async def execute(self, action: TradeAction, wallet: WalletDetails) -> TradeResult:
        """Execute a single trade action for the wallet"""
        pass
