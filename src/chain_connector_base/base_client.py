from abc import ABC, abstractmethod
from typing import Any, Dict, List
from app_config import AssetConfig
from .models import WalletDetails, Quote, QuoteStep

class BalanceReader(ABC):
    """Abstract source of token balances"""

    @abstractmethod
    async def get_token_balance(self, wallet: WalletDetails, asset: AssetConfig) -> int:
        """Get the wallet's balance of asset in the token's smallest unit"""
        pass


class ChainClient(BalanceReader):
    """Abstract base class for on-chain clients"""

    @abstractmethod
    async def send_transaction(self, step: QuoteStep, private_key: str) -> str:
        """Sign, submit and wait for a quoted transaction; returns the transaction hash"""
        pass

    @abstractmethod
    async def get_transaction_status(self, chain_key: str, tx_hash: str) -> Dict[str, Any]:
        """Current state of a submitted transaction: pending, confirmed or reverted"""
        pass

    @abstractmethod
    async def close(self):
        """Release provider sessions"""
        pass


class QuoteProvider(ABC):
    """Abstract base class for DEX/bridge quoting APIs"""

    @abstractmethod
    async def get_quotes(
        self,
        src_token: str,
        dst_token: str,
        src_chain_key: str,
        dst_chain_key: str,
        src_amount: int,
        src_address: str,
        dst_address: str
    ) -> List[Quote]:
        """Get all usable quotes for a transfer, best first"""
        pass
