from .base_client import BalanceReader, ChainClient, QuoteProvider
from .base_executor import BaseTradeExecutor
from .models import (
    # Allocation models
    Allocation,
    TradeAction,
    # Wallet models
    WalletDetails,
    TokenBalance,
    # Quote models
    Quote,
    QuoteStep,
    # Result models
    TradeResult,
    TradeStatus,
    RebalanceResult,
)
from .exceptions import (
    ChainConnectionError,
    WalletServiceError,
    QuoteUnavailableError,
    InsufficientBalanceError,
    TransferFailedError,
    MalformedRecommendationError,
    AutomationNotRunningError,
)

__version__ = "1.0.0"

__all__ = [
    "BalanceReader",
    "ChainClient",
    "QuoteProvider",
    "BaseTradeExecutor",
    "Allocation",
    "TradeAction",
    "WalletDetails",
    "TokenBalance",
    "Quote",
    "QuoteStep",
    "TradeResult",
    "TradeStatus",
    "RebalanceResult",
    "ChainConnectionError",
    "WalletServiceError",
    "QuoteUnavailableError",
    "InsufficientBalanceError",
    "TransferFailedError",
    "MalformedRecommendationError",
    "AutomationNotRunningError",
    "__version__",
]
