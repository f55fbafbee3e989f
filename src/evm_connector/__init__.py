from .client import EVMClient
from .executor import EVMTradeExecutor
from .lending import LendingPositionReader, encode_function_call, position_asset, supply_steps, withdraw_step
from .quote_client import StargateQuoteClient, parse_quotes
from .wallet_client import WalletServiceClient, parse_balance, resolve_private_key

__version__ = "1.0.0"

__all__ = [
    "EVMClient",
    "EVMTradeExecutor",
    "LendingPositionReader",
    "encode_function_call",
    "position_asset",
    "supply_steps",
    "withdraw_step",
    "StargateQuoteClient",
    "WalletServiceClient",
    "parse_quotes",
    "parse_balance",
    "resolve_private_key",
    "__version__",
]
