"""Lending market calls (Aave v3 pool interface) and supplied-position balances"""

from typing import Any, List
from eth_abi import encode as abi_encode
from eth_utils import keccak, to_checksum_address

try:
    from app_config import AssetConfig
    from chain_connector_base import BalanceReader, QuoteStep, WalletDetails
except ImportError as e:
    raise ImportError(
        f"Failed to import required packages: {e}. "
        "Ensure chain-connector-base and app-config packages are installed."
    )


def encode_function_call(signature: str, arg_types: List[str], args: List[Any]) -> str:
    """Calldata for a contract call: 4-byte selector followed by ABI-encoded arguments"""
    selector = keccak(text=signature)[:4]
    return "0x" + (selector + abi_encode(arg_types, args)).hex()


def position_asset(asset: AssetConfig) -> AssetConfig:
    """The receipt token of a supplied asset, readable like any other token balance"""
    if asset.lending is None:
        raise ValueError(f"Asset {asset.symbol} has no lending market configured")

    return AssetConfig(
        symbol=f"a{asset.symbol}",
        recommendation_key=asset.recommendation_key,
        chain=asset.chain,
        token_address=asset.lending.a_token_address,
        decimals=asset.decimals,
    )


def supply_steps(asset: AssetConfig, amount: int, on_behalf_of: str) -> List[QuoteStep]:
    """Approve the pool for amount, then supply it"""
    lending = asset.lending
    if lending is None:
        raise ValueError(f"Asset {asset.symbol} has no lending market configured")

    approve = QuoteStep(
        type="approve",
        chain_key=asset.chain,
        to=asset.token_address,
        data=encode_function_call(
            "approve(address,uint256)",
            ["address", "uint256"],
            [to_checksum_address(lending.pool_address), amount]
        ),
    )
    supply = QuoteStep(
        type="supply",
        chain_key=asset.chain,
        to=lending.pool_address,
        data=encode_function_call(
            "supply(address,uint256,address,uint16)",
            ["address", "uint256", "address", "uint16"],
            [
                to_checksum_address(asset.token_address),
                amount,
                to_checksum_address(on_behalf_of),
                lending.referral_code,
            ]
        ),
    )
    return [approve, supply]


def withdraw_step(asset: AssetConfig, amount: int, to: str) -> QuoteStep:
    lending = asset.lending
    if lending is None:
        raise ValueError(f"Asset {asset.symbol} has no lending market configured")

    return QuoteStep(
        type="withdraw",
        chain_key=asset.chain,
        to=lending.pool_address,
        data=encode_function_call(
            "withdraw(address,uint256,address)",
            ["address", "uint256", "address"],
            [to_checksum_address(asset.token_address), amount, to_checksum_address(to)]
        ),
    )


class LendingPositionReader(BalanceReader):
    """Balance reader that counts supplied positions as holdings of the underlying asset"""

    def __init__(self, inner: BalanceReader):
        self.inner = inner

    async def get_token_balance(self, wallet: WalletDetails, asset: AssetConfig) -> int:
        balance = await self.inner.get_token_balance(wallet, asset)
        if asset.lending is not None:
            balance += await self.inner.get_token_balance(wallet, position_asset(asset))
        return balance
