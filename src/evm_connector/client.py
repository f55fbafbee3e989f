"""EVM client for token balance reads and quoted transaction submission"""

import logging
from typing import Any, Dict, Optional
import aiohttp
from eth_account import Account
from web3 import AsyncHTTPProvider, AsyncWeb3
from web3.exceptions import TimeExhausted, TransactionNotFound

try:
    from app_config import AppConfig, AssetConfig, get_config
    from chain_connector_base import (
        ChainClient,
        ChainConnectionError,
        QuoteStep,
        TransferFailedError,
        WalletDetails,
    )
except ImportError as e:
    raise ImportError(
        f"Failed to import required packages: {e}. "
        "Ensure chain-connector-base and app-config packages are installed."
    )

ERC20_BALANCE_ABI = [
    {
        "constant": True,
        "inputs": [{"name": "account", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"name": "", "type": "uint256"}],
        "payable": False,
        "stateMutability": "view",
        "type": "function",
    },
]

class EVMClient(ChainClient):
    """EVM client with one lazily created provider per configured chain"""

    def __init__(self, config: Optional[AppConfig] = None, logger: Optional[logging.Logger] = None):
        self.config = config or get_config()
        self.logger = logger or logging.getLogger(__name__)
        self._providers: Dict[str, AsyncWeb3] = {}

    def _get_web3(self, chain_key: str) -> AsyncWeb3:
        """Get or create the provider for a chain"""
        chain = self.config.chains.get(chain_key)
        if chain is None:
            raise ChainConnectionError(f"Unknown chain '{chain_key}'")

        if chain_key not in self._providers:
            self.logger.debug(f"Creating provider for {chain_key} (chain id {chain.chain_id})")
            self._providers[chain_key] = AsyncWeb3(AsyncHTTPProvider(
                chain.rpc_url,
                request_kwargs={"timeout": aiohttp.ClientTimeout(total=chain.request_timeout_seconds)}
            ))
        return self._providers[chain_key]

    async def get_token_balance(self, wallet: WalletDetails, asset: AssetConfig) -> int:
        """Read the ERC-20 balance of asset for the wallet via balanceOf"""
        w3 = self._get_web3(asset.chain)

        try:
            contract = w3.eth.contract(
                address=AsyncWeb3.to_checksum_address(asset.token_address),
                abi=ERC20_BALANCE_ABI
            )
            balance = await contract.functions.balanceOf(
                AsyncWeb3.to_checksum_address(wallet.address)
            ).call()
        except Exception as e:
            self.logger.error(f"Failed to read {asset.symbol} balance on {asset.chain} for {wallet.address}: {e}")
            raise ChainConnectionError(f"Failed to read {asset.symbol} balance on {asset.chain}: {e}") from e

        self.logger.debug(f"{asset.symbol} balance on {asset.chain}: {balance}")
        return int(balance)

    async def send_transaction(self, step: QuoteStep, private_key: str) -> str:
        """
        Sign a quoted transaction locally, submit it and wait for the receipt.

        Returns:
            Transaction hash as 0x-prefixed hex

        Raises:
            ChainConnectionError: If nonce or gas price cannot be fetched
            TransferFailedError: If submission fails, the receipt times out or the transaction reverts
        """
        w3 = self._get_web3(step.chain_key)
        chain = self.config.chains[step.chain_key]
        account = Account.from_key(private_key)

        try:
            nonce = await w3.eth.get_transaction_count(account.address, 'pending')
            gas_price = await w3.eth.gas_price
        except Exception as e:
            raise ChainConnectionError(f"Failed to prepare transaction on {step.chain_key}: {e}") from e

        tx = {
            'to': AsyncWeb3.to_checksum_address(step.to),
            'data': step.data,
            'value': step.value,
            'nonce': nonce,
            'gas': step.gas_limit or chain.gas_limit,
            'gasPrice': gas_price,
            'chainId': chain.chain_id,
        }
        signed = account.sign_transaction(tx)

        try:
            tx_hash = await w3.eth.send_raw_transaction(signed.raw_transaction)
        except Exception as e:
            self.logger.error(f"Failed to submit {step.type} transaction on {step.chain_key}: {e}")
            raise TransferFailedError(f"Failed to submit {step.type} transaction on {step.chain_key}: {e}") from e

        tx_hash_hex = AsyncWeb3.to_hex(tx_hash)
        self.logger.info(f"Submitted {step.type} transaction {tx_hash_hex} on {step.chain_key}")

        # A broadcast transaction cannot be cancelled; a timeout only stops waiting
        try:
            receipt = await w3.eth.wait_for_transaction_receipt(
                tx_hash,
                timeout=chain.receipt_timeout_seconds
            )
        except TimeExhausted as e:
            self.logger.error(f"CRITICAL: Transaction {tx_hash_hex} not confirmed after {chain.receipt_timeout_seconds}s")
            raise TransferFailedError(
                f"Transaction {tx_hash_hex} not confirmed after {chain.receipt_timeout_seconds} seconds",
                [tx_hash_hex]
            ) from e
        except Exception as e:
            self.logger.error(f"CRITICAL: Lost track of broadcast transaction {tx_hash_hex} while waiting for receipt: {e}")
            raise TransferFailedError(
                f"Transaction {tx_hash_hex} was broadcast but its receipt could not be read: {e}",
                [tx_hash_hex]
            ) from e

        if receipt['status'] != 1:
            self.logger.error(f"Transaction {tx_hash_hex} reverted on {step.chain_key}")
            raise TransferFailedError(f"Transaction {tx_hash_hex} reverted on {step.chain_key}", [tx_hash_hex])

        self.logger.info(f"Transaction {tx_hash_hex} confirmed in block {receipt['blockNumber']}")
        return tx_hash_hex

    async def get_transaction_status(self, chain_key: str, tx_hash: str) -> Dict[str, Any]:
        """Look up a transaction receipt without waiting; unknown or unmined hashes are pending"""
        w3 = self._get_web3(chain_key)

        try:
            receipt = await w3.eth.get_transaction_receipt(tx_hash)
        except TransactionNotFound:
            return {'transactionHash': tx_hash, 'chain': chain_key, 'status': 'pending', 'blockNumber': None}
        except Exception as e:
            raise ChainConnectionError(f"Failed to read receipt for {tx_hash} on {chain_key}: {e}") from e

        return {
            'transactionHash': tx_hash,
            'chain': chain_key,
            'status': 'confirmed' if receipt['status'] == 1 else 'reverted',
            'blockNumber': receipt['blockNumber'],
        }

    async def close(self):
        """Disconnect all providers"""
        for chain_key, w3 in self._providers.items():
            try:
                await w3.provider.disconnect()
            except Exception as e:
                self.logger.error(f"Error disconnecting {chain_key} provider: {e}")
        self._providers.clear()
