"""Wallet service client for wallet identity and balance lookups"""

import os
import re
import base64
import logging
import aiohttp
from typing import Any, Dict, Optional

try:
    from app_config import AppConfig, AssetConfig, get_config
    from chain_connector_base import BalanceReader, WalletDetails, WalletServiceError
except ImportError as e:
    raise ImportError(
        f"Failed to import required packages: {e}. "
        "Ensure chain-connector-base and app-config packages are installed."
    )


def resolve_private_key(wallet_id: str) -> str:
    """
    Look up the signing key for a wallet from the environment.

    WALLET_PRIVATE_KEY_<WALLET_ID> (non-alphanumerics replaced by underscores)
    takes precedence over the shared WALLET_PRIVATE_KEY.

    Raises:
        WalletServiceError: If no key is configured for the wallet
    """
    env_name = "WALLET_PRIVATE_KEY_" + re.sub(r'[^A-Za-z0-9]', '_', wallet_id).upper()
    private_key = os.getenv(env_name) or os.getenv('WALLET_PRIVATE_KEY')
    if not private_key:
        raise WalletServiceError(f"No signing key configured for wallet {wallet_id} ({env_name} or WALLET_PRIVATE_KEY)")
    return private_key


class WalletServiceClient(BalanceReader):
    """Client for a Privy-compatible wallet-as-a-service REST API"""

    def __init__(self, config: Optional[AppConfig] = None, logger: Optional[logging.Logger] = None):
        self.config = config or get_config()
        self.logger = logger or logging.getLogger(__name__)
        self.base_url = self.config.wallet_service.base_url.rstrip('/')
        self.timeout = self.config.wallet_service.timeout_seconds
        self.app_id = os.getenv('PRIVY_APP_ID', '')
        self.app_secret = os.getenv('PRIVY_APP_SECRET', '')

    def _headers(self) -> Dict[str, str]:
        credentials = base64.b64encode(f"{self.app_id}:{self.app_secret}".encode()).decode()
        return {
            'Authorization': f'Basic {credentials}',
            'privy-app-id': self.app_id,
            'Content-Type': 'application/json',
        }

    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        self.logger.debug(f"Requesting {url}")

        try:
            async with aiohttp.ClientSession() as session:
                async with session.get(
                    url,
                    headers=self._headers(),
                    params=params,
                    timeout=aiohttp.ClientTimeout(total=self.timeout)
                ) as response:

                    if response.status != 200:
                        response_text = await response.text()
                        raise WalletServiceError(f"Wallet service returned status {response.status}: {response_text}")

                    data = await response.json()

        except WalletServiceError:
            raise
        except Exception as e:
            self.logger.error(f"Wallet service request to {path} failed: {e}")
            raise WalletServiceError(f"Wallet service request failed: {e}") from e

        if not isinstance(data, dict):
            raise WalletServiceError("Wallet service response must be a JSON object")
        return data

    async def get_wallet(self, wallet_id: str) -> WalletDetails:
        """Fetch wallet identity (id, address, chain type)"""
        data = await self._get(f"/wallets/{wallet_id}")

        address = data.get('address')
        if not isinstance(address, str) or not address.startswith('0x'):
            raise WalletServiceError(f"Wallet {wallet_id} has no EVM address")

        wallet = WalletDetails(
            id=str(data.get('id', wallet_id)),
            address=address,
            chain_type=data.get('chain_type', 'ethereum')
        )
        self.logger.info(f"Retrieved wallet {wallet.id}: {wallet.address}")
        return wallet

    async def get_token_balance(self, wallet: WalletDetails, asset: AssetConfig) -> int:
        """Fetch a token balance in smallest units through the wallet service"""
        chain = self.config.chains[asset.chain]
        data = await self._get(
            f"/wallets/{wallet.id}/balance",
            params={'chain_id': chain.chain_id, 'token_address': asset.token_address}
        )
        return parse_balance(data, asset)


def parse_balance(data: Dict[str, Any], asset: AssetConfig) -> int:
    """
    Extract a raw integer balance from a wallet service balance response.

    Accepts ``{"raw_value": ...}``, ``{"balance": ...}``, ``{"amount": ...}``
    or ``{"balances": [{"raw_value": ...}]}``.
    """
    entry: Any = data
    balances = data.get('balances')
    if isinstance(balances, list):
        if not balances:
            return 0
        entry = balances[0]

    if isinstance(entry, dict):
        for key in ('raw_value', 'balance', 'amount'):
            if key in entry:
                raw = entry[key]
                break
        else:
            raise WalletServiceError(f"Balance response for {asset.symbol} has no amount")
    else:
        raise WalletServiceError(f"Unexpected balance response for {asset.symbol}")

    try:
        amount = int(str(raw))
    except (TypeError, ValueError) as e:
        raise WalletServiceError(f"Invalid {asset.symbol} balance value: {raw!r}") from e

    if amount < 0:
        raise WalletServiceError(f"Negative {asset.symbol} balance: {amount}")
    return amount
