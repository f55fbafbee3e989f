"""
Pytest configuration and shared fixtures for test suite.
"""
import os
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

os.environ.setdefault("USER_NOTIFICATIONS_ENABLED", "false")

from app_config import AppConfig, AutomationConfig
from chain_connector_base import (
    Allocation,
    BalanceReader,
    TradeResult,
    TradeStatus,
    WalletDetails,
)

WALLET_ADDRESS = "0x1111111111111111111111111111111111111111"


class FakeBalances(BalanceReader):
    """In-memory balances keyed by symbol; counts reads so tests can assert freshness"""

    def __init__(self, balances):
        self.balances = dict(balances)
        self.reads = 0

    async def get_token_balance(self, wallet, asset):
        self.reads += 1
        return self.balances.get(asset.symbol, 0)


@pytest.fixture
def config():
    return AppConfig(automation=AutomationConfig(wallet_ids=["wallet-1"]))


@pytest.fixture
def portfolio(config):
    return config.portfolio


@pytest.fixture
def wallet():
    return WalletDetails(id="wallet-1", address=WALLET_ADDRESS)


@pytest.fixture
def wallet_client(wallet):
    client = AsyncMock()
    client.get_wallet.return_value = wallet
    return client


@pytest.fixture
def balances():
    # 50/50 split in 6-decimal units
    return FakeBalances({"EURC": 500_000_000, "USDC": 500_000_000})


@pytest.fixture
def executor():
    executor = AsyncMock()

    async def execute(action, wallet):
        return TradeResult(status=TradeStatus.SUCCESS, action=action, transfer_amount=1, transaction_hashes=["0xabc"])

    executor.execute.side_effect = execute
    return executor


@pytest.fixture
def recommendation_service(portfolio):
    service = AsyncMock()
    service.get_target_allocation.return_value = Allocation(
        weights={"EURC": Decimal("0.7"), "USDC": Decimal("0.3")},
        source="test"
    )
    return service


@pytest.fixture
def notification_service():
    return AsyncMock()


@pytest.fixture
def automation(config, wallet_client, balances, executor, recommendation_service, notification_service):
    from automation_service.services.automation_service import AutomationService

    return AutomationService(
        wallet_client=wallet_client,
        balance_reader=balances,
        executor=executor,
        recommendation_service=recommendation_service,
        notification_service=notification_service,
        config=config,
    )

