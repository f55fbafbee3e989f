"""Tests for lending pool call encoding and supplied-position balances."""
import pytest
from pydantic import ValidationError

from app_config import AssetConfig, LendingConfig
from evm_connector import LendingPositionReader, position_asset, supply_steps, withdraw_step
from conftest import FakeBalances, WALLET_ADDRESS

POOL = "0x4444444444444444444444444444444444444444"
A_EURC = "0x5555555555555555555555555555555555555555"


@pytest.fixture
def eurc():
    return AssetConfig(
        symbol="EURC",
        recommendation_key="EUR",
        chain="base",
        token_address="0x60a3E35Cc302bFA44Cb288Bc5a4F316Fdb1adb42",
        lending=LendingConfig(pool_address=POOL, a_token_address=A_EURC, referral_code=7),
    )


def _word(data, index):
    body = data[10:]
    return body[index * 64:(index + 1) * 64]


def test_supply_steps_approve_pool_then_supply(eurc):
    approve, supply = supply_steps(eurc, 1_500_000, WALLET_ADDRESS)

    assert approve.to == eurc.token_address
    assert approve.chain_key == "base"
    assert approve.data.startswith("0x095ea7b3")
    assert int(_word(approve.data, 0), 16) == int(POOL, 16)
    assert int(_word(approve.data, 1), 16) == 1_500_000

    assert supply.to == POOL
    assert supply.data.startswith("0x617ba037")
    assert int(_word(supply.data, 0), 16) == int(eurc.token_address, 16)
    assert int(_word(supply.data, 1), 16) == 1_500_000
    assert int(_word(supply.data, 2), 16) == int(WALLET_ADDRESS, 16)
    assert int(_word(supply.data, 3), 16) == 7


def test_withdraw_step(eurc):
    step = withdraw_step(eurc, 400, WALLET_ADDRESS)

    assert step.type == "withdraw"
    assert step.to == POOL
    assert step.data.startswith("0x69328dec")
    assert int(_word(step.data, 1), 16) == 400
    assert int(_word(step.data, 2), 16) == int(WALLET_ADDRESS, 16)


def test_position_asset_reads_receipt_token(eurc):
    position = position_asset(eurc)

    assert position.symbol == "aEURC"
    assert position.token_address == A_EURC
    assert position.chain == "base"


def test_asset_without_lending_has_no_position(portfolio):
    with pytest.raises(ValueError):
        position_asset(portfolio.primary)
    with pytest.raises(ValueError):
        supply_steps(portfolio.primary, 1, WALLET_ADDRESS)


@pytest.mark.asyncio
async def test_position_reader_adds_supplied_balance(eurc, portfolio, wallet):
    reader = LendingPositionReader(FakeBalances({"EURC": 100, "aEURC": 900, "USDC": 50}))

    assert await reader.get_token_balance(wallet, eurc) == 1_000
    assert await reader.get_token_balance(wallet, portfolio.secondary) == 50


def test_lending_addresses_validated():
    with pytest.raises(ValidationError):
        LendingConfig(pool_address="0x1234", a_token_address=A_EURC)
