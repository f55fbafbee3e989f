"""Tests for the recommendation fetcher and notification formatting."""
import asyncio
from decimal import Decimal
from unittest.mock import AsyncMock

import aiohttp
import pytest

from chain_connector_base import RebalanceResult, TradeAction, TradeResult, TradeStatus
from automation_service.services.notification_service import NotificationService, format_result_message
from automation_service.services.recommendation_service import RecommendationService


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [
    aiohttp.ClientError("connection refused"),
    asyncio.TimeoutError(),
    ValueError("not json"),
])
async def test_upstream_failure_uses_fallback(config, error):
    service = RecommendationService(config=config)
    service._fetch = AsyncMock(side_effect=error)

    allocation = await service.get_target_allocation()

    assert allocation.is_fallback is True
    assert allocation.fraction("EURC") == Decimal("0.4")


@pytest.mark.asyncio
async def test_malformed_body_uses_fallback(config):
    service = RecommendationService(config=config)
    service._fetch = AsyncMock(return_value={"EUR": "maybe", "USD": "40%"})

    allocation = await service.get_target_allocation()

    assert allocation.is_fallback is True


@pytest.mark.asyncio
async def test_valid_body_is_normalized(config):
    service = RecommendationService(config=config)
    service._fetch = AsyncMock(return_value={"EUR": "60%", "USD": "45%", "source": "orchestrator"})

    allocation = await service.get_target_allocation()

    assert allocation.is_fallback is False
    assert allocation.source == "orchestrator"
    assert abs(allocation.total() - 1) <= Decimal("0.01")


@pytest.mark.asyncio
async def test_disabled_notifications_send_nothing(monkeypatch):
    monkeypatch.setenv("USER_NOTIFICATIONS_ENABLED", "false")
    service = NotificationService()
    service._send_ntfy = AsyncMock()

    await service.send_rebalance_notification(_result())

    service._send_ntfy.assert_not_called()


@pytest.mark.asyncio
async def test_notification_failure_is_not_raised(monkeypatch):
    monkeypatch.setenv("USER_NOTIFICATIONS_ENABLED", "true")
    monkeypatch.setenv("USER_NOTIFICATIONS_CHANNEL", "rebalancer-test")
    service = NotificationService()
    service._send_ntfy = AsyncMock(side_effect=aiohttp.ClientError("offline"))

    await service.send_rebalance_notification(_result())

    service._send_ntfy.assert_awaited_once()


def test_message_lists_trades_and_hashes():
    message = format_result_message(_result())

    assert "Wallet: wallet-1" in message
    assert "USDC -> EURC: failed (reverted)" in message
    assert "tx 0xabc" in message


def _result():
    action = TradeAction(
        from_asset="USDC", to_asset="EURC", amount_fraction=Decimal("0.2"),
        source_chain="flow", destination_chain="base"
    )
    return RebalanceResult(
        success=False,
        status="failed",
        message="1 of 1 trade(s) failed",
        wallet_id="wallet-1",
        timestamp="2025-01-01T00:00:00+00:00",
        actions=[action],
        results=[TradeResult(status=TradeStatus.FAILED, action=action, transaction_hashes=["0xabc"], error="reverted")],
    )
