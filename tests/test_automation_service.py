"""Tests for the automation loop state machine and per-wallet processing."""
import asyncio
from decimal import Decimal

import pytest

from chain_connector_base import (
    AutomationNotRunningError,
    MalformedRecommendationError,
    TradeResult,
    TradeStatus,
    WalletServiceError,
)


class TestLifecycle:

    def test_initially_stopped(self, automation):
        status = automation.status()
        assert status == {'isRunning': False, 'lastRebalance': None, 'rebalanceThreshold': 0.05}

    def test_second_start_fails_without_changing_state(self, automation):
        assert automation.start()['success'] is True
        assert automation.start()['success'] is False
        assert automation.is_running is True

    def test_second_stop_fails(self, automation):
        automation.start()
        assert automation.stop()['success'] is True
        assert automation.stop()['success'] is False
        assert automation.is_running is False

    @pytest.mark.parametrize("value", [0.1, 0.5, 0.99])
    def test_configure_accepts_open_interval(self, automation, value):
        assert automation.configure(value)['rebalanceThreshold'] == value
        assert automation.status()['rebalanceThreshold'] == value

    @pytest.mark.parametrize("value", [0, 1, -0.1, 1.5, "0.1", None, True])
    def test_configure_rejects_invalid(self, automation, value):
        with pytest.raises(ValueError):
            automation.configure(value)
        assert automation.status()['rebalanceThreshold'] == 0.05


@pytest.mark.asyncio
async def test_stopped_loop_fails_fast(automation, wallet_client, executor):
    with pytest.raises(AutomationNotRunningError):
        await automation.process_recommendation({"EUR": "70%", "USD": "30%"}, "wallet-1")

    wallet_client.get_wallet.assert_not_called()
    executor.execute.assert_not_called()


@pytest.mark.asyncio
async def test_rebalance_executes_action_and_records_timestamp(automation, executor, notification_service):
    automation.start()

    result = await automation.process_recommendation({"EUR": "70%", "USD": "30%"}, "wallet-1")

    assert result.success is True
    assert result.status == 'rebalanced'
    assert result.executed_trades == 1
    assert len(result.actions) == 1
    assert result.actions[0].from_asset == "USDC"
    assert result.actions[0].amount_fraction == Decimal("0.2")
    assert automation.last_rebalance is not None
    notification_service.send_rebalance_notification.assert_awaited_once()


@pytest.mark.asyncio
async def test_no_action_leaves_last_rebalance_unchanged(automation, executor):
    automation.start()

    result = await automation.process_recommendation({"EUR": "52%", "USD": "48%"}, "wallet-1")

    assert result.status == 'no_action'
    assert result.success is True
    assert automation.last_rebalance is None
    executor.execute.assert_not_called()


@pytest.mark.asyncio
async def test_failed_trade_does_not_update_last_rebalance(automation, executor):
    async def fail(action, wallet):
        return TradeResult(status=TradeStatus.FAILED, action=action, error="reverted", transaction_hashes=["0x1"])

    executor.execute.side_effect = fail
    automation.start()

    result = await automation.process_recommendation({"EUR": "70%", "USD": "30%"}, "wallet-1")

    assert result.success is False
    assert result.status == 'failed'
    assert result.results[0].transaction_hashes == ["0x1"]
    assert automation.last_rebalance is None
    assert automation.is_running is True


@pytest.mark.asyncio
async def test_skipped_trade_is_no_action(automation, executor):
    async def skip(action, wallet):
        return TradeResult(status=TradeStatus.SKIPPED, action=action)

    executor.execute.side_effect = skip
    automation.start()

    result = await automation.process_recommendation({"EUR": "70%", "USD": "30%"}, "wallet-1")

    assert result.status == 'no_action'
    assert automation.last_rebalance is None


@pytest.mark.asyncio
async def test_force_with_matching_allocation_executes_nothing(automation, executor):
    automation.start()

    result = await automation.process_recommendation(
        {"EUR": "50%", "USD": "50%"}, "wallet-1", force_rebalance=True
    )

    assert result.status == 'no_action'
    executor.execute.assert_not_called()


@pytest.mark.asyncio
async def test_threshold_change_applies_to_next_evaluation(automation, executor):
    automation.start()
    automation.configure(0.5)

    result = await automation.process_recommendation({"EUR": "70%", "USD": "30%"}, "wallet-1")

    assert result.status == 'no_action'
    executor.execute.assert_not_called()


@pytest.mark.asyncio
async def test_wallet_cached_but_balances_refetched(automation, wallet_client, balances):
    automation.start()

    await automation.process_recommendation({"EUR": "50%", "USD": "50%"}, "wallet-1")
    balances.balances["EURC"] = 0
    result = await automation.process_recommendation({"EUR": "50%", "USD": "50%"}, "wallet-1")

    assert wallet_client.get_wallet.await_count == 1
    assert balances.reads == 4
    assert result.current_allocation.fraction("EURC") == Decimal(0)


@pytest.mark.asyncio
async def test_malformed_recommendation_raises(automation):
    automation.start()
    with pytest.raises(MalformedRecommendationError):
        await automation.process_recommendation({"EUR": "lots"}, "wallet-1")


@pytest.mark.asyncio
async def test_wallet_service_error_is_failed_result(automation, wallet_client):
    wallet_client.get_wallet.side_effect = WalletServiceError("unauthorized")
    automation.start()

    result = await automation.process_recommendation({"EUR": "70%", "USD": "30%"}, "wallet-1")

    assert result.success is False
    assert result.status == 'failed'
    assert "unauthorized" in result.error


@pytest.mark.asyncio
async def test_same_wallet_is_not_processed_concurrently(automation, executor):
    gate = asyncio.Event()

    async def slow(action, wallet):
        await gate.wait()
        return TradeResult(status=TradeStatus.SUCCESS, action=action)

    executor.execute.side_effect = slow
    automation.start()

    first = asyncio.create_task(
        automation.process_recommendation({"EUR": "70%", "USD": "30%"}, "wallet-1")
    )
    while executor.execute.await_count == 0:
        await asyncio.sleep(0)

    second = await automation.process_recommendation({"EUR": "70%", "USD": "30%"}, "wallet-1")
    gate.set()
    first_result = await first

    assert second.status == 'already_running'
    assert second.success is False
    assert first_result.status == 'rebalanced'
    assert executor.execute.await_count == 1
    assert automation.active_wallets == set()


@pytest.mark.asyncio
async def test_run_cycle_uses_recommendation_service(automation, recommendation_service):
    automation.start()

    result = await automation.run_cycle("wallet-1")

    recommendation_service.get_target_allocation.assert_awaited_once()
    assert result.status == 'rebalanced'


@pytest.mark.asyncio
async def test_result_serializes_camel_case(automation):
    automation.start()

    result = await automation.process_recommendation({"EUR": "70%", "USD": "30%"}, "wallet-1")
    payload = result.model_dump(mode="json", by_alias=True)

    assert payload["walletId"] == "wallet-1"
    assert payload["executedTrades"] == 1
    assert payload["actions"][0]["fromAsset"] == "USDC"
    assert payload["actions"][0]["amountFraction"] == pytest.approx(0.2)
    assert payload["targetAllocation"]["weights"]["EURC"] == pytest.approx(0.7)
