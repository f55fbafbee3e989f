"""Automation Service - evaluates the rebalance policy and executes trades per wallet"""

import logging
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Mapping, Optional, Set, Union

from app_config import AppConfig, get_config
from chain_connector_base import (
    Allocation,
    AutomationNotRunningError,
    BalanceReader,
    BaseTradeExecutor,
    ChainConnectionError,
    RebalanceResult,
    TradeStatus,
    WalletDetails,
    WalletServiceError,
)
from rebalance_calculator import TradeCalculator, compute_allocation, parse_recommendation, to_decimal
from evm_connector import WalletServiceClient
from ..logger import wallet_logger_context
from .notification_service import NotificationService
from .recommendation_service import RecommendationService


class AutomationService:
    """
    Owns the automation state: running flag, last rebalance time, threshold
    and the wallet identity cache.

    Balances are read fresh on every evaluation; only wallet identity is cached.
    A wallet already being processed is reported as ``already_running`` instead
    of being processed twice.
    """

    def __init__(
        self,
        wallet_client: WalletServiceClient,
        balance_reader: BalanceReader,
        executor: BaseTradeExecutor,
        recommendation_service: RecommendationService,
        notification_service: Optional[NotificationService] = None,
        config: Optional[AppConfig] = None,
        logger: Optional[logging.Logger] = None
    ):
        self.config = config or get_config()
        self.logger = logger or logging.getLogger(__name__)
        self.portfolio = self.config.portfolio
        self.wallets = wallet_client
        self.balances = balance_reader
        self.executor = executor
        self.recommendations = recommendation_service
        self.notification_service = notification_service or NotificationService(logger=self.logger)

        self.is_running = False
        self.last_rebalance: Optional[datetime] = None
        self.rebalance_threshold = to_decimal(self.config.automation.rebalance_threshold)
        self.normalization_tolerance = to_decimal(self.config.automation.normalization_tolerance)

        self._wallet_cache: Dict[str, WalletDetails] = {}
        self.active_wallets: Set[str] = set()

    def start(self) -> Dict[str, Any]:
        if self.is_running:
            self.logger.info("Automation is already running")
            return {'success': False, 'message': 'Automation is already running'}

        self.is_running = True
        self.logger.info("Automation started")
        return {'success': True, 'message': 'Automation started'}

    def stop(self) -> Dict[str, Any]:
        if not self.is_running:
            self.logger.info("Automation is not running")
            return {'success': False, 'message': 'Automation is not running'}

        self.is_running = False
        self.logger.info("Automation stopped")
        return {'success': True, 'message': 'Automation stopped'}

    def status(self) -> Dict[str, Any]:
        return {
            'isRunning': self.is_running,
            'lastRebalance': self.last_rebalance.isoformat() if self.last_rebalance else None,
            'rebalanceThreshold': float(self.rebalance_threshold),
        }

    def configure(self, rebalance_threshold: Any) -> Dict[str, Any]:
        """
        Set the rebalance threshold used by subsequent evaluations.

        Raises:
            ValueError: If the threshold is not a number strictly between 0 and 1
        """
        if isinstance(rebalance_threshold, bool) or not isinstance(rebalance_threshold, (int, float, Decimal)):
            raise ValueError("Invalid rebalance threshold. Must be a number between 0 and 1")

        try:
            threshold = to_decimal(rebalance_threshold)
        except (ValueError, InvalidOperation) as e:
            raise ValueError("Invalid rebalance threshold. Must be a number between 0 and 1") from e

        if not (0 < threshold < 1):
            raise ValueError("Invalid rebalance threshold. Must be a number between 0 and 1")

        self.rebalance_threshold = threshold
        self.logger.info(f"Rebalance threshold set to {float(threshold) * 100:.2f}%")
        return {'success': True, 'rebalanceThreshold': float(threshold)}

    async def get_wallet(self, wallet_id: str) -> WalletDetails:
        """Wallet identity, cached for the lifetime of the service"""
        wallet = self._wallet_cache.get(wallet_id)
        if wallet is None:
            wallet = await self.wallets.get_wallet(wallet_id)
            self._wallet_cache[wallet_id] = wallet
        return wallet

    async def get_current_allocation(self, wallet: WalletDetails) -> Allocation:
        primary, secondary = self.portfolio.primary, self.portfolio.secondary
        balance_a = await self.balances.get_token_balance(wallet, primary)
        balance_b = await self.balances.get_token_balance(wallet, secondary)
        return compute_allocation(balance_a, balance_b, self.portfolio)

    async def process_recommendation(
        self,
        recommendation: Union[Allocation, Mapping[str, Any]],
        wallet_id: str,
        force_rebalance: bool = False
    ) -> RebalanceResult:
        """
        Evaluate a recommendation for one wallet and execute the resulting trades.

        Raises:
            AutomationNotRunningError: If automation is stopped
            MalformedRecommendationError: If the recommendation cannot be parsed
        """
        if not self.is_running:
            raise AutomationNotRunningError("Automation is not running")

        if isinstance(recommendation, Allocation):
            target = recommendation
        else:
            target = parse_recommendation(recommendation, self.portfolio, self.normalization_tolerance)

        return await self._rebalance_wallet(wallet_id, target, force_rebalance)

    async def run_cycle(self, wallet_id: str, target: Optional[Allocation] = None) -> RebalanceResult:
        """One automation tick for a wallet; fetches the target when none is given"""
        if not self.is_running:
            raise AutomationNotRunningError("Automation is not running")

        if target is None:
            target = await self.recommendations.get_target_allocation()

        return await self._rebalance_wallet(wallet_id, target, False)

    async def _rebalance_wallet(self, wallet_id: str, target: Allocation, force: bool) -> RebalanceResult:
        if wallet_id in self.active_wallets:
            self.logger.info(f"Wallet {wallet_id} is already being rebalanced")
            return RebalanceResult(
                success=False,
                status='already_running',
                message=f"Wallet {wallet_id} is already being rebalanced",
                wallet_id=wallet_id,
                timestamp=_now().isoformat(),
                target_allocation=target
            )

        self.active_wallets.add(wallet_id)
        try:
            async with wallet_logger_context(wallet_id) as wallet_logger:
                result = await self._evaluate_and_execute(wallet_id, target, force, wallet_logger)
        finally:
            self.active_wallets.discard(wallet_id)

        if result.results:
            await self.notification_service.send_rebalance_notification(result)
        return result

    async def _evaluate_and_execute(self, wallet_id: str, target: Allocation, force: bool,
                                    logger: logging.Logger) -> RebalanceResult:
        timestamp = _now().isoformat()
        logger.info(f"Starting rebalance evaluation{' (forced)' if force else ''}")

        try:
            wallet = await self.get_wallet(wallet_id)
            current = await self.get_current_allocation(wallet)
        except (WalletServiceError, ChainConnectionError) as e:
            logger.error(f"Failed to read wallet state: {e}")
            return RebalanceResult(
                success=False,
                status='failed',
                message='Failed to read wallet state',
                wallet_id=wallet_id,
                timestamp=timestamp,
                target_allocation=target,
                error=str(e)
            )

        self._log_allocations(logger, current, target)

        calculator = TradeCalculator(portfolio=self.portfolio, logger=logger)
        calculation = calculator.calculate_trades(current, target, self.rebalance_threshold, force)

        for warning in calculation.warnings:
            logger.warning(warning)

        if not calculation.should_rebalance or not calculation.actions:
            return RebalanceResult(
                success=True,
                status='no_action',
                message='No rebalancing needed',
                wallet_id=wallet_id,
                timestamp=timestamp,
                current_allocation=current,
                target_allocation=target
            )

        self._log_planned_actions(logger, calculation.actions)

        results = []
        for action in calculation.actions:
            results.append(await self.executor.execute(action, wallet))

        executed = [r for r in results if r.status == TradeStatus.SUCCESS]
        failed = [r for r in results if r.status == TradeStatus.FAILED]

        if executed:
            self.last_rebalance = _now()

        if failed:
            success, status = False, 'failed'
            message = f"{len(failed)} of {len(results)} trade(s) failed"
        elif executed:
            success, status = True, 'rebalanced'
            message = 'Rebalancing completed'
        else:
            success, status = True, 'no_action'
            message = 'All trades skipped'

        logger.info(f"Rebalance finished: {message}")
        if calculation.warnings:
            await self.notification_service.send_warnings(wallet_id, calculation.warnings)

        return RebalanceResult(
            success=success,
            status=status,
            message=message,
            wallet_id=wallet_id,
            timestamp=timestamp,
            current_allocation=current,
            target_allocation=target,
            actions=calculation.actions,
            results=results,
            error="; ".join(r.error for r in failed if r.error) or None
        )

    def _log_allocations(self, logger: logging.Logger, current: Allocation, target: Allocation):
        logger.info("=== ALLOCATION SNAPSHOT ===")
        for asset in self.portfolio.assets:
            logger.info(
                f"  {asset.symbol} ({asset.chain}): current {float(current.fraction(asset.symbol)) * 100:.2f}%, "
                f"target {float(target.fraction(asset.symbol)) * 100:.2f}%"
            )
        if target.is_fallback:
            logger.info("  Target is the fallback allocation")
        logger.info(f"  Threshold: {float(self.rebalance_threshold) * 100:.2f}%")
        logger.info("=== END ALLOCATION SNAPSHOT ===")

    def _log_planned_actions(self, logger: logging.Logger, actions):
        logger.info("=== PLANNED TRADES ===")
        for action in actions:
            logger.info(
                f"  {action.from_asset} ({action.source_chain}) -> {action.to_asset} ({action.destination_chain}): "
                f"{float(action.amount_fraction) * 100:.2f}%"
            )
        logger.info("=== END PLANNED TRADES ===")


def _now() -> datetime:
    return datetime.now(timezone.utc)
