"""Trade executor that moves value between assets through quoted routes"""

from typing import Callable, Dict, List, Optional
import logging

try:
    from chain_connector_base import (
        BaseTradeExecutor,
        BalanceReader,
        ChainClient,
        QuoteProvider,
        QuoteStep,
        TradeAction,
        TradeResult,
        TradeStatus,
        WalletDetails,
        QuoteUnavailableError,
        InsufficientBalanceError,
        TransferFailedError,
    )
    from app_config import AssetConfig, PortfolioConfig, get_config
    from rebalance_calculator import compute_transfer_amount
    from .lending import position_asset, supply_steps, withdraw_step
    from .wallet_client import resolve_private_key
except ImportError as e:
    raise ImportError(
        f"Failed to import required packages: {e}. "
        "Ensure packages are installed."
    )


class EVMTradeExecutor(BaseTradeExecutor):
    """Execute trade actions as signed EVM transactions without retry or rollback"""

    def __init__(
        self,
        chain_client: ChainClient,
        quote_provider: QuoteProvider,
        balance_reader: Optional[BalanceReader] = None,
        portfolio: Optional[PortfolioConfig] = None,
        key_resolver: Callable[[str], str] = resolve_private_key,
        logger: Optional[logging.Logger] = None
    ):
        super().__init__(chain_client, quote_provider, logger or logging.getLogger(__name__))
        self.balances = balance_reader or chain_client
        self.portfolio = portfolio or get_config().portfolio
        self.key_resolver = key_resolver

    def _asset(self, symbol: str) -> AssetConfig:
        for asset in self.portfolio.assets:
            if asset.symbol == symbol:
                return asset
        raise ValueError(f"Unknown asset {symbol}")

    async def execute(self, action: TradeAction, wallet: WalletDetails) -> TradeResult:
        """
        Execute one action: read the source balance (idle plus any supplied
        position), size the transfer, fetch a quote, withdraw any shortfall from
        the lending pool, submit each quote step in order and, for same-chain
        trades into a lending asset, supply what was received.

        Failures are reported in the returned TradeResult; hashes of steps that
        were already broadcast are kept on partial failure.
        """
        self.logger.info(
            f"Executing {action.from_asset} ({action.source_chain}) -> "
            f"{action.to_asset} ({action.destination_chain}), "
            f"fraction {float(action.amount_fraction) * 100:.2f}%"
        )

        try:
            return await self._execute(action, wallet)
        except TransferFailedError as e:
            self.logger.error(f"Transfer failed after {len(e.transaction_hashes)} transaction(s): {e}")
            return TradeResult(
                status=TradeStatus.FAILED,
                action=action,
                transaction_hashes=e.transaction_hashes,
                error=str(e)
            )
        except (QuoteUnavailableError, InsufficientBalanceError) as e:
            self.logger.error(f"Trade not executed: {e}")
            return TradeResult(status=TradeStatus.FAILED, action=action, error=str(e))
        except Exception as e:
            self.logger.error(f"Trade execution failed: {e}")
            return TradeResult(status=TradeStatus.FAILED, action=action, error=str(e))

    async def _execute(self, action: TradeAction, wallet: WalletDetails) -> TradeResult:
        source = self._asset(action.from_asset)
        destination = self._asset(action.to_asset)

        idle_balance = await self.balances.get_token_balance(wallet, source)
        supplied_balance = await self._supplied_balance(wallet, source)
        source_balance = idle_balance + supplied_balance
        amount = compute_transfer_amount(source_balance, action.amount_fraction)

        if amount == 0:
            self.logger.warning(
                f"Skipping trade: computed {source.symbol} amount is zero "
                f"(balance {source_balance})"
            )
            return TradeResult(
                status=TradeStatus.SKIPPED,
                action=action,
                error=f"Computed transfer amount is zero (source balance {source_balance})"
            )

        self.logger.info(f"Transfer amount: {amount} of {source_balance} {source.symbol} units")

        quotes = await self.quotes.get_quotes(
            src_token=source.token_address,
            dst_token=destination.token_address,
            src_chain_key=action.source_chain,
            dst_chain_key=action.destination_chain,
            src_amount=amount,
            src_address=wallet.address,
            dst_address=wallet.address
        )
        if not quotes:
            raise QuoteUnavailableError(f"No quote for {action.source_chain} -> {action.destination_chain}")

        quote = quotes[0]
        self.logger.info(f"Using route {quote.route} with {len(quote.steps)} step(s), expected output {quote.dst_amount}")

        private_key = self.key_resolver(wallet.id)
        hashes: List[str] = []

        shortfall = amount - idle_balance
        if shortfall > 0:
            self.logger.info(f"Withdrawing {shortfall} {source.symbol} units from lending pool")
            await self._submit([withdraw_step(source, shortfall, wallet.address)], private_key, hashes)

        await self._submit(quote.steps, private_key, hashes)

        if destination.lending is not None and action.source_chain == action.destination_chain:
            try:
                received = await self.balances.get_token_balance(wallet, destination)
            except Exception as e:
                raise TransferFailedError(
                    f"Route completed but {destination.symbol} balance could not be read for supply: {e}",
                    list(hashes)
                ) from e
            supply_amount = min(received, quote.dst_amount)
            if supply_amount > 0:
                self.logger.info(f"Supplying {supply_amount} {destination.symbol} units to lending pool")
                await self._submit(supply_steps(destination, supply_amount, wallet.address), private_key, hashes)

        final_balances = await self._read_final_balances(wallet)

        return TradeResult(
            status=TradeStatus.SUCCESS,
            action=action,
            transfer_amount=amount,
            route=quote.route,
            transaction_hashes=hashes,
            final_balances=final_balances
        )

    async def _supplied_balance(self, wallet: WalletDetails, asset: AssetConfig) -> int:
        if asset.lending is None:
            return 0
        return await self.balances.get_token_balance(wallet, position_asset(asset))

    async def _submit(self, steps: List[QuoteStep], private_key: str, hashes: List[str]):
        """Submit steps in order, appending each hash; a failure carries every hash broadcast so far"""
        for index, step in enumerate(steps, 1):
            self.logger.info(f"Submitting step {index}/{len(steps)} ({step.type}) on {step.chain_key}")
            try:
                hashes.append(await self.chain.send_transaction(step, private_key))
            except TransferFailedError as e:
                raise TransferFailedError(str(e), hashes + e.transaction_hashes) from e
            except Exception as e:
                raise TransferFailedError(f"Step {index} ({step.type}) failed: {e}", list(hashes)) from e

    async def _read_final_balances(self, wallet: WalletDetails) -> Dict[str, int]:
        """Best-effort balance snapshot after a trade; bridged funds may still be in flight"""
        assets = []
        for asset in self.portfolio.assets:
            assets.append(asset)
            if asset.lending is not None:
                assets.append(position_asset(asset))

        balances = {}
        for asset in assets:
            try:
                balances[asset.symbol] = await self.balances.get_token_balance(wallet, asset)
            except Exception as e:
                self.logger.warning(f"Could not read final {asset.symbol} balance: {e}")

        self.logger.info("=== BALANCES AFTER TRADE ===")
        for symbol, amount in balances.items():
            self.logger.info(f"  {symbol}: {amount}")
        self.logger.info("=== END BALANCES ===")
        return balances
