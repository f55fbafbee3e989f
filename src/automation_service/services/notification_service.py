"""Notification Service - Sends ntfy notifications for wallet rebalancing results"""

import os
import logging
from typing import List, Optional
from datetime import datetime
import aiohttp

from chain_connector_base import RebalanceResult


class NotificationService:
    """Handles sending notifications via ntfy for rebalancing events"""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)
        self.enabled = os.getenv('USER_NOTIFICATIONS_ENABLED', 'false').lower() == 'true'
        self.channel_name = os.getenv('USER_NOTIFICATIONS_CHANNEL', '')
        self.ntfy_url = os.getenv('USER_NOTIFICATIONS_SERVER', 'https://ntfy.sh').rstrip('/')

    async def send_rebalance_notification(self, result: RebalanceResult):
        """Send a notification for a rebalance that executed or attempted trades"""

        if not self.enabled:
            self.logger.debug("Notifications disabled, skipping")
            return

        if not self.channel_name:
            self.logger.warning("USER_NOTIFICATIONS_CHANNEL not set, skipping notification")
            return

        if not result.results:
            return

        try:
            self.logger.info(f"Sending {'SUCCESS' if result.success else 'FAILURE'} notification for {result.wallet_id}")
            if result.success:
                title = "✅ Rebalance Success"
                tags = ["white_check_mark"]
            else:
                title = "❌ Rebalance Failed"
                tags = ["x"]

            await self._send_ntfy(title=title, message=format_result_message(result), tags=tags)
            self.logger.info(f"Notification sent successfully for {result.wallet_id}")
        except Exception as e:
            self.logger.error(f"Failed to send notification for {result.wallet_id}: {e}")

    async def send_warnings(self, wallet_id: str, warnings: List[str]):
        """Send warning notifications for a wallet"""

        if not self.enabled or not self.channel_name or not warnings:
            return

        try:
            message_lines = [f"Wallet: {wallet_id}", "", "Warnings:", ""]
            for i, warning in enumerate(warnings, 1):
                message_lines.append(f"{i}. {warning}" if len(warnings) > 1 else warning)

            await self._send_ntfy(
                title="⚠️ Rebalance Warnings",
                message="\n".join(message_lines),
                tags=["warning"]
            )
        except Exception as e:
            self.logger.error(f"Failed to send warning notification for {wallet_id}: {e}")

    async def _send_ntfy(
        self,
        title: str,
        message: str,
        priority: str = "default",
        tags: Optional[list] = None
    ):
        """Send notification via ntfy"""

        url = f"{self.ntfy_url}/{self.channel_name}"

        headers = {
            "Title": title,
            "Priority": priority,
        }

        if tags:
            headers["Tags"] = ",".join(tags)

        async with aiohttp.ClientSession() as session:
            async with session.post(
                url,
                data=message.encode('utf-8'),
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=30)
            ) as response:
                self.logger.debug(f"ntfy response status: {response.status}")
                if response.status != 200:
                    error_text = await response.text()
                    self.logger.error(f"Failed to send notification: {response.status} - {error_text}")


def format_result_message(result: RebalanceResult) -> str:
    """Build the notification body for a rebalance result"""
    try:
        time_str = datetime.fromisoformat(result.timestamp).strftime('%Y-%m-%d %H:%M:%S')
    except ValueError:
        time_str = result.timestamp

    lines = [
        f"Wallet: {result.wallet_id}",
        f"Time: {time_str}",
        f"Status: {result.status}",
        "",
    ]

    if result.target_allocation is not None:
        weights = ", ".join(
            f"{symbol} {float(fraction) * 100:.1f}%"
            for symbol, fraction in result.target_allocation.weights.items()
        )
        suffix = " (fallback)" if result.target_allocation.is_fallback else ""
        lines.append(f"Target: {weights}{suffix}")

    lines.append(f"Trades Executed: {result.executed_trades}/{len(result.results)}")

    for trade in result.results:
        lines.append(
            f"{trade.action.from_asset} -> {trade.action.to_asset}: {trade.status}"
            + (f" ({trade.error})" if trade.error else "")
        )
        for tx_hash in trade.transaction_hashes:
            lines.append(f"  tx {tx_hash}")

    return "\n".join(lines)
