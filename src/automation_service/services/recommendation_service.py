"""Recommendation service for fetching the target allocation from the advisory endpoint"""

import asyncio
import logging
from decimal import Decimal
from typing import Any, Dict, Optional
import aiohttp

from app_config import AppConfig, get_config
from chain_connector_base import Allocation
from rebalance_calculator import fallback_allocation, parse_recommendation


class RecommendationService:
    """Fetch and normalize the target allocation; substitute the fallback on any upstream failure"""

    def __init__(self, config: Optional[AppConfig] = None, logger: Optional[logging.Logger] = None):
        self.config = config or get_config()
        self.logger = logger or logging.getLogger(__name__)
        self.url = self.config.recommendation.url
        self.timeout = self.config.recommendation.timeout_seconds
        self.tolerance = Decimal(str(self.config.automation.normalization_tolerance))

    async def _fetch(self) -> Dict[str, Any]:
        self.logger.debug(f"Retrieving recommendation from {self.url}")

        async with aiohttp.ClientSession() as session:
            async with session.get(
                self.url,
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            ) as response:
                response.raise_for_status()
                return await response.json()

    def fallback(self) -> Allocation:
        return fallback_allocation(
            self.config.portfolio,
            Decimal(str(self.config.automation.fallback_primary_fraction))
        )

    async def get_target_allocation(self) -> Allocation:
        try:
            payload = await self._fetch()
            allocation = parse_recommendation(payload, self.config.portfolio, self.tolerance)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            self.logger.warning(f"Recommendation unavailable ({type(e).__name__}: {e}), using fallback allocation")
            return self.fallback()

        if allocation.source is None:
            allocation.source = self.url

        self.logger.info(
            "Retrieved target allocation: "
            + ", ".join(f"{symbol} {float(fraction) * 100:.2f}%" for symbol, fraction in allocation.weights.items())
            + (" (fallback)" if allocation.is_fallback else "")
        )
        return allocation
