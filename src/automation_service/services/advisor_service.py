"""Advisor Service - Gathers EUR/USD allocation advice from chat-completion sources"""

import os
import re
import json
import asyncio
import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple
import aiohttp
from pydantic import BaseModel

from app_config import AdvisorSourceConfig, AppConfig, PortfolioConfig, get_config
from chain_connector_base import Allocation, MalformedRecommendationError
from rebalance_calculator import fallback_allocation, normalize_recommendation, parse_recommendation

SYSTEM_PROMPT = (
    "You are a financial analyst specializing in currency investment analysis. "
    "Consider current exchange rates and trends, economic indicators, central bank policy "
    "(ECB and Federal Reserve), market sentiment and geopolitical factors. "
    "Answer with a JSON object of the form "
    '{{"{primary}": "X%", "{secondary}": "Y%", "reasoning": "...", '
    '"confidenceLevel": "low|medium|high", "riskAssessment": "..."}} where X+Y=100.'
)

USER_PROMPT = (
    "Analyze the current market conditions and recommend how to split a stablecoin "
    "portfolio between {primary} and {secondary}."
)

JSON_OBJECT_PATTERN = re.compile(r'\{.*\}', re.DOTALL)


class SourceResult(BaseModel):
    """Outcome of querying one advisory source"""
    source: str
    success: bool
    allocation: Optional[Allocation] = None
    reasoning: Optional[str] = None
    confidence_level: Optional[str] = None
    risk_assessment: Optional[str] = None
    error: Optional[str] = None


def format_percent(fraction: Decimal) -> str:
    return f"{round(float(fraction) * 100, 1):g}%"


def parse_advisor_reply(text: str, portfolio: PortfolioConfig,
                        tolerance: Any = Decimal("0.01")) -> Tuple[Allocation, Dict[str, Any]]:
    """
    Parse an advisor's free-text reply.

    A JSON object embedded in the reply wins; otherwise "EUR: 60%" style
    mentions are used, deriving the secondary share when only the primary
    is given.

    Raises:
        MalformedRecommendationError: If no allocation can be found
    """
    match = JSON_OBJECT_PATTERN.search(text)
    if match:
        try:
            data = json.loads(match.group(0))
        except ValueError:
            data = None

        if isinstance(data, dict):
            try:
                allocation = parse_recommendation(data, portfolio, tolerance)
                extras = {
                    'reasoning': data.get('reasoning'),
                    'confidence_level': data.get('confidenceLevel'),
                    'risk_assessment': data.get('riskAssessment'),
                }
                return allocation, extras
            except MalformedRecommendationError:
                pass

    primary_key = re.escape(portfolio.primary.recommendation_key)
    secondary_key = re.escape(portfolio.secondary.recommendation_key)
    primary_match = re.search(rf'{primary_key}[:\s]*(\d+(?:\.\d+)?)%', text, re.IGNORECASE)
    secondary_match = re.search(rf'{secondary_key}[:\s]*(\d+(?:\.\d+)?)%', text, re.IGNORECASE)

    if primary_match is None:
        raise MalformedRecommendationError(
            f"No {portfolio.primary.recommendation_key} percentage found in advisor reply"
        )

    primary_pct = Decimal(primary_match.group(1))
    secondary_pct = Decimal(secondary_match.group(1)) if secondary_match else Decimal(100) - primary_pct

    allocation = normalize_recommendation(f"{primary_pct}%", f"{secondary_pct}%", portfolio, tolerance)
    return allocation, {'reasoning': text.strip()}


class AdvisorSource:
    """One OpenAI-compatible chat completions endpoint"""

    def __init__(self, config: AdvisorSourceConfig, portfolio: PortfolioConfig,
                 tolerance: Any = Decimal("0.01"), logger: Optional[logging.Logger] = None):
        self.config = config
        self.name = config.name
        self.portfolio = portfolio
        self.tolerance = tolerance
        self.logger = logger or logging.getLogger(__name__)

    @property
    def api_key(self) -> Optional[str]:
        return os.getenv(self.config.api_key_env)

    async def query(self) -> str:
        """Send the prompt and return the reply text"""
        if not self.api_key:
            raise ValueError(f"{self.config.api_key_env} not set")

        keys = {
            'primary': self.portfolio.primary.recommendation_key,
            'secondary': self.portfolio.secondary.recommendation_key,
        }
        body = {
            'model': self.config.model,
            'messages': [
                {'role': 'system', 'content': SYSTEM_PROMPT.format(**keys)},
                {'role': 'user', 'content': USER_PROMPT.format(**keys)},
            ],
            'max_tokens': self.config.max_tokens,
            'temperature': 0.1,
        }
        headers = {
            'Authorization': f'Bearer {self.api_key}',
            'Content-Type': 'application/json',
        }
        url = f"{self.config.base_url.rstrip('/')}/chat/completions"

        self.logger.info(f"Querying {self.name} ({self.config.model})")
        async with aiohttp.ClientSession() as session:
            async with session.post(
                url,
                json=body,
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=self.config.timeout_seconds)
            ) as response:

                if response.status != 200:
                    response_text = await response.text()
                    raise ValueError(f"{self.name} returned status {response.status}: {response_text[:200]}")

                data = await response.json()

        try:
            return data['choices'][0]['message']['content']
        except (KeyError, IndexError, TypeError) as e:
            raise ValueError(f"Unexpected {self.name} response shape") from e

    async def fetch(self) -> SourceResult:
        text = await self.query()
        allocation, extras = parse_advisor_reply(text, self.portfolio, self.tolerance)
        allocation.source = self.name
        self.logger.info(
            f"{self.name} recommends "
            + ", ".join(f"{s} {format_percent(f)}" for s, f in allocation.weights.items())
        )
        return SourceResult(source=self.name, success=True, allocation=allocation, **extras)


class AdvisorOrchestrator:
    """Runs all advisory sources concurrently and combines their answers"""

    def __init__(self, config: Optional[AppConfig] = None, sources: Optional[List[AdvisorSource]] = None,
                 logger: Optional[logging.Logger] = None):
        self.config = config or get_config()
        self.logger = logger or logging.getLogger(__name__)
        self.portfolio = self.config.portfolio
        tolerance = Decimal(str(self.config.automation.normalization_tolerance))
        if sources is None:
            sources = [
                AdvisorSource(source_config, self.portfolio, tolerance, self.logger)
                for source_config in self.config.advisor.sources
            ]
        self.sources = sources

    def get_available_sources(self) -> List[str]:
        return [source.name for source in self.sources]

    async def gather(self) -> List[SourceResult]:
        """Query every source; one failing source never aborts the others"""
        outcomes = await asyncio.gather(
            *(source.fetch() for source in self.sources),
            return_exceptions=True
        )

        results = []
        for source, outcome in zip(self.sources, outcomes):
            if isinstance(outcome, BaseException):
                self.logger.warning(f"Advisor {source.name} failed: {outcome}")
                results.append(SourceResult(source=source.name, success=False, error=str(outcome)))
            else:
                results.append(outcome)
        return results

    def combine(self, results: List[SourceResult]) -> Allocation:
        """Average successful allocations, or fall back when none succeeded"""
        successful = [r for r in results if r.success and r.allocation is not None]

        if not successful:
            self.logger.warning("No advisor succeeded, using fallback allocation")
            return fallback_allocation(
                self.portfolio,
                Decimal(str(self.config.automation.fallback_primary_fraction))
            )

        count = Decimal(len(successful))
        primary = self.portfolio.primary.symbol
        secondary = self.portfolio.secondary.symbol
        primary_fraction = sum((r.allocation.fraction(primary) for r in successful), Decimal(0)) / count

        return Allocation(
            weights={primary: primary_fraction, secondary: Decimal(1) - primary_fraction},
            source=", ".join(r.source for r in successful)
        )

    async def recommend(self) -> Dict[str, Any]:
        """Build the recommendation payload served at /ai-currency"""
        results = await self.gather()
        allocation = self.combine(results)
        successful = [r for r in results if r.success]

        if allocation.is_fallback:
            reasoning = "No advisory source available; using conservative fallback allocation"
        else:
            reasoning = "\n\n".join(f"{r.source}: {r.reasoning}" for r in successful if r.reasoning)

        confidence = next((r.confidence_level for r in successful if r.confidence_level), None)
        risk = next((r.risk_assessment for r in successful if r.risk_assessment), None)

        return {
            self.portfolio.primary.recommendation_key: format_percent(allocation.fraction(self.portfolio.primary.symbol)),
            self.portfolio.secondary.recommendation_key: format_percent(allocation.fraction(self.portfolio.secondary.symbol)),
            'reasoning': reasoning,
            'confidenceLevel': confidence or ('low' if allocation.is_fallback else 'medium'),
            'riskAssessment': risk or 'Not assessed',
            'source': allocation.source,
            'isFallback': allocation.is_fallback,
            'sources': [
                {'name': r.source, 'success': r.success, 'error': r.error}
                for r in results
            ],
        }

    async def health(self) -> Dict[str, Dict[str, Optional[str]]]:
        """Query each source and report whether it produced a usable answer"""
        health = {}
        for result in await self.gather():
            health[result.source] = {
                'status': 'healthy' if result.success else 'unhealthy',
                'error': result.error,
            }
        return health
