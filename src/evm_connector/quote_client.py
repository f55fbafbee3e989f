"""Stargate-compatible quoting client for swap and bridge routes"""

import logging
import aiohttp
from typing import Any, Dict, List, Optional

try:
    from app_config import AppConfig, get_config
    from chain_connector_base import Quote, QuoteProvider, QuoteStep, QuoteUnavailableError
except ImportError as e:
    raise ImportError(
        f"Failed to import required packages: {e}. "
        "Ensure chain-connector-base and app-config packages are installed."
    )

logger = logging.getLogger(__name__)


def _parse_int(value: Any) -> int:
    if value is None or value == '':
        return 0
    if isinstance(value, str) and value.lower().startswith('0x'):
        return int(value, 16)
    return int(value)


def parse_quotes(payload: Any) -> List[Quote]:
    """
    Convert a quoting API response into Quote models.

    Quotes that carry an error or have no executable steps are skipped,
    preserving the API's ordering for the rest.
    """
    if not isinstance(payload, dict) or not isinstance(payload.get('quotes'), list):
        raise QuoteUnavailableError("Quote response has no quotes list")

    quotes = []
    for index, item in enumerate(payload['quotes']):
        if not isinstance(item, dict):
            continue
        if item.get('error'):
            logger.debug(f"Skipping quote {index} ({item.get('route', 'unknown')}): {item['error']}")
            continue

        try:
            steps = []
            for step in item.get('steps') or []:
                tx = step.get('transaction') or {}
                steps.append(QuoteStep(
                    type=step.get('type', 'bridge'),
                    chain_key=step['chainKey'],
                    to=tx['to'],
                    data=tx.get('data') or '0x',
                    value=_parse_int(tx.get('value')),
                    gas_limit=_parse_int(tx['gasLimit']) if tx.get('gasLimit') else None
                ))

            if not steps:
                logger.debug(f"Skipping quote {index}: no steps")
                continue

            quotes.append(Quote(
                route=str(item.get('route', 'unknown')),
                src_amount=_parse_int(item.get('srcAmount')),
                dst_amount=_parse_int(item.get('dstAmount')),
                steps=steps
            ))
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Skipping malformed quote {index}: {e}")

    return quotes


class StargateQuoteClient(QuoteProvider):
    """Quote provider backed by the Stargate REST API"""

    def __init__(self, config: Optional[AppConfig] = None, logger: Optional[logging.Logger] = None):
        self.config = config or get_config()
        self.logger = logger or logging.getLogger(__name__)
        self.base_url = self.config.quotes.base_url.rstrip('/')
        self.timeout = self.config.quotes.timeout_seconds

    async def get_quotes(
        self,
        src_token: str,
        dst_token: str,
        src_chain_key: str,
        dst_chain_key: str,
        src_amount: int,
        src_address: str,
        dst_address: str
    ) -> List[Quote]:
        params: Dict[str, str] = {
            'srcToken': src_token,
            'dstToken': dst_token,
            'srcChainKey': src_chain_key,
            'dstChainKey': dst_chain_key,
            'srcAmount': str(src_amount),
            'srcAddress': src_address,
            'dstAddress': dst_address,
        }
        url = f"{self.base_url}/quotes"
        self.logger.info(f"Requesting quotes {src_chain_key} -> {dst_chain_key} for {src_amount} units")

        try:
            async with aiohttp.ClientSession() as session:
                async with session.get(
                    url,
                    params=params,
                    timeout=aiohttp.ClientTimeout(total=self.timeout)
                ) as response:

                    if response.status != 200:
                        response_text = await response.text()
                        raise QuoteUnavailableError(f"Quote API returned status {response.status}: {response_text}")

                    payload = await response.json()

        except QuoteUnavailableError:
            raise
        except Exception as e:
            self.logger.error(f"Failed to get quotes: {e}")
            raise QuoteUnavailableError(f"Quote request failed: {e}") from e

        quotes = parse_quotes(payload)
        if not quotes:
            raise QuoteUnavailableError(f"No usable quote for {src_chain_key} -> {dst_chain_key}")

        self.logger.info(f"Received {len(quotes)} usable quote(s), best route: {quotes[0].route}")
        return quotes
