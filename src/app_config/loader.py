"""Configuration loader with validation and singleton access."""

import logging
import yaml
from pathlib import Path
from typing import Optional

from .models import AppConfig

logger = logging.getLogger(__name__)

# Global config singleton
_config: Optional[AppConfig] = None


def load_config(config_path: str | Path) -> AppConfig:
    """
    Load and validate configuration from YAML file.

    Args:
        config_path: Path to config.yaml file

    Returns:
        Validated AppConfig instance

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config validation fails
        yaml.YAMLError: If YAML parsing fails
    """
    global _config

    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    logger.info(f"Loading configuration from: {config_path}")

    with open(config_path, 'r') as f:
        raw_config = yaml.safe_load(f)

    if raw_config is None:
        raw_config = {}

    try:
        _config = AppConfig(**raw_config)
    except Exception as e:
        logger.error(f"Configuration validation failed: {e}")
        raise ValueError(f"Invalid configuration: {e}") from e

    # Log loaded configuration for audit trail
    portfolio = _config.portfolio
    logger.info("Configuration loaded successfully:")
    for chain_key, chain in _config.chains.items():
        logger.info(f"  Chain {chain_key}: id={chain.chain_id}, timeout={chain.request_timeout_seconds}s")
    logger.info(f"  Primary asset: {portfolio.primary.symbol} on {portfolio.primary.chain}")
    logger.info(f"  Secondary asset: {portfolio.secondary.symbol} on {portfolio.secondary.chain}")
    logger.info(f"  Rebalance threshold: {_config.automation.rebalance_threshold * 100}%")
    logger.info(f"  Rebalance interval: {_config.automation.interval_seconds}s")
    logger.info(f"  Scheduled wallets: {len(_config.automation.wallet_ids)}")
    logger.info(f"  Fallback allocation: {_config.automation.fallback_primary_fraction * 100}% {portfolio.primary.symbol}")
    logger.info(f"  Balance source: {_config.automation.balance_source}")
    logger.info(f"  Recommendation URL: {_config.recommendation.url}")
    logger.info(f"  Advisor sources: {', '.join(s.name for s in _config.advisor.sources) or 'none'}")

    return _config


def get_config() -> AppConfig:
    """
    Get the current loaded configuration.

    Returns:
        Current AppConfig instance

    Raises:
        RuntimeError: If config hasn't been loaded yet
    """
    if _config is None:
        raise RuntimeError(
            "Configuration not loaded. Call load_config() first."
        )
    return _config
