"""Application configuration management for the cross-chain rebalancer."""

from .models import (
    AppConfig,
    ChainConfig,
    AssetConfig,
    LendingConfig,
    PortfolioConfig,
    AutomationConfig,
    RecommendationConfig,
    AdvisorConfig,
    AdvisorSourceConfig,
    WalletServiceConfig,
    QuoteConfig,
    APIConfig,
)
from .loader import load_config, get_config

__all__ = [
    "AppConfig",
    "ChainConfig",
    "AssetConfig",
    "LendingConfig",
    "PortfolioConfig",
    "AutomationConfig",
    "RecommendationConfig",
    "AdvisorConfig",
    "AdvisorSourceConfig",
    "WalletServiceConfig",
    "QuoteConfig",
    "APIConfig",
    "load_config",
    "get_config",
]
