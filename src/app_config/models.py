"""Pydantic models for application configuration with validation."""

from typing import Dict, List, Literal, Optional
from pydantic import BaseModel, Field, field_validator, model_validator


class ChainConfig(BaseModel):
    """RPC settings for a single EVM chain."""

    chain_id: int = Field(
        ge=1,
        description="EIP-155 chain id used when signing transactions"
    )
    rpc_url: str = Field(
        description="JSON-RPC endpoint for balance reads and transaction submission"
    )
    request_timeout_seconds: float = Field(
        default=30.0,
        ge=1.0,
        le=120.0,
        description="Timeout for individual RPC requests"
    )
    receipt_timeout_seconds: int = Field(
        default=300,
        ge=10,
        le=1800,
        description="Maximum time to wait for a transaction receipt"
    )
    gas_limit: int = Field(
        default=3_000_000,
        ge=21_000,
        description="Gas limit used when the quote does not provide one"
    )


def _validate_address(v: str) -> str:
    if not v.startswith("0x") or len(v) != 42:
        raise ValueError(f"Invalid address '{v}'. Must be a 0x-prefixed 20-byte hex string")
    return v


class LendingConfig(BaseModel):
    """Aave v3 style lending market where an idle asset is supplied."""

    pool_address: str = Field(description="Lending pool contract exposing supply/withdraw")
    a_token_address: str = Field(
        description="Interest-bearing receipt token minted on supply; its balance is the supplied position"
    )
    referral_code: int = Field(default=0, ge=0, le=65535)

    @field_validator("pool_address", "a_token_address")
    @classmethod
    def validate_addresses(cls, v: str) -> str:
        return _validate_address(v)


class AssetConfig(BaseModel):
    """A token held in the portfolio."""

    symbol: str = Field(description="Asset symbol used in allocations (e.g. EURC)")
    recommendation_key: str = Field(
        description="Key of this asset in advisor recommendations (e.g. EUR)"
    )
    chain: str = Field(description="Key into the chains section")
    token_address: str = Field(description="ERC-20 contract address on that chain")
    decimals: int = Field(default=6, ge=0, le=36)
    lending: Optional[LendingConfig] = Field(
        default=None,
        description="Supply this asset to a lending market after it is received on its home chain"
    )

    @field_validator("token_address")
    @classmethod
    def validate_address(cls, v: str) -> str:
        return _validate_address(v)


class PortfolioConfig(BaseModel):
    """Two-asset portfolio; the primary asset is the one the policy compares on."""

    primary: AssetConfig = Field(
        default_factory=lambda: AssetConfig(
            symbol="EURC",
            recommendation_key="EUR",
            chain="base",
            token_address="0x60a3E35Cc302bFA44Cb288Bc5a4F316Fdb1adb42",
        )
    )
    secondary: AssetConfig = Field(
        default_factory=lambda: AssetConfig(
            symbol="USDC",
            recommendation_key="USD",
            chain="flow",
            token_address="0xF1815bd50389c46847f0Bda824eC8da914045D14",
        )
    )

    @model_validator(mode="after")
    def validate_distinct(self) -> "PortfolioConfig":
        if self.primary.symbol == self.secondary.symbol:
            raise ValueError("Primary and secondary assets must have different symbols")
        return self

    @property
    def assets(self) -> List[AssetConfig]:
        return [self.primary, self.secondary]


class AutomationConfig(BaseModel):
    """Automation loop settings."""

    rebalance_threshold: float = Field(
        default=0.05,
        gt=0.0,
        lt=1.0,
        description="Minimum allocation delta (fraction) before trades are triggered"
    )
    interval_seconds: int = Field(
        default=3600,
        ge=10,
        le=86400,
        description="Interval between scheduled rebalance ticks"
    )
    wallet_ids: List[str] = Field(
        default_factory=list,
        description="Wallets processed on every scheduled tick"
    )
    fallback_primary_fraction: float = Field(
        default=0.4,
        ge=0.0,
        le=1.0,
        description="Primary asset fraction used when no recommendation is available"
    )
    normalization_tolerance: float = Field(
        default=0.01,
        ge=0.0,
        le=0.1,
        description="Recommendations whose total deviates more than this are rescaled"
    )
    autostart: bool = Field(
        default=False,
        description="Start the automation loop when the service boots"
    )
    balance_source: Literal["rpc", "wallet_service"] = Field(
        default="rpc",
        description="Read balances via contract calls or via the wallet service API"
    )


class RecommendationConfig(BaseModel):
    """Recommendation endpoint used by scheduled ticks."""

    url: str = Field(
        default="http://localhost:8000/ai-currency",
        description="GET endpoint returning the target EUR/USD split"
    )
    timeout_seconds: int = Field(
        default=60,
        ge=5,
        le=300,
        description="Timeout for recommendation requests"
    )


class AdvisorSourceConfig(BaseModel):
    """An OpenAI-compatible chat completions endpoint used as an advisory source."""

    name: str
    base_url: str
    model: str
    api_key_env: str = Field(description="Environment variable holding the API key")
    timeout_seconds: int = Field(default=60, ge=5, le=300)
    max_tokens: int = Field(default=1000, ge=64, le=8000)


class AdvisorConfig(BaseModel):
    """Advisory orchestrator settings."""

    sources: List[AdvisorSourceConfig] = Field(
        default_factory=lambda: [
            AdvisorSourceConfig(
                name="perplexity",
                base_url="https://api.perplexity.ai",
                model="sonar",
                api_key_env="PERPLEXITY_API_KEY",
            ),
            AdvisorSourceConfig(
                name="chatgpt",
                base_url="https://api.openai.com/v1",
                model="gpt-4o-mini",
                api_key_env="OPENAI_API_KEY",
                max_tokens=1500,
            ),
        ]
    )


class WalletServiceConfig(BaseModel):
    """Wallet-as-a-service API settings."""

    base_url: str = Field(default="https://api.privy.io/v1")
    timeout_seconds: int = Field(default=30, ge=5, le=120)


class QuoteConfig(BaseModel):
    """DEX/bridge quoting API settings."""

    base_url: str = Field(default="https://stargate.finance/api/v1")
    timeout_seconds: int = Field(default=30, ge=5, le=120)


class APIConfig(BaseModel):
    """HTTP server configuration."""

    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000, ge=1, le=65535)


class AppConfig(BaseModel):
    """Root application configuration."""

    chains: Dict[str, ChainConfig] = Field(
        default_factory=lambda: {
            "base": ChainConfig(chain_id=8453, rpc_url="https://mainnet.base.org"),
            "flow": ChainConfig(chain_id=747, rpc_url="https://mainnet.evm.nodes.onflow.org"),
        },
        description="Chains keyed by chain key (matches the quoting API's chain keys)"
    )
    portfolio: PortfolioConfig = Field(
        default_factory=PortfolioConfig,
        description="Assets held in the portfolio"
    )
    automation: AutomationConfig = Field(
        default_factory=AutomationConfig,
        description="Automation loop settings"
    )
    recommendation: RecommendationConfig = Field(
        default_factory=RecommendationConfig,
        description="Recommendation endpoint settings"
    )
    advisor: AdvisorConfig = Field(
        default_factory=AdvisorConfig,
        description="Advisory orchestrator settings"
    )
    wallet_service: WalletServiceConfig = Field(
        default_factory=WalletServiceConfig,
        description="Wallet service API settings"
    )
    quotes: QuoteConfig = Field(
        default_factory=QuoteConfig,
        description="Quoting API settings"
    )
    api: APIConfig = Field(
        default_factory=APIConfig,
        description="HTTP server settings"
    )

    @model_validator(mode="after")
    def validate_asset_chains(self) -> "AppConfig":
        for asset in self.portfolio.assets:
            if asset.chain not in self.chains:
                raise ValueError(
                    f"Asset {asset.symbol} references unknown chain '{asset.chain}'. "
                    f"Known chains: {', '.join(sorted(self.chains))}"
                )
        return self
