import os

from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    def model_post_init(self, __context: Any) -> None:
        """Accept SOLVER_PRIVATE_KEY as a fallback name for the signing key."""

        super().model_post_init(__context)

        if not self.private_key:
            fallback = os.getenv("SOLVER_PRIVATE_KEY")
            if fallback:
                object.__setattr__(self, "private_key", fallback)

    # General
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(
        default="auto",
        pattern="^(auto|json|console)$",
        description="'auto' renders the console format at DEBUG and JSON lines otherwise",
    )
    log_quiet_loggers: List[str] = Field(
        default_factory=lambda: ["httpcore", "httpx", "websockets", "web3"],
        description="Third-party loggers held at log_quiet_level",
    )
    log_quiet_level: str = Field(default="WARNING", description="Level for log_quiet_loggers")

    # Signer
    private_key: str = Field(
        default="",
        description="Hex private key used to sign fill transactions",
        validation_alias=AliasChoices("private_key", "PRIVATE_KEY"),
    )

    # Chains
    rpc_urls: Dict[int, str] = Field(
        default_factory=dict,
        description="HTTP RPC endpoint per chain id (JSON object in env)",
    )
    explorer_urls: Dict[int, str] = Field(
        default_factory=lambda: {
            1: "https://etherscan.io",
            10: "https://optimistic.etherscan.io",
            130: "https://uniscan.xyz",
            8453: "https://basescan.org",
            11155420: "https://sepolia-optimism.etherscan.io",
        },
        description="Block explorer base URL per chain id",
    )

    # Prices
    coingecko_api_key: str = Field(default="", description="Coingecko API key")
    price_update_interval_seconds: float = Field(
        default=10.0, gt=0, description="Interval between native price refreshes"
    )
    price_stale_after_seconds: float = Field(
        default=30.0, gt=0, description="Age after which a cached price is considered stale"
    )
    price_stale_policy: str = Field(
        default="warn",
        pattern="^(warn|strict)$",
        description="'warn' keeps using a stale price, 'strict' refuses it",
    )

    # Streaming sources
    ws_reconnect_base_delay_seconds: float = Field(default=1.0, gt=0)
    ws_max_reconnect_attempts: int = Field(default=5, ge=0)
    ws_max_reconnect_delay_seconds: float = Field(
        default=60.0, gt=0, description="Ceiling applied to the doubled reconnect delay"
    )
    ws_ping_interval_seconds: float = Field(default=15.0, gt=0)
    ws_pong_timeout_seconds: float = Field(default=5.0, gt=0)

    # On-chain log sources
    chain_log_poll_interval_seconds: float = Field(default=4.0, gt=0)
    chain_log_confirmation_blocks: int = Field(default=1, ge=0)
    chain_log_max_block_range: int = Field(
        default=2_000, gt=0, description="Largest block span requested in one getLogs call"
    )

    # Protocol toggles
    compactx_enabled: bool = Field(default=True, description="Run the CompactX solver")
    compactx_ws_url: str = Field(
        default="wss://compactx-disseminator.com/ws",
        description="CompactX broadcast WebSocket URL",
    )
    hyperlane7683_enabled: bool = Field(default=False, description="Run the Hyperlane7683 solver")
    hyperlane7683_sse_url: Optional[str] = Field(
        default=None,
        description="Optional server-sent event stream of Hyperlane7683 Open events",
    )
    eco_enabled: bool = Field(default=False, description="Run the Eco solver")
    eco_metadata: Dict[str, Any] = Field(
        default_factory=dict,
        description="Eco intent sources, adapters and fees (JSON object in env)",
    )

    @property
    def has_private_key(self) -> bool:
        return bool(self.private_key)

    @property
    def strict_price_staleness(self) -> bool:
        return self.price_stale_policy.lower() == "strict"

    def rpc_url_for(self, chain_id: int) -> Optional[str]:
        return self.rpc_urls.get(int(chain_id))


# Global settings instance
settings = Settings()
