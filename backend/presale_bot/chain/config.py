"""
Solana Integration Configuration

Settings for the RPC connection and the deposit poller.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class SolanaSettings(BaseSettings):
    """Solana RPC and poller configuration"""

    RPC_URL: str = "https://api.mainnet-beta.solana.com"
    COMMITMENT: str = "confirmed"  # or "finalized"

    # Poller settings
    POLLING_INTERVAL_SECONDS: int = 30
    SIGNATURE_LIMIT: int = 30  # recent signatures inspected per cycle
    WARM_START_LIMIT: int = 50  # signatures marked as seen on first boot

    # Rate limiting / retries (transport level only)
    API_RETRY_ATTEMPTS: int = 3
    API_RETRY_DELAY_SECONDS: float = 2.0
    REQUEST_TIMEOUT_SECONDS: float = 30.0

    # Transaction confirmation
    CONFIRM_TIMEOUT_SECONDS: float = 60.0
    CONFIRM_POLL_SECONDS: float = 2.0

    model_config = SettingsConfigDict(
        env_prefix="SOLANA_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


@lru_cache
def get_solana_settings() -> SolanaSettings:
    """Get cached Solana settings instance"""
    return SolanaSettings()


solana_settings = get_solana_settings()
