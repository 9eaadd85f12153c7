"""
Application Configuration using Pydantic Settings

Type-safe environment variable loading with validation
"""

from decimal import Decimal
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables

    Automatically loads from:
    1. Environment variables
    2. .env file (if present)
    3. Default values (specified below)

    Distribution parameters defined here are read once at startup and
    frozen into a DistributionConfig (see presale_bot.core.distribution).
    Components never read them from this object directly.

    Usage:
        from presale_bot.core.config import settings

        treasury = settings.TREASURY_WALLET
        is_production = settings.ENVIRONMENT == "production"
    """

    # Application Settings
    ENVIRONMENT: str = "development"

    # Wallets (REQUIRED: no default, must be set in .env or environment)
    TREASURY_WALLET: str  # receives SOL deposits
    DISTRIBUTOR_PRIVATE_KEY: str  # JSON array of 64 bytes, holds the presale token
    TOKEN_MINT: str

    TOKEN_DECIMALS: int = 6
    TOKEN_SYMBOL: str = "BUZZ"

    # Pricing
    TOKENS_PER_SOL: Decimal = Decimal("70000000")  # fallback for non-tier amounts
    PRICE_TIERS: str = "0.10:5000000,0.25:15000000,0.50:35000000"  # "sol:tokens,..."

    # Guards (0 disables the maximum)
    MIN_DEPOSIT_SOL: Decimal = Decimal("0")
    MAX_DEPOSIT_SOL: Decimal = Decimal("0")

    # Cap on cumulative buyer-side tokens (0 = uncapped)
    DISTRIBUTION_CAP: int = 0
    GOAL_SOL: Decimal = Decimal("0")

    # Burn split: "off", "take" or "extra"
    BURN_MODE: str = "off"
    BURN_RATE_BPS: int = 0

    # Liquidity and allocation figures reported by /stats
    LIQUIDITY_RESERVE_BPS: int = 0
    LIQUIDITY_ADDED_SOL: Decimal = Decimal("0")
    TOKEN_TOTAL_SUPPLY: int = 0
    TOKEN_ALLOCATION: str = ""  # "presale:40,liquidity:30,team:15,marketing:15"

    # Database Settings (unset = in-memory ledger, lost on restart)
    DATABASE_URL: str | None = None
    MEMORY_RECENT_LIMIT: int = 25

    # Poller
    POLLER_ENABLED: bool = True  # Set to False to serve read endpoints only
    WARM_START: bool = True  # Mark existing treasury history as seen on first boot

    # CORS Settings (default: localhost dev server; set explicit domains in production)
    ALLOWED_ORIGINS: str = "http://localhost:5173,http://localhost:3000"

    # Logging Settings
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "text"  # "text" or "json"

    # Pydantic Settings Configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"  # Ignore extra env vars not defined here
    )

    @property
    def is_production(self) -> bool:
        """Check if running in production environment"""
        return self.ENVIRONMENT == "production"

    @property
    def allowed_origins_list(self) -> List[str]:
        """Parse ALLOWED_ORIGINS into a list"""
        if self.ALLOWED_ORIGINS == "*":
            return ["*"]
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",")]

    @property
    def use_json_logs(self) -> bool:
        """Check if JSON logging is enabled"""
        return self.LOG_FORMAT == "json"

    @property
    def uses_durable_storage(self) -> bool:
        return bool(self.DATABASE_URL)


# Global settings instance
settings = Settings()


# Validation: Fail fast if unsafe values in production
if settings.is_production:
    if not settings.DATABASE_URL:
        raise ValueError("In-memory ledger is not allowed in production. Set DATABASE_URL.")

    if settings.ALLOWED_ORIGINS == "*":
        raise ValueError("CORS wildcard '*' is not allowed in production. Set ALLOWED_ORIGINS to specific domains.")
