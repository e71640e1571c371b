"""
Application settings loaded from environment variables.

Uses pydantic-settings for type-safe configuration with .env file support.
The custodial signing key is injected through the environment only.
"""

from decimal import Decimal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Global application settings."""

    # App
    APP_NAME: str = "Custodian Transfer Service"
    APP_VERSION: str = "1.0.0"
    APP_ENV: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # Custodial account
    CUSTODY_PRIVATE_KEY: str = ""
    CUSTODY_ADDRESS: str = ""  # read-only fallback when no key is configured
    NETWORK_NAME: str = "Mainnet"

    # RPC endpoints, highest priority first
    RPC_ENDPOINTS: list[str] = [
        "https://ethereum.publicnode.com",
        "https://eth.drpc.org",
        "https://rpc.ankr.com/eth",
        "https://eth.llamarpc.com",
        "https://cloudflare-eth.com",
    ]
    RPC_PROBE_TIMEOUT_SECONDS: float = 5.0

    # Block explorer (fallback balance lookup)
    EXPLORER_API_URL: str = "https://api.etherscan.io/api"
    EXPLORER_API_KEY: str = ""
    EXPLORER_TIMEOUT_SECONDS: float = 10.0

    # Price feed
    PRICE_POLL_INTERVAL_SECONDS: int = 30
    PRICE_SOURCE_TIMEOUT_SECONDS: float = 5.0
    PRICE_DEFAULT: Decimal = Decimal("3500")
    PRICE_MIN: Decimal = Decimal("100")
    PRICE_MAX: Decimal = Decimal("100000")

    # Balance cache
    BALANCE_POLL_INTERVAL_SECONDS: int = 30
    BALANCE_POLL_DELAY_SECONDS: int = 2

    # Scheduler
    BACKGROUND_POLLING_ENABLED: bool = True

    # Transfer pipeline
    FEE_RESERVE_ETH: Decimal = Decimal("0.003")
    TRANSFER_GAS_LIMIT: int = 21000
    FEE_SAFETY_MULTIPLIER: int = 2
    PRIORITY_FEE_GWEI: Decimal = Decimal("2")
    WITHDRAW_BUFFER_ETH: Decimal = Decimal("0.0005")
    MIN_OPERATING_BALANCE_ETH: Decimal = Decimal("0.01")
    CONFIRMATION_TIMEOUT_SECONDS: float = 120.0
    TRANSFER_API_KEY: str = ""  # empty disables the X-API-Key check (dev)

    # Ledger
    LEDGER_PAGE_SIZE: int = 50

    # CORS
    CORS_ORIGINS: list[str] = ["*"]

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
