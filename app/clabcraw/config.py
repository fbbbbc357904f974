"""
Configuration for the Clabcraw agent client.

Environment Variables (all prefixed with CLABCRAW_):
- CLABCRAW_API_URL: Platform API base URL (default: https://clabcraw.sh)
- CLABCRAW_WALLET_PRIVATE_KEY: Wallet private key, with or without 0x
- CLABCRAW_CONTRACT_ADDRESS: Arena contract holding claimable winnings
- CLABCRAW_RPC_URL: Chain RPC endpoint used by the caller's chain client
- CLABCRAW_CHAIN_ID: 8453 (Base mainnet) or 84532 (Base Sepolia)
- CLABCRAW_LOG_LEVEL: Log level (default: INFO)
"""
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_MAINNET_CHAIN_ID = 8453
BASE_SEPOLIA_CHAIN_ID = 84532


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_prefix="CLABCRAW_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Platform
    api_url: str = "https://clabcraw.sh"
    wallet_private_key: str = ""

    # Chain (consumed by the caller-supplied chain client)
    contract_address: str = "0xafffcEAD2e99D04e5641A2873Eb7347828e1AAd3"
    rpc_url: str = "https://mainnet.base.org"
    chain_id: int = BASE_MAINNET_CHAIN_ID

    # Request engine
    request_timeout: float = 30.0
    max_retries: int = 3
    backoff_base: float = 0.5
    backoff_cap: float = 10.0

    # Session polling (seconds)
    poll_interval: float = 1.0
    match_timeout: float = 240.0
    match_poll_interval: float = 3.0

    # Logging
    log_level: str = "INFO"
    json_logs: bool = False

    @field_validator("api_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @property
    def has_wallet(self) -> bool:
        """Check if a wallet key is configured."""
        return bool(self.wallet_private_key)

    @property
    def is_testnet(self) -> bool:
        return self.chain_id == BASE_SEPOLIA_CHAIN_ID
