from decimal import Decimal

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Cronos RPC
    rpc_url: str = "https://evm.cronos.org"
    chain_id: int = 25

    # Signing key used by venue adapters and the validation registry client
    wallet_private_key: str = ""

    @field_validator("wallet_private_key")
    @classmethod
    def strip_key(cls, v: str) -> str:
        """Drop surrounding whitespace/newlines copied in from .env files"""
        return v.strip()

    # Price sources
    pyth_hermes_url: str = "https://hermes.pyth.network"
    dexscreener_url: str = "https://api.dexscreener.com"
    dexscreener_chain_id: str = "cronos"
    dexscreener_dex_id: str = "croswap"
    mm_finance_router: str = "0x145677FC4d9b8F19B5D56d1820c48e0443049a30"
    vvs_finance_router: str = "0x145863Eb42Cf62847A6Ca784e6416C1682b1b2Ae"
    fulcrom_price_feed: str = "0x83aFB1C32E5637ACd0a452D87c3249f4a9F0013A"

    # Cache / rate limiting (seconds)
    price_cache_ttl: int = 30
    vvs_cache_ttl: int = 60
    vvs_min_interval: int = 60
    price_feed_timeout: float = 5.0

    # Venues
    moonlander_address: str = "0xE6F6351fb66f3a35313fEEFF9116698665FBEeC9"
    gmx_exchange_router: str = "0x0000000000000000000000000000000000000000"
    gmx_reader: str = "0x0000000000000000000000000000000000000000"
    gmx_vault: str = "0x0000000000000000000000000000000000000000"
    fulcrom_trading: str = "0x0000000000000000000000000000000000000000"
    fulcrom_storage: str = "0x0000000000000000000000000000000000000000"

    # Quote economics
    slippage_small_bps: int = 20
    slippage_large_bps: int = 50
    slippage_large_threshold_usd: Decimal = Decimal("10000")
    maintenance_margin: Decimal = Decimal("0.9")
    trading_fee_rate: Decimal = Decimal("0.001")
    default_acceptable_slippage_pct: Decimal = Decimal("0.5")
    liquidity_placeholder_score: float = 80.0
    default_success_rate: float = 0.8

    # Reputation / validation registries (ERC-8004)
    reputation_registry_address: str = ""
    validation_registry_address: str = ""
    validator_address: str = ""
    agent_id: int = 0
    validation_threshold_usd: Decimal = Decimal("10000")

    # Side-effect queue
    event_queue_size: int = 1000
    event_max_attempts: int = 3

    # Database
    database_url: str = "sqlite+aiosqlite:///./perp_router.db"
    database_echo: bool = False

    # Executed-but-unrecorded trades land here
    reconciliation_dir: str = "./.reconciliation"

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()
