from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # Solana RPC
    solana_rpc_url: str = "https://api.mainnet-beta.solana.com"
    rpc_max_rps: float = 10.0
    rpc_timeout_sec: float = 10.0

    # Jupiter quote API (buy/sell dry-run for honeypot detection)
    jupiter_api_key: str = ""
    jupiter_max_rps: float = 1.0  # free tier

    # Liquidity sources
    enable_raydium: bool = True
    raydium_max_rps: float = 5.0
    enable_dexscreener: bool = True
    dexscreener_max_rps: float = 4.0

    # Holder analysis
    holder_enumeration_limit: int = 1000
    holder_contract_check_limit: int = 50  # executable lookups only for the top N

    # Timeouts: per analyzer and for the whole fan-out
    analyzer_timeout_sec: float = 15.0
    scan_timeout_sec: float = 45.0

    # Result cache
    cache_ttl_sec: int = 300  # 5 minutes
    cache_backend: str = "memory"  # "memory" or "redis"
    redis_url: str = "redis://localhost:6379/0"

    # HTTP API
    api_host: str = "0.0.0.0"
    api_port: int = 8080
    api_rate_limit: str = "10/minute"

    # Logging
    log_level: str = "INFO"
    json_logs: bool = False


settings = Settings()
