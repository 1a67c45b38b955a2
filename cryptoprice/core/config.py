from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")
    coingecko_base_url: str = "https://api.coingecko.com/api/v3"
    # Bounded wait for a single remote call; a timeout surfaces as ProviderUnavailable
    request_timeout_seconds: float = 10.0
    # Outgoing throttle (public tier allows roughly 30 calls/min)
    requests_per_minute: int = 30
    cache_ttl_ms: int = 300_000
    # None keeps the cache unbounded; set to enable LRU eviction
    cache_max_entries: int | None = None
    log_level: str = "INFO"
    api_host: str = "0.0.0.0"
    api_port: int = 8202

settings = Settings()
