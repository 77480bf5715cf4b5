from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Text-generation provider (OpenAI-compatible chat completions)
    openai_api_key: str = ""
    openai_api_url: str = "https://api.openai.com/v1/chat/completions"
    openai_model: str = "gpt-4o-mini"
    generation_max_tokens: int = 150  # keep answers short: formula + one sentence
    generation_temperature: float = 0.3  # low randomness for consistent output
    generation_timeout_seconds: float = 20.0

    # Response cache
    cache_ttl_seconds: float = 3600.0
    cache_max_entries: int = 0  # 0 = unbounded (TTL-only eviction)
    cache_sweep_interval_seconds: float = 300.0  # 0 disables the background sweep

    # Per-client sliding window
    rate_limit_window_seconds: float = 60.0
    rate_limit_max_requests: int = 3

    # Global daily quota of real generations
    daily_generation_limit: int = 1000

    # Input validation
    max_input_length: int = 300

    # Behaviour flags
    trust_proxy_headers: bool = True  # only safe behind a proxy that overwrites X-Forwarded-For
    dedupe_inflight: bool = False
    stub_generation: bool = False  # return a canned formula, never call the provider

    # App
    app_env: str = "development"
    app_debug: bool = True
    app_host: str = "0.0.0.0"
    app_port: int = 8000

    # CORS
    allowed_origins: str = "*"  # comma-separated, e.g. "https://formula.example.com"

    # Logging
    log_level: str = "INFO"
    log_json: bool = False  # set True in production for structured JSON logs

    # Sentry
    sentry_dsn: str = ""  # leave empty to disable


settings = Settings()


def validate_settings_for_production() -> None:
    """Validate critical settings. Called on startup in non-test environments."""
    errors: list[str] = []

    if not settings.stub_generation and not settings.openai_api_key:
        errors.append("OPENAI_API_KEY must be set unless STUB_GENERATION is enabled")

    if settings.max_input_length <= 0:
        errors.append("MAX_INPUT_LENGTH must be positive")

    if settings.rate_limit_max_requests <= 0 or settings.daily_generation_limit <= 0:
        errors.append("RATE_LIMIT_MAX_REQUESTS and DAILY_GENERATION_LIMIT must be positive")

    if settings.app_env == "production":
        if settings.allowed_origins == "*":
            errors.append("ALLOWED_ORIGINS must not be '*' in production")
        if settings.app_debug:
            errors.append("APP_DEBUG must be false in production")
        if settings.stub_generation:
            errors.append("STUB_GENERATION must be false in production")

    if errors:
        raise SystemExit("Configuration errors:\n  - " + "\n  - ".join(errors))
