"""
Configuration management for Writeup Hunter.

Uses Pydantic for validation and pydantic-settings for environment variable support.
"""

from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class FetcherConfig(BaseSettings):
    """Feed fetcher configuration."""

    model_config = SettingsConfigDict(env_prefix="FETCHER_", extra="ignore")

    # HTTP settings
    timeout_seconds: float = Field(default=30, gt=0, le=300, description="Request timeout")
    user_agent: str = Field(
        default="writeup-hunter/0.1.0 (+https://github.com/writeup-hunter)",
        description="User-Agent header"
    )
    follow_redirects: bool = Field(default=True)
    max_redirects: int = Field(default=5, ge=0, le=20)

    # Retry settings
    max_retries: int = Field(default=3, ge=0, le=10, description="Retries after the first attempt")
    base_delay_seconds: float = Field(default=2.0, ge=0, description="Backoff base delay")
    jitter_seconds: float = Field(default=1.0, ge=0, description="Random backoff jitter")
    max_delay_seconds: float = Field(default=30.0, ge=0, description="Backoff cap")

    # URLs containing one of these fragments are parsed as JSON feeds
    json_feed_patterns: list[str] = Field(default_factory=lambda: ["writeups.xyz/index.json"])


class RateLimitConfig(BaseSettings):
    """Per-host request spacing."""

    model_config = SettingsConfigDict(env_prefix="RATE_LIMIT_", extra="ignore")

    min_delay_seconds: float = Field(default=5.0, ge=0, description="Minimum delay per host")
    jitter_seconds: float = Field(default=2.0, ge=0, description="Random extra delay")


class PipelineConfig(BaseSettings):
    """Feed processing pass configuration."""

    model_config = SettingsConfigDict(env_prefix="PIPELINE_", extra="ignore")

    window_days: int = Field(default=7, ge=1, le=365, description="Only notify items newer than N days")
    feed_delay_seconds: float = Field(default=5.0, ge=0, description="Pause between feeds")
    feed_jitter_seconds: float = Field(default=1.0, ge=0, description="Random extra pause")
    unparseable_dates: str = Field(
        default="exclude",
        description="What to do with items whose date cannot be parsed: include or exclude"
    )
    announce_start: bool = Field(default=True, description="Send a message when a pass starts")

    @field_validator("unparseable_dates")
    @classmethod
    def validate_unparseable_dates(cls, v: str) -> str:
        """Validate unparseable date policy."""
        v = v.lower().strip()
        if v not in ("include", "exclude"):
            raise ValueError(f"Invalid unparseable_dates policy: {v!r}. Must be include or exclude")
        return v


class StorageConfig(BaseSettings):
    """Flat file locations."""

    model_config = SettingsConfigDict(env_prefix="STORAGE_", extra="ignore")

    feeds_file: str = Field(default="data.txt", description="Feed URL list")
    seen_file: str = Field(default="found-url.txt", description="Append-only log of notified links")
    last_run_file: str = Field(default="lastTimeCheck.txt", description="Last run timestamp")
    keywords_file: Optional[str] = Field(
        default=None,
        description="Keyword file with [+|-]keyword lines (built-in table when unset)"
    )


class TelegramConfig(BaseSettings):
    """Telegram notifier configuration.

    The bot token and channel id are secrets and are normally read from
    TELEGRAM_BOT_TOKEN and TELEGRAM_CHANNEL_ID, either from the process
    environment or from a .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="TELEGRAM_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    bot_token: Optional[str] = Field(default=None, description="Bot API token")
    channel_id: Optional[str] = Field(default=None, description="Destination chat id")
    api_base: str = Field(default="https://api.telegram.org", description="Bot API base URL")
    timeout_seconds: float = Field(default=10, gt=0, le=120)
    general_routing_key: str = Field(default="0", description="Topic for status messages")

    # Links on these domains are rewritten to go through the mirror
    link_mirror: Optional[str] = Field(default="https://freedium.cfd")
    mirror_domains: list[str] = Field(default_factory=lambda: ["medium.com"])

    @field_validator("api_base")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


class LoggingConfig(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(env_prefix="LOG_", extra="ignore")

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(
        default="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
        description="Log format"
    )

    # File logging
    file_enabled: bool = Field(default=True, description="Enable file logging")
    file_path: str = Field(default="logs/writeup_hunter.log", description="Log file path")
    rotation: str = Field(default="10 MB", description="Log rotation size")
    retention: str = Field(default="14 days", description="Log retention period")

    # Console logging
    console_enabled: bool = Field(default=True, description="Enable console logging")

    # Minimum level for httpx/httpcore records forwarded from standard logging
    library_level: str = Field(default="WARNING", description="Log level for HTTP libraries")

    @field_validator("level", "library_level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"]
        v = v.upper()
        if v not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v


class Config(BaseSettings):
    """Main application configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="HUNTER_",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    version: str = Field(default="0.1.0", description="Application version")
    app_name: str = Field(default="Writeup Hunter", description="Application name")
    dry_run: bool = Field(default=False, description="Log notifications instead of sending them")

    # Sub-configurations
    fetcher: FetcherConfig = Field(default_factory=FetcherConfig)
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    telegram: TelegramConfig = Field(default_factory=TelegramConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


_SECTIONS = {
    "fetcher": FetcherConfig,
    "rate_limit": RateLimitConfig,
    "pipeline": PipelineConfig,
    "storage": StorageConfig,
    "telegram": TelegramConfig,
    "logging": LoggingConfig,
}

# Global configuration instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = Config()
    return _config


def set_config(config: Config) -> Config:
    """Replace the global configuration instance."""
    global _config
    _config = config
    return _config


def load_config_from_yaml(yaml_path: str) -> Config:
    """Load configuration from a YAML file.

    Sections present in the file are passed as constructor arguments, so they
    take precedence over environment variables; missing sections are built
    from the environment as usual.

    Args:
        yaml_path: Path to the YAML configuration file.

    Returns:
        Config instance loaded from the file.
    """
    import yaml

    yaml_file = Path(yaml_path)
    if not yaml_file.exists():
        raise FileNotFoundError(f"Configuration file not found: {yaml_path}")

    with yaml_file.open("r", encoding="utf-8") as f:
        config_dict = yaml.safe_load(f) or {}

    if not isinstance(config_dict, dict):
        raise ValueError(f"Configuration file must contain a mapping: {yaml_path}")

    main_config = {}
    for key, value in config_dict.items():
        if key in _SECTIONS:
            main_config[key] = _SECTIONS[key](**(value or {}))
        else:
            main_config[key] = value

    return Config(**main_config)


def reload_config() -> Config:
    """Reload configuration from environment and config/config.yaml."""
    global _config
    _config = None

    config_yaml = Path("config/config.yaml")
    if config_yaml.exists():
        _config = load_config_from_yaml(str(config_yaml))
    else:
        _config = Config()

    return _config
