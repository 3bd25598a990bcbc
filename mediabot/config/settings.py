from typing import Literal, Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class BotConfig(BaseModel):
    concurrent_updates: bool = Field(default=True, description="Process updates from different chats concurrently")
    connect_timeout: float = Field(default=10.0, gt=0, description="Telegram connect timeout in seconds")
    read_timeout: float = Field(default=30.0, gt=0, description="Telegram read timeout in seconds")


class DownloadConfig(BaseModel):
    info_timeout: float = Field(default=30.0, gt=0, description="Metadata fetch timeout in seconds")
    timeout_seconds: int = Field(default=3600, ge=60, description="Stream download timeout in seconds")
    socket_timeout: int = Field(default=10, ge=1, description="Socket timeout for yt-dlp")
    retries: int = Field(default=3, ge=0, description="Number of retries for failed downloads")


class YtDlpConfig(BaseModel):
    binary: str = Field(default="yt-dlp", description="yt-dlp executable")
    js_runtime: Optional[str] = Field(default=None, description="JS runtime path (e.g., deno:/usr/local/bin/deno)")
    enable_live_streams: bool = Field(default=False, description="Allow live stream downloads")


class SelectionConfig(BaseModel):
    prefer: Literal["highest", "first"] = Field(
        default="highest",
        description="Rank formats by quality, or take the first format the source returns",
    )
    tie_break: Literal["last", "first"] = Field(
        default="last",
        description="Which of several equally ranked formats wins, in source order",
    )


class AudioConfig(BaseModel):
    target_format: str = Field(default="mp3", description="Container delivered for /audio")
    ffmpeg_binary: str = Field(default="ffmpeg", description="ffmpeg executable")
    conversion_timeout: float = Field(default=600.0, gt=0, description="ffmpeg timeout in seconds")
    fallback_to_original: bool = Field(
        default=False,
        description="Deliver the unconverted audio stream when ffmpeg is unavailable or fails",
    )

    @field_validator('target_format')
    def normalize_target_format(cls, v):
        return v.lower().lstrip(".")


class DeliveryConfig(BaseModel):
    timeout_seconds: float = Field(default=300.0, gt=0, description="Upload timeout in seconds")
    max_upload_bytes: int = Field(default=50 * 1024 * 1024, ge=1, description="Bot API upload size limit")
    caption_limit: int = Field(default=1024, ge=1, description="Maximum caption length")


class StagingConfig(BaseModel):
    directory: str = Field(default="temp", description="Staging directory, relative to the working directory")


class LoggingConfig(BaseModel):
    level: str = Field(default="INFO", description="Log level (DEBUG, INFO, WARNING, ERROR)")
    format: str = Field(default="%(message)s", description="Log format")
    enable_rich: bool = Field(default=True, description="Enable rich console logging")

    @field_validator('level')
    def validate_log_level(cls, v):
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v.upper()


class I18nConfig(BaseModel):
    default_locale: str = Field(default="en", description="Default locale")
    supported_locales: list = Field(default=["en", "ja"], description="Supported locales")


class Config(BaseSettings):
    """Main configuration model"""
    model_config = SettingsConfigDict(
        env_prefix="MEDIABOT_",
        env_nested_delimiter="__",
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )

    bot_token: str = Field(
        default="",
        validation_alias=AliasChoices("BOT_TOKEN", "MEDIABOT_BOT_TOKEN"),
        description="Telegram bot token from BotFather",
    )
    environment: str = Field(
        default="production",
        validation_alias=AliasChoices("MEDIABOT_ENV", "BOT_ENV"),
        description="'development' permits the placeholder token",
    )

    bot: BotConfig = Field(default_factory=BotConfig)
    download: DownloadConfig = Field(default_factory=DownloadConfig)
    ytdlp: YtDlpConfig = Field(default_factory=YtDlpConfig)
    selection: SelectionConfig = Field(default_factory=SelectionConfig)
    audio: AudioConfig = Field(default_factory=AudioConfig)
    delivery: DeliveryConfig = Field(default_factory=DeliveryConfig)
    staging: StagingConfig = Field(default_factory=StagingConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    i18n: I18nConfig = Field(default_factory=I18nConfig)

    @property
    def is_development(self) -> bool:
        return self.environment.strip().lower() == "development"


def load_config() -> Config:
    """Load configuration with priority: env vars > .env file > defaults"""
    return Config()


config = load_config()
