"""Configuration schema using Pydantic."""

import os
from pathlib import Path

from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class DiscordConfig(BaseModel):
    """Discord channel configuration."""
    token: str = ""  # Sent as the Authorization header
    channel_id: str = ""  # Channel to watch and reply in
    api_base: str = "https://discord.com/api/v9"
    user_agent: str = DEFAULT_USER_AGENT
    request_timeout: float = 30.0  # Seconds per HTTP request


class GenerationConfig(BaseModel):
    """Text generation backend configuration."""
    model: str = "gemini/gemini-2.0-flash"
    api_key: str = ""
    api_base: str | None = None
    temperature: float = 0.9
    top_p: float = 0.85
    max_tokens: int = 35
    candidate_count: int = 6


class SchedulerSettings(BaseModel):
    """Outbound request scheduler configuration."""
    min_interval_seconds: float = 1.0  # Between dispatch starts
    max_retries: int = 5
    jitter_seconds: float = 0.25  # Added to rate-limit waits
    backoff_cap_seconds: float = 60.0
    retry_step_seconds: float = 0.5  # Transient wait = attempt * step


class TimingConfig(BaseModel):
    """Human-like pacing of the reply loop (all in seconds)."""
    poll_delay_min: float = 60.0
    poll_delay_max: float = 60.0
    read_delay: float = 15.0
    human_delay_min: float = 1.0
    human_delay_max: float = 5.0
    typing_cps_min: float = 7.0  # Characters per second
    typing_cps_max: float = 15.0
    typing_min: float = 0.9
    typing_max: float = 6.0

    @model_validator(mode="after")
    def _check_ranges(self) -> "TimingConfig":
        for low, high in (
            ("poll_delay_min", "poll_delay_max"),
            ("human_delay_min", "human_delay_max"),
            ("typing_cps_min", "typing_cps_max"),
            ("typing_min", "typing_max"),
        ):
            if getattr(self, low) > getattr(self, high):
                raise ValueError(f"{low} must not exceed {high}")
        return self


class ReplyConfig(BaseModel):
    """Reply behaviour configuration."""
    banned_words: list[str] = Field(default_factory=list)  # Messages containing these are skipped
    fetch_limit: int = 50  # Messages fetched per cycle
    memory_max_turns: int = 50  # Turns remembered per channel


class Config(BaseSettings):
    """Root configuration for replybot."""
    model_config = SettingsConfigDict(
        env_prefix="REPLYBOT_",
        env_nested_delimiter="__",
        env_file=".env",
        extra="ignore",
    )

    discord: DiscordConfig = Field(default_factory=DiscordConfig)
    generation: GenerationConfig = Field(default_factory=GenerationConfig)
    scheduler: SchedulerSettings = Field(default_factory=SchedulerSettings)
    timing: TimingConfig = Field(default_factory=TimingConfig)
    reply: ReplyConfig = Field(default_factory=ReplyConfig)
    log_file: str = "bot_activity.log"

    @property
    def log_path(self) -> Path:
        """Get expanded activity log path."""
        return Path(self.log_file).expanduser()

    def apply_legacy_env(self) -> "Config":
        """
        Fill empty credentials from the plain variable names.

        DISCORD_TOKEN, TARGET_CHANNEL_ID and GOOGLE_API_KEY are honoured when
        the prefixed settings are not set.
        """
        if not self.discord.token:
            self.discord.token = os.environ.get("DISCORD_TOKEN", "")
        if not self.discord.channel_id:
            self.discord.channel_id = os.environ.get("TARGET_CHANNEL_ID", "")
        if not self.generation.api_key:
            self.generation.api_key = os.environ.get("GOOGLE_API_KEY", "")
        return self

    def missing_required(self) -> list[str]:
        """
        List required settings that are not configured.

        Returns:
            Dotted setting names, empty when everything is present.
        """
        missing = []
        if not self.discord.token:
            missing.append("discord.token")
        if not self.discord.channel_id:
            missing.append("discord.channel_id")
        if not self.generation.api_key:
            missing.append("generation.api_key")
        return missing
