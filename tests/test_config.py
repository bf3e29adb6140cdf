"""
Tests for configuration loading.

Tests:
- Defaults and validation
- Prefixed and legacy environment variables
- JSON config files
"""

import json

import pytest
from pydantic import ValidationError

from replybot.auto_reply.errors import ConfigError
from replybot.config.loader import load_config, save_config
from replybot.config.schema import Config, TimingConfig

ENV_VARS = (
    "DISCORD_TOKEN",
    "TARGET_CHANNEL_ID",
    "GOOGLE_API_KEY",
    "REPLYBOT_DISCORD__TOKEN",
    "REPLYBOT_DISCORD__CHANNEL_ID",
    "REPLYBOT_GENERATION__API_KEY",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestSchema:
    """Tests for the config schema."""

    def test_defaults(self):
        config = Config()
        assert config.scheduler.min_interval_seconds == 1.0
        assert config.scheduler.max_retries == 5
        assert config.generation.candidate_count == 6
        assert config.reply.memory_max_turns == 50
        assert config.timing.read_delay == 15.0
        assert config.log_path.name == "bot_activity.log"

    def test_missing_required(self):
        assert Config().missing_required() == [
            "discord.token",
            "discord.channel_id",
            "generation.api_key",
        ]

    def test_nothing_missing(self):
        config = Config(
            discord={"token": "t", "channel_id": "c"},
            generation={"api_key": "k"},
        )
        assert config.missing_required() == []

    def test_timing_ranges_validated(self):
        with pytest.raises(ValidationError):
            TimingConfig(poll_delay_min=90, poll_delay_max=30)


class TestEnvironment:
    """Tests for environment overrides."""

    def test_prefixed_nested_variable(self, monkeypatch):
        monkeypatch.setenv("REPLYBOT_DISCORD__TOKEN", "from-env")
        assert Config().discord.token == "from-env"

    def test_legacy_variables(self, monkeypatch):
        monkeypatch.setenv("DISCORD_TOKEN", "legacy-token")
        monkeypatch.setenv("TARGET_CHANNEL_ID", "1234")
        monkeypatch.setenv("GOOGLE_API_KEY", "legacy-key")

        config = Config().apply_legacy_env()

        assert config.discord.token == "legacy-token"
        assert config.discord.channel_id == "1234"
        assert config.generation.api_key == "legacy-key"

    def test_legacy_does_not_override(self, monkeypatch):
        monkeypatch.setenv("DISCORD_TOKEN", "legacy-token")
        config = Config(discord={"token": "explicit"}).apply_legacy_env()
        assert config.discord.token == "explicit"


class TestLoader:
    """Tests for config files."""

    def test_missing_file_gives_defaults(self, config_dir):
        config = load_config(config_dir / "config.json")
        assert config.discord.token == ""

    def test_file_values(self, config_dir):
        path = config_dir / "config.json"
        path.write_text(json.dumps({
            "discord": {"token": "file-token", "channel_id": "42"},
            "reply": {"banned_words": ["spam"]},
        }))

        config = load_config(path)

        assert config.discord.token == "file-token"
        assert config.discord.channel_id == "42"
        assert config.reply.banned_words == ["spam"]

    def test_legacy_env_fills_gaps(self, config_dir, monkeypatch):
        monkeypatch.setenv("GOOGLE_API_KEY", "legacy-key")
        config = load_config(config_dir / "config.json")
        assert config.generation.api_key == "legacy-key"

    def test_invalid_json(self, config_dir):
        path = config_dir / "config.json"
        path.write_text("{not json")
        with pytest.raises(ConfigError):
            load_config(path)

    def test_invalid_values(self, config_dir):
        path = config_dir / "config.json"
        path.write_text(json.dumps({"scheduler": {"max_retries": "many"}}))
        with pytest.raises(ConfigError):
            load_config(path)

    def test_save_then_load(self, config_dir):
        path = config_dir / "nested" / "config.json"
        save_config(Config(discord={"channel_id": "77"}), path)

        assert path.exists()
        assert load_config(path).discord.channel_id == "77"
