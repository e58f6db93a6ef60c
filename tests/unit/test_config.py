"""
Unit tests for configuration module.
"""

import os
from pathlib import Path
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from rotatv.config import (
    ChatConfig,
    LoggingConfig,
    RotaTVConfig,
    RotationConfig,
    ServerConfig,
    VotingConfig,
    get_config,
    load_config,
    reload_config,
)


@pytest.mark.unit
class TestServerConfig:
    """Tests for ServerConfig."""

    def test_default_values(self):
        config = ServerConfig()

        assert config.enabled is True
        assert config.host == "127.0.0.1"
        assert config.port == 8412
        assert config.log_level == "INFO"

    def test_custom_values(self):
        config = ServerConfig(host="0.0.0.0", port=9000, log_level="DEBUG")

        assert config.host == "0.0.0.0"
        assert config.port == 9000
        assert config.log_level == "DEBUG"


@pytest.mark.unit
class TestRotationConfig:
    """Tests for RotationConfig."""

    def test_default_values(self):
        config = RotationConfig()

        assert config.initial_queue_size == 3
        assert config.recently_played_memory == 10
        assert config.commercials_enabled is True
        assert config.commercial_interval == 1800
        assert config.special_chance == 5
        assert config.room_grind_chance == 0
        assert config.room_shuffle_chance == 0
        assert config.room_playtime == 300

    def test_percentages_are_bounded(self):
        with pytest.raises(ValidationError):
            RotationConfig(special_chance=101)
        with pytest.raises(ValidationError):
            RotationConfig(room_grind_chance=-1)
        with pytest.raises(ValidationError):
            RotationConfig(room_shuffle_chance=150)

    def test_recency_memory_cannot_be_negative(self):
        with pytest.raises(ValidationError):
            RotationConfig(recently_played_memory=-1)

    def test_recency_memory_zero_allowed(self):
        assert RotationConfig(recently_played_memory=0).recently_played_memory == 0


@pytest.mark.unit
class TestVotingConfig:
    """Tests for VotingConfig."""

    def test_poll_size_must_be_positive(self):
        with pytest.raises(ValidationError):
            VotingConfig(poll_size=0)

    def test_defaults(self):
        config = VotingConfig()
        assert config.poll_interval_minutes == 15
        assert config.poll_size == 3


@pytest.mark.unit
class TestChatConfig:
    """Tests for ChatConfig."""

    def test_defaults(self):
        config = ChatConfig()
        assert config.transport == "console"
        assert config.prefix == "!"
        assert config.admins == []
        assert config.skip_vote_threshold == 2


@pytest.mark.unit
class TestLoggingConfig:
    """Tests for LoggingConfig."""

    def test_default_values(self):
        config = LoggingConfig()

        assert config.level == "INFO"
        assert config.max_size == "10MB"
        assert config.to_file is True


@pytest.mark.unit
class TestRotaTVConfig:
    """Tests for main RotaTVConfig."""

    def test_default_config(self):
        config = RotaTVConfig()

        assert isinstance(config.server, ServerConfig)
        assert isinstance(config.rotation, RotationConfig)
        assert config.announcements == []

    def test_nested_config(self):
        config = RotaTVConfig(
            server={"port": 9000},
            announcements=[{"name": "discord", "message": "Join us!", "interval": 60}],
        )

        assert config.server.port == 9000
        assert config.announcements[0].name == "discord"


@pytest.mark.unit
class TestLoadConfig:
    """Tests for load_config function."""

    def test_load_from_file(self, temp_config_file: Path):
        config = load_config(str(temp_config_file))

        assert config.server.port == 9100
        assert config.chat.prefix == "?"
        assert config.rotation.recently_played_memory == 4
        assert config.logging.level == "DEBUG"

    def test_load_missing_file_uses_defaults(self, temp_dir: Path):
        config = load_config(str(temp_dir / "missing.yaml"))

        assert config.server.port == 8412

    def test_env_override(self, temp_config_file: Path):
        with patch.dict(os.environ, {"ROTATV_PORT": "9999", "ROTATV_CHAT_TRANSPORT": "twitch"}):
            config = load_config(str(temp_config_file))

        assert config.server.port == 9999
        assert config.chat.transport == "twitch"

    def test_env_bool_override(self, temp_config_file: Path):
        with patch.dict(os.environ, {"ROTATV_SERVER_ENABLED": "false", "ROTATV_VOTING_ENABLED": "yes"}):
            config = load_config(str(temp_config_file))

        assert config.server.enabled is False
        assert config.voting.enabled is True

    def test_numeric_env_value_for_string_field(self, temp_config_file: Path):
        env = {
            "ROTATV_OBS_PASSWORD": "123456",
            "ROTATV_CHAT_BOT_ID": "987654321",
            "ROTATV_CHAT_CHANNEL": "1234",
        }
        with patch.dict(os.environ, env):
            config = load_config(str(temp_config_file))

        assert config.presenter.password == "123456"
        assert config.chat.bot_id == "987654321"
        assert config.chat.channel == "1234"

    def test_invalid_env_number(self, temp_config_file: Path):
        with patch.dict(os.environ, {"ROTATV_PORT": "not-a-port"}):
            with pytest.raises(ValidationError):
                load_config(str(temp_config_file))

    def test_get_config_returns_loaded(self, temp_config_file: Path):
        loaded = load_config(str(temp_config_file))

        assert get_config() is loaded

    def test_reload_config(self, temp_config_file: Path, monkeypatch):
        monkeypatch.chdir(temp_config_file.parent)
        load_config(str(temp_config_file))

        temp_config_file.write_text("server:\n  port: 9200\n")
        config = reload_config()

        assert config.server.port == 9200
