"""
Configuration management for rotatv.

Handles loading, validation, and access to application configuration.
"""

import os
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field

# Global configuration instance
_config: Optional["RotaTVConfig"] = None


class ServerConfig(BaseModel):
    """Status API server configuration."""
    enabled: bool = True
    host: str = "127.0.0.1"
    port: int = 8412
    log_level: str = "INFO"


class ChatConfig(BaseModel):
    """Chat transport and command configuration."""
    transport: str = "console"  # console, twitch
    channel: str = "#rotatv"
    control_room: Optional[str] = None  # Extra channel joined for admin commands
    client_id: str = ""
    client_secret: str = ""
    bot_id: str = ""  # Twitch user id of the bot account
    token: str = ""
    refresh_token: str = ""
    prefix: str = "!"
    admins: list[str] = Field(default_factory=list)
    ignored_users: list[str] = Field(default_factory=list)
    default_user_cooldown: int = Field(default=5, ge=0)  # Seconds per user per command
    skip_vote_threshold: int = Field(default=2, ge=1)
    connect_timeout: float = 30.0


class PresenterConfig(BaseModel):
    """Presenter (scene control) configuration."""
    kind: str = "logging"  # logging, obs
    url: str = "ws://localhost:4455"
    password: str = ""
    default_scene: str = "rotation"
    commercial_scene: str = "commercials"
    special_overlay_item: Optional[str] = None  # Shown on top of the special interstitial
    fallback_item: str = "room-grind"
    activity_item: Optional[str] = None  # Text source showing the current label
    request_timeout: float = 10.0


class RotationConfig(BaseModel):
    """Main rotation policy knobs."""
    catalog_file: str = "catalog.yaml"
    initial_queue_size: int = Field(default=3, ge=0)
    recently_played_memory: int = Field(default=10, ge=0)
    commercials_enabled: bool = True
    commercial_interval: int = Field(default=1800, ge=0)  # Seconds between interstitials
    special_chance: int = Field(default=5, ge=0, le=100)  # Percent
    room_grind_chance: int = Field(default=0, ge=0, le=100)  # Percent
    room_grind_playtime: int = Field(default=600, ge=1)  # Seconds
    room_shuffle_chance: int = Field(default=0, ge=0, le=100)  # Percent
    room_playtime: int = Field(default=300, ge=1)  # Seconds a room clip loops for
    retry_delay_seconds: int = Field(default=30, ge=1)


class VotingConfig(BaseModel):
    """Audience voting configuration."""
    enabled: bool = True
    poll_interval_minutes: int = Field(default=15, ge=1)
    poll_size: int = Field(default=3, ge=1)
    reminder_interval_seconds: int = Field(default=300, ge=1)


class AnnouncementConfig(BaseModel):
    """A repeating chat announcement toggled with the timer command."""
    name: str
    message: str
    interval: int = Field(default=600, ge=1)


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: str = "INFO"
    file: str = "logs/rotatv.log"
    max_size: str = "10MB"
    backup_count: int = 5
    to_file: bool = True
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class RotaTVConfig(BaseModel):
    """Main rotatv configuration."""
    server: ServerConfig = Field(default_factory=ServerConfig)
    chat: ChatConfig = Field(default_factory=ChatConfig)
    presenter: PresenterConfig = Field(default_factory=PresenterConfig)
    rotation: RotationConfig = Field(default_factory=RotationConfig)
    voting: VotingConfig = Field(default_factory=VotingConfig)
    announcements: list[AnnouncementConfig] = Field(default_factory=list)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def load_config(config_path: Optional[str] = None) -> RotaTVConfig:
    """
    Load configuration from file.

    Args:
        config_path: Path to config file. Defaults to config.yaml in project root.

    Returns:
        Loaded and validated configuration.
    """
    global _config

    if config_path is None:
        # Look for config.yaml in current directory or project root
        possible_paths = [
            Path("config.yaml"),
            Path(__file__).parent.parent / "config.yaml",
        ]
        for path in possible_paths:
            if path.exists():
                config_path = str(path)
                break

    config_data: dict[str, Any] = {}

    if config_path and Path(config_path).exists():
        with open(config_path) as f:
            config_data = yaml.safe_load(f) or {}

    # Apply environment variable overrides
    env_overrides = _get_env_overrides()
    _deep_merge(config_data, env_overrides)

    _config = RotaTVConfig(**config_data)
    return _config


def get_config() -> RotaTVConfig:
    """
    Get the current configuration.

    Returns:
        Current configuration (loads default if not yet loaded).
    """
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reload_config() -> RotaTVConfig:
    """
    Reload configuration from disk.

    Returns:
        Freshly loaded configuration.
    """
    global _config
    _config = None
    return load_config()


def _get_env_overrides() -> dict[str, Any]:
    """Get configuration overrides from environment variables."""
    overrides: dict[str, Any] = {}

    # Map of environment variables to config paths
    env_map = {
        "ROTATV_HOST": ("server", "host"),
        "ROTATV_PORT": ("server", "port"),
        "ROTATV_SERVER_ENABLED": ("server", "enabled"),
        "ROTATV_CHAT_TRANSPORT": ("chat", "transport"),
        "ROTATV_CHAT_CHANNEL": ("chat", "channel"),
        "ROTATV_CHAT_CLIENT_ID": ("chat", "client_id"),
        "ROTATV_CHAT_CLIENT_SECRET": ("chat", "client_secret"),
        "ROTATV_CHAT_BOT_ID": ("chat", "bot_id"),
        "ROTATV_CHAT_TOKEN": ("chat", "token"),
        "ROTATV_CHAT_REFRESH_TOKEN": ("chat", "refresh_token"),
        "ROTATV_PRESENTER_KIND": ("presenter", "kind"),
        "ROTATV_OBS_URL": ("presenter", "url"),
        "ROTATV_OBS_PASSWORD": ("presenter", "password"),
        "ROTATV_CATALOG_FILE": ("rotation", "catalog_file"),
        "ROTATV_VOTING_ENABLED": ("voting", "enabled"),
    }

    # Values stay strings; pydantic converts them for int and bool fields
    for env_var, path in env_map.items():
        value = os.environ.get(env_var)
        if value is not None:
            _set_nested(overrides, path, value)

    return overrides


def _set_nested(d: dict[str, Any], path: tuple[str, ...], value: Any) -> None:
    """Set a nested dictionary value from a path tuple."""
    for key in path[:-1]:
        d = d.setdefault(key, {})
    d[path[-1]] = value


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> None:
    """Deep merge override into base dictionary."""
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
