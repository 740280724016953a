"""
Bridge Configuration
====================
Immutable process-wide configuration loaded once from a JSON file.
"""

import json
import os
from pathlib import Path
from typing import Any, Optional, Tuple, Union

import structlog
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, model_validator

logger = structlog.get_logger(__name__)

DEFAULT_CONFIG_PATH = "/etc/telegram-smpp/conf.json"
CONFIG_PATH_ENV = "SMPP_BRIDGE_CONFIG"

# Debug verbosity tiers: lower is louder
DEBUG_FULL = 1
DEBUG_REQUESTS = 2


class ConfigError(Exception):
    """Raised when the configuration file cannot be read or validated."""
    pass


def _alias(name: str) -> AliasChoices:
    # Keys are lower-cased before validation, see BridgeConfig.fold_keys
    return AliasChoices(name.lower())


class BridgeConfig(BaseModel):
    """Configuration for the SMPP to Telegram bridge."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    name: str = Field(default="telegram-smpp", validation_alias=_alias("name"))
    bot_id: str = Field(default="", validation_alias=_alias("botid"))
    bot_key: str = Field(default="", validation_alias=_alias("botkey"))
    chat_type: str = Field(default="", validation_alias=_alias("chattype"))
    chat_id: str = Field(default="", validation_alias=_alias("chatid"))
    chat_topic: str = Field(default="", validation_alias=_alias("chattopic"))
    address: str = Field(default="127.0.0.1:8080", validation_alias=_alias("address"))
    smpp: str = Field(default="localhost:2775", validation_alias=_alias("smpp"))
    username: str = Field(default="", validation_alias=_alias("username"))
    password: str = Field(default="", validation_alias=_alias("password"))
    debug: int = Field(default=0, validation_alias=_alias("debug"))

    api_base: str = Field(default="https://api.telegram.org", validation_alias=_alias("apibase"))
    relay_timeout: float = Field(default=10.0, gt=0, validation_alias=_alias("relaytimeout"))
    rate_limit: float = Field(default=10.0, gt=0, validation_alias=_alias("ratelimit"))
    rate_burst: int = Field(default=1, ge=1, validation_alias=_alias("rateburst"))

    @model_validator(mode="before")
    @classmethod
    def fold_keys(cls, data: Any) -> Any:
        # conf.json keys match case-insensitively: "Botid", "BotID", "botid"
        if isinstance(data, dict):
            return {k.lower() if isinstance(k, str) else k: v for k, v in data.items()}
        return data

    @property
    def topic_mode(self) -> bool:
        return self.chat_type == "topic"

    @property
    def log_messages(self) -> bool:
        """Whether raw inbound messages and decoded fields are logged."""
        return self.debug <= DEBUG_FULL

    @property
    def log_requests(self) -> bool:
        """Whether outgoing relay requests are logged."""
        return self.debug <= DEBUG_REQUESTS

    @property
    def listen_address(self) -> Tuple[str, int]:
        return split_address(self.address, default_host="0.0.0.0")

    @property
    def smpp_address(self) -> Tuple[str, int]:
        return split_address(self.smpp, default_host="localhost")


def split_address(address: str, default_host: str = "localhost") -> Tuple[str, int]:
    """
    Split a ``host:port`` string.

    An empty host (``":8080"``) maps to ``default_host``.
    """
    host, sep, port = address.rpartition(":")
    if not sep or not port.isdigit():
        raise ConfigError(f"Invalid address {address!r}, expected host:port")
    return host.strip("[]") or default_host, int(port)


def load_config(path: Optional[Union[str, Path]] = None) -> BridgeConfig:
    """
    Load configuration from a JSON file.

    Args:
        path: Explicit file path. Falls back to the ``SMPP_BRIDGE_CONFIG``
            environment variable, then to ``/etc/telegram-smpp/conf.json``.

    Returns:
        Frozen BridgeConfig

    Raises:
        ConfigError: file missing, unreadable, not JSON, or invalid values
    """
    config_path = Path(path or os.getenv(CONFIG_PATH_ENV, DEFAULT_CONFIG_PATH))

    try:
        raw = json.loads(config_path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigError(f"Can't read config {config_path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"Config {config_path} is not valid JSON: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigError(f"Config {config_path} must contain a JSON object")

    try:
        config = BridgeConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigError(f"Invalid config {config_path}: {e}") from e

    # Both addresses must parse
    for address in (config.address, config.smpp):
        split_address(address)

    logger.info(
        "Configuration loaded",
        program=config.name,
        bot_id=config.bot_id,
        chat_id=config.chat_id,
        listen_address=config.address,
        smpp_address=config.smpp,
    )
    return config
