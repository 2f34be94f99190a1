"""
gptbridge Configuration Loader

Loads configuration from:
1. Environment variables (.env)
2. config.yml (YAML file)
3. Default values

Environment variables take precedence over YAML values. Nested values use the
GPTBRIDGE_ prefix and double underscores, e.g. GPTBRIDGE_SESSION__MAX_IDLE_TIME=600.
The common variable names (GPT_TRAINER_API_KEY, MCP_SERVER_URL, ...) are
accepted as well.
"""

import logging
import os
from pathlib import Path
from typing import Dict, List, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

from gptbridge.core import constants
from gptbridge.core.errors import ConfigurationError

logger = logging.getLogger(__name__)

# Load .env file
load_dotenv()

ENV_PREFIX = "GPTBRIDGE_"

# Plain environment names mapped to (section, key)
ENV_ALIASES: Dict[str, tuple] = {
    "GPT_TRAINER_API_KEY": ("gpt_trainer", "api_key"),
    "GPT_TRAINER_CHATBOT_UUID": ("gpt_trainer", "chatbot_uuid"),
    "GPT_TRAINER_API_URL": ("gpt_trainer", "base_url"),
    "MCP_SERVER_URL": ("automation", "base_url"),
    "MCP_API_KEY": ("automation", "api_key"),
    "LOG_LEVEL": ("system", "log_level"),
    "NODE_ENV": ("system", "environment"),
}


# =============================================================================
# Pydantic Configuration Models
# =============================================================================

class SystemConfig(BaseModel):
    """System-level configuration."""
    environment: str = "development"
    log_level: str = "INFO"
    log_file: Optional[Path] = None


class GPTTrainerConfig(BaseModel):
    """GPT-trainer API configuration."""
    api_key: str = ""
    chatbot_uuid: str = ""
    base_url: str = "https://app.gpt-trainer.com"
    http_timeout: float = constants.DEFAULT_HTTP_TIMEOUT


class AutomationConfig(BaseModel):
    """Automation (MCP) server configuration."""
    base_url: str = "http://localhost:3001"
    api_key: str = ""
    timeout: float = 30.0
    retry_count: int = constants.DEFAULT_RETRY_COUNT
    retry_delay: float = constants.DEFAULT_RETRY_DELAY
    poll_interval: float = constants.DEFAULT_POLL_INTERVAL
    max_wait: float = constants.DEFAULT_MAX_WAIT


class SessionConfig(BaseModel):
    """Session lifecycle configuration (seconds)."""
    max_idle_time: float = constants.DEFAULT_MAX_IDLE_TIME
    cleanup_interval: float = constants.DEFAULT_CLEANUP_INTERVAL


class ChatConfig(BaseModel):
    """Chat presentation configuration."""
    thinking_message: str = "Thinking..."
    error_title: str = "Error"
    error_message: str = "Something went wrong. Please try again."
    max_message_length: int = 40000
    show_citations: bool = True
    bot_user_id: Optional[str] = None


class RateLimitConfig(BaseModel):
    """Rate limit values. Informational, not enforced."""
    max_requests_per_minute: int = 50
    max_requests_per_hour: int = 1000
    cooldown_period_seconds: int = 60


class Config(BaseModel):
    """Main configuration container."""
    system: SystemConfig = Field(default_factory=SystemConfig)
    gpt_trainer: GPTTrainerConfig = Field(default_factory=GPTTrainerConfig)
    automation: AutomationConfig = Field(default_factory=AutomationConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)
    chat: ChatConfig = Field(default_factory=ChatConfig)
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)

    @property
    def is_production(self) -> bool:
        return self.system.environment == "production"


# =============================================================================
# Configuration Loading
# =============================================================================

def find_config_file() -> Optional[Path]:
    """Find the config.yml file, searching up the directory tree."""
    current = Path(__file__).parent

    # Search up to 5 levels
    for _ in range(5):
        config_path = current / "config.yml"
        if config_path.exists():
            return config_path
        current = current.parent

    cwd_config = Path.cwd() / "config.yml"
    if cwd_config.exists():
        return cwd_config

    return None


def load_yaml_config(config_path: Path) -> dict:
    """Load configuration from YAML file."""
    try:
        with open(config_path, "r") as f:
            return yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Could not load config from {config_path}: {e}")
        return {}


def _parse_env_value(value: str):
    """Parse environment variable value to appropriate type."""
    if value.lower() in ("true", "yes"):
        return True
    if value.lower() in ("false", "no"):
        return False

    try:
        return int(value)
    except ValueError:
        pass

    try:
        return float(value)
    except ValueError:
        pass

    return value


def _set_nested(config_dict: dict, section: str, key: str, value) -> None:
    if not isinstance(config_dict.get(section), dict):
        config_dict[section] = {}
    config_dict[section][key] = value


def apply_env_overrides(config_dict: dict, environ: Optional[Dict[str, str]] = None) -> dict:
    """Apply environment variable overrides to config dictionary.

    Aliases are applied first so that an explicit GPTBRIDGE_ variable wins.
    String-typed secrets are kept as strings.

    Args:
        config_dict: Configuration loaded from YAML
        environ: Environment mapping (default: os.environ)

    Returns:
        The updated configuration dictionary
    """
    environ = os.environ if environ is None else environ

    for env_key, (section, setting) in ENV_ALIASES.items():
        value = environ.get(env_key)
        if value:
            _set_nested(config_dict, section, setting, value)

    for key, value in environ.items():
        if not key.startswith(ENV_PREFIX):
            continue

        parts = key[len(ENV_PREFIX):].lower().split("__")
        if len(parts) != 2:
            logger.debug(f"Ignoring unrecognized config variable: {key}")
            continue

        section, setting = parts
        parsed = value if setting in ("api_key", "chatbot_uuid", "bot_user_id") else _parse_env_value(value)
        _set_nested(config_dict, section, setting, parsed)

    return config_dict


def load_config(config_path: Optional[Path] = None) -> Config:
    """Load configuration from YAML file and environment variables.

    Args:
        config_path: Explicit YAML file (default: search for config.yml)

    Returns:
        Config: Validated configuration object
    """
    config_path = config_path or find_config_file()
    config_dict = load_yaml_config(config_path) if config_path else {}
    config_dict = apply_env_overrides(config_dict)
    return Config(**config_dict)


def validate_config(config: Config) -> None:
    """Check that the values needed to talk to GPT-trainer are present.

    Raises:
        ConfigurationError: Listing every missing value
    """
    missing: List[str] = []
    if not config.gpt_trainer.api_key:
        missing.append("GPT_TRAINER_API_KEY")
    if not config.gpt_trainer.chatbot_uuid:
        missing.append("GPT_TRAINER_CHATBOT_UUID")

    if missing:
        message = f"Missing required configuration: {', '.join(missing)}"
        logger.error(message)
        raise ConfigurationError(message)

    if config.session.cleanup_interval <= 0 or config.session.max_idle_time <= 0:
        raise ConfigurationError("Session max_idle_time and cleanup_interval must be positive")

