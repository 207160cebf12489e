"""Configuration management for gpt-cli.

Settings come from built-in defaults, then ~/.config/gpt-cli/config.{yml,yaml,json},
then GPT_CLI_* environment variables. Command-line flags are applied on top by
the caller.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

import yaml

from gptcli.providers.base import build_provider_options

logger = logging.getLogger(__name__)

DEFAULT_PROVIDER = "copilot"
DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_TEMPERATURE = 0.6
DEFAULT_SYSTEM = (
    "You are an AI assistant called via CLI. Respond concisely and clearly, "
    "focusing only on the user's prompt. Include only very brief explanations "
    "unless explicitly asked."
)

CONFIG_FILENAMES = ("config.yml", "config.yaml", "config.json")

_TRUE_VALUES = {"1", "t", "true", "yes", "on"}
_FALSE_VALUES = {"0", "f", "false", "no", "off"}


class CliConfig:
    """Configuration container for gpt-cli settings.

    All settings have sensible defaults; every attribute may be overridden
    by the config file, the environment or the command line.
    """

    def __init__(self):
        # Provider settings
        self.provider: str = DEFAULT_PROVIDER  # openai, copilot, gemini, simulated
        self.model: str = DEFAULT_MODEL
        self.temperature: float = DEFAULT_TEMPERATURE
        self.system: str = DEFAULT_SYSTEM

        # Resolved credentials for the selected provider
        self.api_key: Optional[str] = None
        self.base_url: Optional[str] = None

        # Per-provider credential blocks from the config file
        self.providers: dict[str, dict[str, str]] = {}

        # Display settings
        self.markdown: bool = True
        self.stream: bool = True
        self.verbose: bool = False

        # Custom settings (anything else found in the config file)
        self._custom: dict[str, Any] = {}

    def set(self, key: str, value: Any) -> None:
        """Set a custom configuration value."""
        self._custom[key] = value

    def get(self, key: str, default: Any = None) -> Any:
        """Get a custom configuration value."""
        return self._custom.get(key, default)

    def apply_provider_credentials(self) -> None:
        """Resolve api_key/base_url for the selected provider.

        The provider's block in the config file is read first; environment
        variables such as OPENAI_API_KEY take precedence over it.
        """
        provider = (self.provider or "").lower()
        block = self.providers.get(provider) or {}
        self.api_key = block.get("api_key") or None
        self.base_url = block.get("base_url") or None

        env = build_provider_options(provider)
        if env.api_key:
            self.api_key = env.api_key
        if env.base_url:
            self.base_url = env.base_url


def get_config_path() -> Path:
    """Get the path to the user's config directory."""
    config_home = os.environ.get("XDG_CONFIG_HOME")
    if config_home:
        return Path(config_home) / "gpt-cli"
    return Path.home() / ".config" / "gpt-cli"


def find_config_file() -> Path | None:
    """Return the first existing config file, YAML before JSON."""
    config_dir = get_config_path()
    for name in CONFIG_FILENAMES:
        path = config_dir / name
        if path.is_file():
            return path
    return None


def load_config_file(path: Path) -> dict[str, Any]:
    """Parse a YAML or JSON config file into a dict."""
    with open(path, "r") as f:
        if path.suffix in (".yml", ".yaml"):
            data = yaml.safe_load(f)
        elif path.suffix == ".json":
            data = json.load(f)
        else:
            raise ValueError(f"unsupported config file format: {path.suffix}")

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"{path} must contain a mapping at the top level")
    return data


def parse_bool(value: str) -> bool:
    """Parse a boolean from an environment-style string."""
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"invalid boolean: {value!r}")


def apply_file_config(config: CliConfig, data: dict[str, Any]) -> None:
    """Copy recognized keys from a parsed config file onto *config*."""
    for key, value in data.items():
        if key in ("provider", "model", "system"):
            if value:
                setattr(config, key, str(value))
        elif key == "temperature":
            config.temperature = float(value)
        elif key in ("markdown", "stream", "verbose"):
            if isinstance(value, str):
                value = parse_bool(value)
            setattr(config, key, bool(value))
        elif key == "providers":
            if not isinstance(value, dict):
                raise ValueError("'providers' must be a mapping")
            for name, block in value.items():
                if isinstance(block, dict):
                    config.providers[str(name).lower()] = {
                        k: str(v) for k, v in block.items() if v is not None
                    }
        else:
            config.set(key, value)


def apply_env_config(config: CliConfig) -> None:
    """Apply GPT_CLI_* environment variables; unparsable values are ignored."""
    for var, attr in (
        ("GPT_CLI_PROVIDER", "provider"),
        ("GPT_CLI_MODEL", "model"),
        ("GPT_CLI_SYSTEM", "system"),
    ):
        value = os.environ.get(var)
        if value:
            setattr(config, attr, value)

    value = os.environ.get("GPT_CLI_TEMPERATURE")
    if value:
        try:
            config.temperature = float(value)
        except ValueError:
            logger.warning("Ignoring GPT_CLI_TEMPERATURE=%r", value)

    for var, attr in (("GPT_CLI_VERBOSE", "verbose"), ("GPT_CLI_MARKDOWN", "markdown")):
        value = os.environ.get(var)
        if value:
            try:
                setattr(config, attr, parse_bool(value))
            except ValueError:
                logger.warning("Ignoring %s=%r", var, value)


def load_config() -> tuple[CliConfig, Optional[str]]:
    """Load configuration from defaults, the config file and the environment.

    Returns:
        A tuple of (config, error_message). If the config file cannot be
        parsed, error_message describes the failure and the remaining
        sources are still applied.
    """
    config = CliConfig()
    error: Optional[str] = None

    path = find_config_file()
    if path is not None:
        try:
            apply_file_config(config, load_config_file(path))
            logger.debug("Loaded config from %s", path)
        except (OSError, TypeError, ValueError, yaml.YAMLError) as e:
            error = f"Error loading config from {path}: {e}"
            logger.warning("%s", error)

    apply_env_config(config)
    config.apply_provider_credentials()
    return config, error
