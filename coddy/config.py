#!/usr/bin/env python3
"""
Configuration management for Coddy.
Handles the model backend settings and learner preferences in local storage.
"""

import os
import json
import logging
from pathlib import Path
from typing import Optional, Dict, Any

from .errors import ConfigError

logger = logging.getLogger(__name__)


DEFAULTS: Dict[str, Any] = {
    'ollama_url': 'http://localhost:11434',
    'ollama_model': 'qwen2.5-coder:7b',
    'request_timeout': 120.0,   # seconds per generation attempt
    'retry_delay': 1.0,         # seconds between transport retries
    'max_attempts': 3,          # wrong answers before a lesson is skipped
    'profile': 'default',
}

# Environment variables that override the config file
ENV_VARS = {
    'ollama_url': 'OLLAMA_URL',
    'ollama_model': 'OLLAMA_MODEL',
    'request_timeout': 'CODDY_TIMEOUT',
    'retry_delay': 'CODDY_RETRY_DELAY',
    'max_attempts': 'CODDY_MAX_ATTEMPTS',
    'profile': 'CODDY_PROFILE',
}

# Smallest usable value for numeric settings
MINIMUMS = {
    'request_timeout': 1.0,
    'retry_delay': 0.0,
    'max_attempts': 1,
}


def get_config_dir() -> Path:
    """Get the Coddy config directory (~/.coddy, or $CODDY_HOME)"""
    override = os.getenv('CODDY_HOME')
    config_dir = Path(override) if override else Path.home() / '.coddy'
    config_dir.mkdir(parents=True, exist_ok=True)
    return config_dir


def get_config_path() -> Path:
    """Get the config file path"""
    return get_config_dir() / 'config.json'


def load_config() -> Dict[str, Any]:
    """Load configuration from file"""
    config_path = get_config_path()
    if config_path.exists():
        try:
            with open(config_path, 'r') as f:
                return json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            logger.warning("Ignoring unreadable config %s: %s", config_path, e)
            return {}
    return {}


def save_config(config: Dict[str, Any]) -> None:
    """Save configuration to file"""
    config_path = get_config_path()
    with open(config_path, 'w') as f:
        json.dump(config, f, indent=2)
    # Secure the file (read/write only for owner)
    config_path.chmod(0o600)


def get_config_value(key: str, default: Any = None) -> Any:
    """Get a specific config value"""
    config = load_config()
    return config.get(key, default)


def set_config_value(key: str, value: Any) -> None:
    """Set a specific config value"""
    config = load_config()
    config[key] = value
    save_config(config)


def get_setting(key: str) -> Any:
    """
    Resolve a setting.

    Priority:
    1. Environment variable (see ENV_VARS)
    2. Config file
    3. Built-in default

    Values are coerced to the type of the default.

    Raises:
        KeyError: unknown setting name.
        ConfigError: the value cannot be coerced or is below its minimum.
    """
    if key not in DEFAULTS:
        raise KeyError(f"Unknown setting: {key}")

    default = DEFAULTS[key]
    env_var = ENV_VARS.get(key)
    raw = os.getenv(env_var) if env_var else None
    if raw is None or raw == '':
        raw = get_config_value(key)
    if raw is None:
        return default

    source = env_var if env_var and os.getenv(env_var) else f"'{key}' in {get_config_path()}"
    try:
        value = type(default)(raw)
    except (TypeError, ValueError):
        raise ConfigError(f"Invalid value {raw!r} for {source}: expected {type(default).__name__}") from None

    minimum = MINIMUMS.get(key)
    if minimum is not None and value < minimum:
        raise ConfigError(f"Invalid value {raw!r} for {source}: must be at least {minimum}")
    return value


def prompt_for_backend(models: Optional[list] = None) -> Optional[Dict[str, Any]]:
    """
    Interactively configure the Ollama backend and save it.

    Args:
        models: Installed model names to offer, if the backend could be listed.

    Returns:
        The saved settings, or None if the user cancels.
    """
    print("\n" + "=" * 60)
    print("Model Backend Setup")
    print("=" * 60)
    print("\nCoddy generates lessons with a local Ollama model.")
    print("Install Ollama from https://ollama.com and run 'ollama serve'.\n")

    try:
        current_url = get_setting('ollama_url')
        url = input(f"Ollama URL [{current_url}]: ").strip() or current_url

        current_model = get_setting('ollama_model')
        if models:
            print("\nInstalled models:")
            for i, name in enumerate(models, 1):
                print(f"  {i}. {name}")
            choice = input(f"\nChoose model [1-{len(models)}] or type a name [{current_model}]: ").strip()
            if choice.isdigit() and 1 <= int(choice) <= len(models):
                model = models[int(choice) - 1]
            else:
                model = choice or current_model
        else:
            model = input(f"Model name [{current_model}]: ").strip() or current_model

    except (KeyboardInterrupt, EOFError):
        print("\nCancelled.")
        return None

    set_config_value('ollama_url', url)
    set_config_value('ollama_model', model)
    print(f"\nSaved to {get_config_path()}")
    return {'ollama_url': url, 'ollama_model': model}
