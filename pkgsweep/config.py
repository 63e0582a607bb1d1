#!/usr/bin/env python3

import os
import json
import tomllib
from pathlib import Path

import logging
import sys

logger = logging.getLogger(__name__)


def get_config_path():
    """Get the path to the configuration file.

    Checks in order:
    1. PKGSWEEP_CONFIG environment variable
    2. ~/.pkgsweep/ directory
    """
    # Check for environment variable override
    if 'PKGSWEEP_CONFIG' in os.environ:
        path = Path(os.environ['PKGSWEEP_CONFIG'])
        if path.exists():
            return path

    config_dir = Path.home() / '.pkgsweep'
    for filename in ['config.json', 'config.toml', 'config.yaml', 'config.yml']:
        path = config_dir / filename
        if path.exists() and path.stat().st_size > 10:  # Not empty/trivial
            return path

    # If no file exists, return default path for saving
    return config_dir / 'config.json'


def load_config():
    """Load configuration from file."""
    config_path = get_config_path()

    # Start with default config
    config = get_default_config()

    # Load from file if it exists
    if config_path.exists():
        try:
            if config_path.suffix.lower() in ['.toml']:
                with open(config_path, 'rb') as f:
                    file_config = tomllib.load(f)
            elif config_path.suffix.lower() in ['.yaml', '.yml']:
                import yaml
                with open(config_path, 'r') as f:
                    file_config = yaml.safe_load(f) or {}
            else:
                # Default to JSON format
                with open(config_path, 'r') as f:
                    file_config = json.load(f)

            # Merge file config with defaults
            config = merge_configs(config, file_config)
        except Exception as e:
            logger.error(f"Error loading config from {config_path}: {e}")

    # Apply environment variable overrides
    config = apply_env_overrides(config)

    return config


def save_config(config):
    """Save configuration to file."""
    config_path = get_config_path()

    try:
        # Create directory if it doesn't exist
        config_path.parent.mkdir(parents=True, exist_ok=True)

        if config_path.suffix.lower() in ['.toml']:
            # tomllib is read-only
            import toml
            with open(config_path, 'w') as f:
                toml.dump(config, f)
        elif config_path.suffix.lower() in ['.yaml', '.yml']:
            import yaml
            with open(config_path, 'w') as f:
                yaml.safe_dump(config, f, default_flow_style=False)
        else:
            # Default to JSON format
            with open(config_path, 'w') as f:
                json.dump(config, f, indent=2)

        logger.info(f"Configuration saved to {config_path}")
    except Exception as e:
        logger.error(f"Error saving config to {config_path}: {e}")


def get_default_config():
    """Get default configuration."""
    return {
        "github": {
            "client_id": "",
            "client_secret": "",
            "api_url": "https://api.github.com",
            "timeout_seconds": 30,
            "forbidden_backoff_seconds": 60
        },
        "rate_limit": {
            # 5000 requests/hour
            "authenticated": {
                "capacity": 10,
                "interval_seconds": 0.72
            },
            # 60 requests/hour
            "unauthenticated": {
                "capacity": 1,
                "interval_seconds": 60
            }
        },
        "batch": {
            "workers": 8
        },
        "logging": {
            "level": "INFO",
            "format": "%(levelname)s: %(message)s"
        }
    }


def merge_configs(base_config, override_config):
    """
    Recursively merge two configuration dictionaries.

    Args:
        base_config (dict): Base configuration
        override_config (dict): Configuration to merge/override with

    Returns:
        dict: Merged configuration
    """
    merged = base_config.copy()

    for key, value in override_config.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            # Recursively merge nested dictionaries
            merged[key] = merge_configs(merged[key], value)
        else:
            # Override or add new key
            merged[key] = value

    return merged


def apply_env_overrides(config):
    """
    Apply environment variable overrides to configuration.
    Environment variables follow the pattern: PKGSWEEP_SECTION_SUBSECTION_KEY
    For example: PKGSWEEP_BATCH_WORKERS=4 or PKGSWEEP_GITHUB_CLIENT_ID=abc
    """
    env_prefix = "PKGSWEEP_"

    for env_key, value in os.environ.items():
        if not env_key.startswith(env_prefix) or env_key == "PKGSWEEP_CONFIG":
            continue

        key_parts = env_key[len(env_prefix):].lower().split('_')

        # Convert value
        if value.lower() in ('true', 'yes', 'on'):
            typed_value = True
        elif value.lower() in ('false', 'no', 'off'):
            typed_value = False
        elif value.isdigit():
            typed_value = int(value)
        else:
            typed_value = value

        current_level = config
        i = 0
        while i < len(key_parts):
            # Find the longest key in current_level that is a prefix of the remaining key_parts
            best_match_len = 0
            matched_key = None

            for config_key in current_level.keys():
                config_key_parts_from_key = config_key.split('_')
                if key_parts[i : i + len(config_key_parts_from_key)] == config_key_parts_from_key:
                    if len(config_key_parts_from_key) > best_match_len:
                        best_match_len = len(config_key_parts_from_key)
                        matched_key = config_key

            if matched_key:
                # If we are at the end of the env var, we have found the key to set
                if i + best_match_len == len(key_parts):
                    current_level[matched_key] = typed_value
                    break

                # Otherwise, we descend into the dictionary
                if isinstance(current_level[matched_key], dict):
                    current_level = current_level[matched_key]
                    i += best_match_len
                else:
                    # Path conflict, e.g., env var is longer but we found a non-dict value
                    break
            else:
                # No match found
                break

    return config


def configure_logging(config, verbose=False, log_file=None):
    """
    Configure logging for command line runs.

    Console output goes to stderr so stdout stays clean for package paths.
    When `log_file` is given, records are also appended to that file.

    Returns:
        The file handler, if one was added
    """
    log_config = config.get("logging", {})
    level = logging.DEBUG if verbose else getattr(logging, str(log_config.get("level", "INFO")).upper(), logging.INFO)
    fmt = log_config.get("format", "%(levelname)s: %(message)s")

    logging.basicConfig(
        level=level,
        format=fmt,
        handlers=[
            logging.StreamHandler(sys.stderr)  # Default to stderr
        ],
        force=True,
    )

    if not log_file:
        return None

    handler = logging.FileHandler(log_file, mode='a', encoding='utf-8')
    handler.setFormatter(logging.Formatter("%(asctime)s %(message)s"))
    handler.setLevel(level)
    logging.getLogger("pkgsweep").addHandler(handler)
    return handler
