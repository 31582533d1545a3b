"""Configuration loader with YAML and environment variable support.

This module reads ~/.config/logseq-bridge/config.yaml and lets environment
variables override it.

Environment variables:
- LOGSEQ_BRIDGE_CONFIG: Alternative config file path
- LOGSEQ_ENDPOINT: Override logseq.endpoint
- LOGSEQ_TOKEN: Override logseq.token
"""

import os
import stat
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import ValidationError

from logseq_bridge.models.config import Configuration
from logseq_bridge.services.exceptions import GuidanceError


def default_config_path() -> Path:
    """Config path from LOGSEQ_BRIDGE_CONFIG, else ~/.config/logseq-bridge/config.yaml."""
    if env_path := os.getenv("LOGSEQ_BRIDGE_CONFIG"):
        return Path(env_path).expanduser()
    return Path.home() / ".config" / "logseq-bridge" / "config.yaml"


def load_config(config_path: Optional[Path] = None) -> Configuration:
    """Load configuration from YAML file with environment variable overrides.

    A missing file is not an error: defaults plus environment variables are
    used. Whether a token is required is decided by the caller
    (Configuration.require_token()).

    Args:
        config_path: Path to config file. If None, uses default_config_path()

    Returns:
        Validated Configuration object

    Raises:
        PermissionError: If a file holding a token is group/world accessible
        GuidanceError: If the file is not valid YAML or fails validation
    """
    if config_path is None:
        config_path = default_config_path()

    data: Dict[str, Any] = {}
    if config_path.exists():
        with config_path.open() as f:
            try:
                data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise GuidanceError(f"Config file {config_path} is not valid YAML: {e}") from e
        if not isinstance(data, dict):
            raise GuidanceError(f"Config file {config_path} must contain a mapping")
        _check_permissions(config_path, data)

    data = _apply_env_overrides(data)

    try:
        return Configuration(**data)
    except ValidationError as e:
        raise GuidanceError(f"Invalid configuration in {config_path}:\n{e}") from e


def _check_permissions(path: Path, data: Dict[str, Any]) -> None:
    """Refuse a token-bearing config file that other users can read."""
    logseq = data.get("logseq") or {}
    if not isinstance(logseq, dict) or not logseq.get("token"):
        return

    mode = os.stat(path).st_mode
    if mode & (stat.S_IRWXG | stat.S_IRWXO):
        raise PermissionError(
            f"Config file has overly permissive permissions: {oct(mode)}\n"
            f"Run: chmod 600 {path}"
        )


def _apply_env_overrides(data: Dict[str, Any]) -> Dict[str, Any]:
    """Apply environment variable overrides to configuration data.

    Args:
        data: Base configuration dictionary from YAML

    Returns:
        Configuration dictionary with environment overrides applied
    """
    if not isinstance(data.get("logseq"), dict):
        data["logseq"] = {}

    if env_endpoint := os.getenv("LOGSEQ_ENDPOINT"):
        data["logseq"]["endpoint"] = env_endpoint

    if env_token := os.getenv("LOGSEQ_TOKEN"):
        data["logseq"]["token"] = env_token

    if data.get("filters") is None:
        data.pop("filters", None)

    return data
