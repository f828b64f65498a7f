"""
bvh-stream Configuration
========================

This module handles configuration loading for the motion line server.

Configuration Sources (in order of precedence):
    1. Command line arguments (highest priority)
    2. Environment variables
    3. YAML config file (--config)
    4. Default values (lowest priority)

Environment Variable Mapping:
    BVHSTREAM_HOST          -> server.host
    BVHSTREAM_PORT          -> server.port
    BVHSTREAM_BACKLOG       -> server.backlog
    BVHSTREAM_FRAME_TIME_US -> playback.frame_time_us
    BVHSTREAM_FORMAT        -> playback.output_format
    BVHSTREAM_MOTION_FILE   -> playback.motion_file
    BVHSTREAM_LOG_LEVEL     -> logging.level

Example:
    from bvh_stream.config import load_config

    settings = load_config("config.yaml")
    print(settings.server.port)
    print(settings.playback.frame_time_us)
"""

import os
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from bvh_stream.errors import ConfigError


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Models
# =============================================================================

class ServerConfig(BaseModel):
    """Listening socket configuration."""

    host: str = Field(default="0.0.0.0", description="Bind host")
    port: int = Field(
        default=7001,
        ge=0,
        le=65535,
        description="TCP port (0 = any free port)",
    )
    backlog: int = Field(default=5, ge=1, description="Listen backlog")
    shutdown_grace_seconds: float = Field(
        default=5.0,
        gt=0,
        description="Time sessions get to end on their own after shutdown",
    )


class PlaybackConfig(BaseModel):
    """Motion playback configuration."""

    frame_time_us: int = Field(
        default=0,
        ge=0,
        description="Delay between motion lines in microseconds (0 = from file)",
    )
    output_format: int = Field(
        default=0,
        ge=0,
        le=1,
        description="0 = raw BVH lines, 1 = Axis Neuron format",
    )
    motion_file: str = Field(default="", description="Path to the BVH file")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="text", description="Log format: json or text")


class Settings(BaseModel):
    """Main settings class for bvh-stream."""

    server: ServerConfig = Field(default_factory=ServerConfig)
    playback: PlaybackConfig = Field(default_factory=PlaybackConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# =============================================================================
# Configuration Loading
# =============================================================================

def load_config(
    config_path: Optional[str] = None,
    overrides: Optional[Dict[str, Dict[str, Any]]] = None,
) -> Settings:
    """
    Load configuration from YAML file, environment and overrides.

    Args:
        config_path: Path to a YAML config file, or None for none
        overrides: Nested dict of values taking precedence over everything
            else (used for command line arguments)

    Returns:
        Settings: Loaded configuration

    Raises:
        ConfigError: Config file unreadable or values invalid
    """
    config_data: Dict[str, Any] = {}
    if config_path:
        if not Path(config_path).exists():
            raise ConfigError(f"Config file not found: {config_path}")
        logger.info(f"Loading config from: {config_path}")
        try:
            with open(config_path, "r") as f:
                config_data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Could not read config file {config_path}: {e}") from e
        _check_sections(config_data, config_path)

    try:
        _apply_env_overrides(config_data)
    except ValueError as e:
        raise ConfigError(f"Invalid environment override: {e}") from e

    for section, values in (overrides or {}).items():
        config_data.setdefault(section, {}).update(values)

    try:
        return Settings.model_validate(config_data)
    except ValidationError as e:
        raise ConfigError(str(e)) from e


def _check_sections(config_data: Any, source: str) -> None:
    """Ensure config data is a mapping of sections, each a mapping or empty."""
    if not isinstance(config_data, dict):
        raise ConfigError(f"{source}: expected a mapping of sections")

    for section, values in config_data.items():
        if values is None:
            config_data[section] = {}
        elif not isinstance(values, dict):
            raise ConfigError(f"{source}: section '{section}' must be a mapping")


def _apply_env_overrides(config_data: dict) -> None:
    """Apply environment variable overrides to config data."""

    # Server settings
    if env_host := os.environ.get("BVHSTREAM_HOST"):
        config_data.setdefault("server", {})["host"] = env_host
    if env_port := os.environ.get("BVHSTREAM_PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)
    if env_backlog := os.environ.get("BVHSTREAM_BACKLOG"):
        config_data.setdefault("server", {})["backlog"] = int(env_backlog)

    # Playback settings
    if env_delay := os.environ.get("BVHSTREAM_FRAME_TIME_US"):
        config_data.setdefault("playback", {})["frame_time_us"] = int(env_delay)
    if env_format := os.environ.get("BVHSTREAM_FORMAT"):
        config_data.setdefault("playback", {})["output_format"] = int(env_format)
    if env_file := os.environ.get("BVHSTREAM_MOTION_FILE"):
        config_data.setdefault("playback", {})["motion_file"] = env_file

    # Logging settings
    if env_log := os.environ.get("BVHSTREAM_LOG_LEVEL"):
        config_data.setdefault("logging", {})["level"] = env_log


def setup_logging(settings: Settings) -> None:
    """Configure logging based on settings."""
    log_level = getattr(logging, settings.logging.level.upper(), logging.INFO)

    if settings.logging.format == "json":
        log_format = '{"time": "%(asctime)s", "level": "%(levelname)s", "module": "%(name)s", "message": "%(message)s"}'
    else:
        log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=log_level,
        format=log_format,
        datefmt="%Y-%m-%dT%H:%M:%S",
    )
