"""
SVGA Forge Configuration
========================

This module handles configuration loading for the sequence encoder.

Configuration Sources (in order of precedence):
    1. Environment variables (highest priority)
    2. config.yaml file
    3. Default values (lowest priority)

Environment Variable Mapping:
    SVGA_FORGE_DEFAULT_FPS       -> sequence.default_fps
    SVGA_FORGE_OUTPUT_DIR        -> export.output_dir
    SVGA_FORGE_COMPRESSION_LEVEL -> export.compression_level
    SVGA_FORGE_RESET_DELAY       -> export.status_reset_delay_sec
    SVGA_FORGE_PORT              -> server.port
    SVGA_FORGE_LOG_LEVEL         -> logging.level
    PORT                         -> server.port (container platforms)

Example:
    from svga_forge.config import settings

    print(settings.sequence.default_fps)
    print(settings.export.compression_level)
"""

import os
import logging
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, model_validator


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Models
# =============================================================================

class AppConfig(BaseModel):
    """Application identification."""

    name: str = Field(default="svga-forge", description="Service name")
    version: str = Field(default="v0.1.0", description="Service version")


class SequenceSettings(BaseModel):
    """Defaults applied to a fresh editing session."""

    default_fps: int = Field(
        default=24,
        ge=1,
        le=60,
        description="Initial playback rate for new or cleared sessions",
    )
    loop: bool = Field(
        default=True,
        description="Advisory loop flag for new sessions",
    )


class ExportSettings(BaseModel):
    """Archive assembly settings."""

    output_dir: str = Field(
        default="./exports",
        description="Directory where the CLI writes finished archives",
    )
    file_prefix: str = Field(default="animation", description="Archive filename prefix")
    extension: str = Field(default="svga", description="Archive file extension")
    manifest_filename: str = Field(
        default="movie.spec",
        description="Name of the manifest entry inside the archive",
    )
    manifest_version: str = Field(default="2.0", description="Manifest version marker")
    compression_level: int = Field(
        default=6,
        ge=0,
        le=9,
        description="Deflate compression level",
    )
    progress_baseline: int = Field(
        default=10,
        ge=0,
        le=100,
        description="Progress percentage reported when packaging starts",
    )
    progress_ceiling: int = Field(
        default=95,
        ge=0,
        le=100,
        description="Progress percentage reached after the last frame",
    )
    status_reset_delay_sec: float = Field(
        default=2.0,
        ge=0,
        description="Delay before a finished status fades back to idle",
    )

    @model_validator(mode="after")
    def _check_progress_range(self) -> "ExportSettings":
        if self.progress_baseline > self.progress_ceiling:
            raise ValueError("progress_baseline must not exceed progress_ceiling")
        return self


class ProbeSettings(BaseModel):
    """Dimension probe limits."""

    max_bytes: int = Field(
        default=64 * 1024 * 1024,
        gt=0,
        description="Largest reference image the prober will attempt to decode",
    )


class ServerConfig(BaseModel):
    """Server configuration."""

    host: str = Field(default="0.0.0.0", description="Bind host")
    port: int = Field(default=8002, ge=1, le=65535, description="Bind port")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="text", description="Log format: json or text")


class Settings(BaseModel):
    """
    Main settings class for SVGA Forge.

    Loads configuration from YAML file and environment variables.
    Environment variables take precedence over file values.
    """

    app: AppConfig = Field(default_factory=AppConfig)
    sequence: SequenceSettings = Field(default_factory=SequenceSettings)
    export: ExportSettings = Field(default_factory=ExportSettings)
    probe: ProbeSettings = Field(default_factory=ProbeSettings)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# =============================================================================
# Configuration Loading
# =============================================================================

def load_config(config_path: Optional[str] = None) -> Settings:
    """
    Load configuration from YAML file and environment variables.

    Priority (highest to lowest):
        1. Environment variables
        2. YAML config file
        3. Default values

    Args:
        config_path: Path to config.yaml. If None, searches common locations.

    Returns:
        Settings: Loaded configuration
    """
    if config_path is None:
        search_paths = [
            Path("config.yaml"),
            Path("config.yml"),
            Path(__file__).parent.parent.parent / "config.yaml",
        ]
        for path in search_paths:
            if path.exists():
                config_path = str(path)
                break

    config_data = {}
    if config_path and Path(config_path).exists():
        logger.info(f"Loading config from: {config_path}")
        with open(config_path, "r") as f:
            config_data = yaml.safe_load(f) or {}
    else:
        logger.warning("No config file found, using defaults and environment variables")

    _apply_env_overrides(config_data)

    return Settings.model_validate(config_data)


def _apply_env_overrides(config_data: dict) -> None:
    """Apply environment variable overrides to config data."""

    if env_fps := os.environ.get("SVGA_FORGE_DEFAULT_FPS"):
        config_data.setdefault("sequence", {})["default_fps"] = int(env_fps)

    if env_out := os.environ.get("SVGA_FORGE_OUTPUT_DIR"):
        config_data.setdefault("export", {})["output_dir"] = env_out
    if env_level := os.environ.get("SVGA_FORGE_COMPRESSION_LEVEL"):
        config_data.setdefault("export", {})["compression_level"] = int(env_level)
    if env_delay := os.environ.get("SVGA_FORGE_RESET_DELAY"):
        config_data.setdefault("export", {})["status_reset_delay_sec"] = float(env_delay)

    # Container platforms inject PORT
    if env_port := os.environ.get("PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)
    elif env_port := os.environ.get("SVGA_FORGE_PORT"):
        config_data.setdefault("server", {})["port"] = int(env_port)

    if env_log := os.environ.get("SVGA_FORGE_LOG_LEVEL"):
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


# =============================================================================
# Global Settings Instance
# =============================================================================

settings = load_config()
setup_logging(settings)
