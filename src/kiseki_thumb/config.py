"""
kiseki_thumb Configuration
==========================

This module handles configuration loading for the thumbnail extractor.

Configuration Sources (in order of precedence):
    1. Environment variables (highest priority)
    2. kiseki.yaml file
    3. Default values (lowest priority)

Environment Variable Mapping:
    KISEKI_CONFIG            -> path of the YAML file to load
    KISEKI_CHUNK_SIZE        -> reader.chunk_size
    KISEKI_MAX_BUFFER_BYTES  -> packer.max_buffer_bytes
    KISEKI_EXTENSIONS        -> registration.extensions (comma separated)
    KISEKI_LOG_LEVEL         -> logging.level
    KISEKI_LOG_FORMAT        -> logging.format

Example:
    from kiseki_thumb.config import settings

    print(settings.reader.chunk_size)
    print(settings.registration.extensions)
"""

import os
import logging
from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field, field_validator


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Models
# =============================================================================

class ReaderConfig(BaseModel):
    """Byte source reading configuration."""

    chunk_size: int = Field(
        default=4096,
        ge=1,
        description="Bytes requested from the source per read call",
    )


class PackerConfig(BaseModel):
    """Pixel packing configuration."""

    max_buffer_bytes: Optional[int] = Field(
        default=None,
        gt=0,
        description="Upper bound on height * stride (None = platform limit only)",
    )


class RegistrationConfig(BaseModel):
    """File association registration configuration."""

    clsid: str = Field(
        default="{8ABA9ABD-829D-4E87-AC2C-4A628AB78236}",
        description="Class identifier of the thumbnail handler",
    )
    handler_name: str = Field(
        default="Kiseki Thumbnail Handler",
        description="Friendly name stored under the CLSID key",
    )
    extensions: List[str] = Field(
        default_factory=lambda: [".rbxl"],
        min_length=1,
        description="File extensions routed to the handler",
    )
    threading_model: str = Field(
        default="Apartment",
        description="COM threading model of the in-process server",
    )
    classes_root: str = Field(
        default="Software\\Classes",
        description="Key under HKCU holding class registrations",
    )

    @field_validator("extensions")
    @classmethod
    def _normalize_extensions(cls, value: List[str]) -> List[str]:
        normalized = []
        for ext in value:
            ext = ext.strip()
            if not ext:
                continue
            normalized.append(ext if ext.startswith(".") else f".{ext}")
        if not normalized:
            raise ValueError("at least one extension is required")
        return normalized


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="text", description="Log format: json or text")


class Settings(BaseModel):
    """
    Main settings class for kiseki_thumb.

    Loads configuration from YAML file and environment variables.
    Environment variables take precedence over file values.
    """

    reader: ReaderConfig = Field(default_factory=ReaderConfig)
    packer: PackerConfig = Field(default_factory=PackerConfig)
    registration: RegistrationConfig = Field(default_factory=RegistrationConfig)
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
        config_path: Path to kiseki.yaml. If None, uses KISEKI_CONFIG or
            searches common locations.

    Returns:
        Settings: Loaded configuration
    """
    if config_path is None:
        config_path = os.environ.get("KISEKI_CONFIG")

    if config_path is None:
        search_paths = [
            Path("kiseki.yaml"),
            Path("kiseki.yml"),
            Path(__file__).parent.parent.parent / "kiseki.yaml",
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
        logger.debug("No config file found, using defaults and environment variables")

    _apply_env_overrides(config_data)

    return Settings.model_validate(config_data)


def _apply_env_overrides(config_data: dict) -> None:
    """Apply environment variable overrides to config data."""

    # Reader settings
    if env_chunk := os.environ.get("KISEKI_CHUNK_SIZE"):
        config_data.setdefault("reader", {})["chunk_size"] = int(env_chunk)

    # Packer settings
    if env_max := os.environ.get("KISEKI_MAX_BUFFER_BYTES"):
        config_data.setdefault("packer", {})["max_buffer_bytes"] = int(env_max)

    # Registration settings
    if env_ext := os.environ.get("KISEKI_EXTENSIONS"):
        config_data.setdefault("registration", {})["extensions"] = env_ext.split(",")

    # Logging settings
    if env_log := os.environ.get("KISEKI_LOG_LEVEL"):
        config_data.setdefault("logging", {})["level"] = env_log
    if env_fmt := os.environ.get("KISEKI_LOG_FORMAT"):
        config_data.setdefault("logging", {})["format"] = env_fmt


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

# Global settings instance - loaded on import. setup_logging() is left to the CLI.
settings = load_config()
