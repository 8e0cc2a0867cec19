"""
bootstrap/config.py - Operator configuration

Provides configuration loading from files, environment variables, and defaults.
Image names keep the environment variable names the operator's deployment
manifests already set.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from pathlib import Path
import os
import json
import logging

from ..core.constants import (
    DEFAULT_DOWNLOADER_IMAGE,
    DEFAULT_EXPORT_IMAGE,
    DEFAULT_OAUTH_IMAGE,
)

logger = logging.getLogger("bootstrap.config")

DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass
class ImageConfig:
    """Container images used by generated workloads."""

    export_image: str = DEFAULT_EXPORT_IMAGE
    downloader_image: str = DEFAULT_DOWNLOADER_IMAGE
    oauth_image: str = DEFAULT_OAUTH_IMAGE

    @classmethod
    def from_env(cls) -> "ImageConfig":
        # Empty values fall back to the defaults
        return cls(
            export_image=os.getenv("ExportImageName") or DEFAULT_EXPORT_IMAGE,
            downloader_image=os.getenv("DownloaderImageName") or DEFAULT_DOWNLOADER_IMAGE,
            oauth_image=os.getenv("OauthImageName") or DEFAULT_OAUTH_IMAGE,
        )


@dataclass
class ControllerConfig:
    """Controller runner configuration."""

    workers: int = 2
    resync_seconds: float = 60.0
    backoff_base_seconds: float = 0.5
    backoff_max_seconds: float = 300.0
    watch_namespace: Optional[str] = None  # None = all namespaces
    kubeconfig: Optional[str] = None

    @classmethod
    def from_env(cls) -> "ControllerConfig":
        return cls(
            workers=int(os.getenv("PRIMER_WORKERS", "2")),
            resync_seconds=float(os.getenv("PRIMER_RESYNC_SECONDS", "60")),
            backoff_base_seconds=float(os.getenv("PRIMER_BACKOFF_BASE_SECONDS", "0.5")),
            backoff_max_seconds=float(os.getenv("PRIMER_BACKOFF_MAX_SECONDS", "300")),
            watch_namespace=os.getenv("PRIMER_WATCH_NAMESPACE") or None,
            kubeconfig=os.getenv("KUBECONFIG") or None,
        )


@dataclass
class APIConfig:
    """Health and status API configuration."""

    host: str = "0.0.0.0"
    port: int = 8081
    enable_docs: bool = False

    @classmethod
    def from_env(cls) -> "APIConfig":
        return cls(
            host=os.getenv("PRIMER_API_HOST", "0.0.0.0"),
            port=int(os.getenv("PRIMER_API_PORT", "8081")),
            enable_docs=os.getenv("PRIMER_API_ENABLE_DOCS", "false").lower() == "true",
        )


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    format: str = DEFAULT_LOG_FORMAT
    log_file: Optional[str] = None
    json_logs: bool = False

    @classmethod
    def from_env(cls) -> "LoggingConfig":
        return cls(
            level=os.getenv("PRIMER_LOG_LEVEL", "INFO"),
            format=os.getenv("PRIMER_LOG_FORMAT", DEFAULT_LOG_FORMAT),
            log_file=os.getenv("PRIMER_LOG_FILE"),
            json_logs=os.getenv("PRIMER_JSON_LOGS", "false").lower() == "true",
        )


@dataclass
class PrimerConfig:
    """Root configuration for the export operator."""

    version: str = "0.1.0"

    images: ImageConfig = field(default_factory=ImageConfig)
    controller: ControllerConfig = field(default_factory=ControllerConfig)
    api: APIConfig = field(default_factory=APIConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_env(cls) -> "PrimerConfig":
        """Create configuration from environment variables."""
        return cls(
            images=ImageConfig.from_env(),
            controller=ControllerConfig.from_env(),
            api=APIConfig.from_env(),
            logging=LoggingConfig.from_env(),
        )

    @classmethod
    def from_file(cls, filepath: str) -> "PrimerConfig":
        """Load configuration from JSON file, layered over the environment."""
        path = Path(filepath)
        if not path.exists():
            logger.warning(f"Config file not found: {filepath}, using defaults")
            return cls.from_env()

        with open(path) as f:
            data = json.load(f)

        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "PrimerConfig":
        """Create config from dictionary."""
        config = cls.from_env()

        for section in ("images", "controller", "api", "logging"):
            target = getattr(config, section)
            for key, value in (data.get(section) or {}).items():
                if hasattr(target, key):
                    setattr(target, key, value)
                else:
                    logger.warning(f"Ignoring unknown config key: {section}.{key}")

        return config

    def to_dict(self) -> Dict[str, Any]:
        """Serialize config to dictionary."""
        return {
            "version": self.version,
            "images": {
                "export_image": self.images.export_image,
                "downloader_image": self.images.downloader_image,
                "oauth_image": self.images.oauth_image,
            },
            "controller": {
                "workers": self.controller.workers,
                "resync_seconds": self.controller.resync_seconds,
                "backoff_base_seconds": self.controller.backoff_base_seconds,
                "backoff_max_seconds": self.controller.backoff_max_seconds,
                "watch_namespace": self.controller.watch_namespace,
            },
            "api": {
                "host": self.api.host,
                "port": self.api.port,
            },
            "logging": {
                "level": self.logging.level,
                "log_file": self.logging.log_file,
                "json_logs": self.logging.json_logs,
            },
        }


def load_config(filepath: str = None) -> PrimerConfig:
    """
    Load configuration from file or environment.

    Args:
        filepath: Optional path to JSON config file

    Returns:
        PrimerConfig instance
    """
    if filepath:
        config = PrimerConfig.from_file(filepath)
    else:
        config = PrimerConfig.from_env()
    logger.debug(f"Configuration loaded: {config.to_dict()}")
    return config
