"""
bootstrap/ - Bootstrap Layer

Provides configuration loading, logging setup and the ``primer`` command.
"""

from .config import (
    PrimerConfig,
    ImageConfig,
    ControllerConfig,
    APIConfig,
    LoggingConfig,
    load_config,
)

from .entrypoints import (
    main,
    setup_logging,
)


__all__ = [
    # Config
    "PrimerConfig",
    "ImageConfig",
    "ControllerConfig",
    "APIConfig",
    "LoggingConfig",
    "load_config",
    # Entry Points
    "main",
    "setup_logging",
]
