"""
errors/ - Error Taxonomy

Structured classification of everything a reconcile pass can fail on.
"""

from .taxonomy import (
    ErrorCategory,
    PrimerError,
    StateStoreError,
    SecretGenerationError,
    StatusPersistError,
    InvalidExportError,
)

__all__ = [
    "ErrorCategory",
    "PrimerError",
    "StateStoreError",
    "SecretGenerationError",
    "StatusPersistError",
    "InvalidExportError",
]
