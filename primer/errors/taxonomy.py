"""
errors/taxonomy.py - Reconcile error classification

Every failure a pass can report is one of these. A "not found" answer from
the state store is never an error: it comes back as an absent lookup.
"""

from __future__ import annotations
from typing import Any, Dict, Optional
from enum import Enum


class ErrorCategory(Enum):
    """Error categories."""
    STORE = "store"
    SECRET = "secret"
    STATUS = "status"
    SPEC = "spec"


class PrimerError(Exception):
    """
    Base class for reconcile errors.

    Provides structured error information with:
    - Error code for programmatic handling
    - Human-readable message (also used as the condition message)
    - Whether a retry can succeed without user action
    """

    code: str = "PRIMER_000"
    category: ErrorCategory = ErrorCategory.STORE
    recoverable: bool = True

    def __init__(
        self,
        message: str = "",
        *,
        export_key: str = "",
        cause: Optional[BaseException] = None,
    ):
        self.message = message or self.__class__.__doc__ or "Reconcile error"
        self.export_key = export_key
        self.cause = cause
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for API responses."""
        return {
            "code": self.code,
            "category": self.category.value,
            "message": self.message,
            "export": self.export_key,
            "recoverable": self.recoverable,
            "cause": repr(self.cause) if self.cause else None,
        }

    def __str__(self) -> str:
        return self.message


class StateStoreError(PrimerError):
    """A read or write against the cluster state store failed."""

    code = "STORE_001"
    category = ErrorCategory.STORE

    def __init__(
        self,
        operation: str,
        kind: str,
        name: str,
        cause: Optional[BaseException] = None,
        *,
        namespace: Optional[str] = None,
        export_key: str = "",
    ):
        target = f"{namespace}/{name}" if namespace else name
        message = f"failed to {operation} {kind} {target}"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message, export_key=export_key, cause=cause)
        self.operation = operation
        self.kind = kind
        self.name = name
        self.namespace = namespace


class SecretGenerationError(PrimerError):
    """Random session secret could not be generated."""

    code = "SECRET_001"
    category = ErrorCategory.SECRET

    def __init__(self, cause: Optional[BaseException] = None, *, export_key: str = ""):
        message = "failed to generate session secret"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message, export_key=export_key, cause=cause)


class StatusPersistError(PrimerError):
    """Writing the export status failed."""

    code = "STATUS_001"
    category = ErrorCategory.STATUS

    def __init__(self, export_key: str, cause: Optional[BaseException] = None):
        message = f"failed to update status of Export {export_key}"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message, export_key=export_key, cause=cause)


class InvalidExportError(PrimerError):
    """Export spec failed validation."""

    code = "SPEC_001"
    category = ErrorCategory.SPEC
    recoverable = False

    def __init__(self, export_key: str, detail: str):
        super().__init__(f"invalid Export spec: {detail}", export_key=export_key)
        self.detail = detail
