"""
kernel/__init__.py - Reconciliation kernel.

Provides the single-pass reconciliation engine, the ordered catalog of
managed objects, completion detection and post-completion cleanup.
"""

from .catalog import (
    CatalogEntry,
    CATALOG,
    applicable_kinds,
)

from .completion import CompletionDetector

from .cleanup import CleanupCoordinator

from .result import ReconcileResult

from .engine import (
    ReconciliationEngine,
    artifact_url,
    split_key,
)


__all__ = [
    # Catalog
    "CatalogEntry",
    "CATALOG",
    "applicable_kinds",
    # Passes
    "CompletionDetector",
    "CleanupCoordinator",
    "ReconcileResult",
    "ReconciliationEngine",
    "artifact_url",
    "split_key",
]
