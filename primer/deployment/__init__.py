"""
deployment/ - Deployment Infrastructure

Controller runner and the health/status API served alongside it.
"""

from .worker import (
    ReconcileQueue,
    ExportController,
)

from .api import (
    create_fastapi_app,
)


__all__ = [
    "ReconcileQueue",
    "ExportController",
    "create_fastapi_app",
]
