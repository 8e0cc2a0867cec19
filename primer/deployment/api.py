"""
deployment/api.py - Health and status API

Liveness, readiness and controller status for the operator pod, plus the
last reconcile result of individual exports.
"""

from typing import Any, Dict, Optional, TYPE_CHECKING
from datetime import datetime, timezone
import logging

from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel

if TYPE_CHECKING:
    from .worker import ExportController
    from ..bootstrap.config import PrimerConfig

logger = logging.getLogger("deployment.api")

API_VERSION = "0.1.0"


# =============================================================================
# Response Models
# =============================================================================

class HealthResponse(BaseModel):
    status: str
    version: str
    timestamp: str


class ExportResultResponse(BaseModel):
    """Last reconcile result for one export."""
    key: str
    outcome: str
    completed: bool
    created: Optional[str] = None
    error: Optional[Dict[str, Any]] = None
    finished_at: str


# =============================================================================
# Application
# =============================================================================

def create_fastapi_app(controller: "ExportController", config: "PrimerConfig" = None) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        controller: Running export controller
        config: Operator configuration (docs toggle)

    Returns:
        FastAPI application instance
    """
    enable_docs = bool(config and config.api.enable_docs)

    app = FastAPI(
        title="Primer Export Operator",
        description="Health and status of the export controller",
        version=API_VERSION,
        docs_url="/docs" if enable_docs else None,
        redoc_url=None,
    )

    @app.get("/healthz", response_model=HealthResponse)
    async def health_check():
        """Liveness probe."""
        return HealthResponse(
            status="healthy",
            version=API_VERSION,
            timestamp=datetime.now(timezone.utc).isoformat(),
        )

    @app.get("/readyz")
    async def readiness_check():
        """Readiness probe: ready once the controller is running."""
        checks = {"controller": controller.is_running}
        ready = all(checks.values())
        return JSONResponse(
            status_code=200 if ready else 503,
            content={"ready": ready, "checks": checks},
        )

    @app.get("/status")
    async def controller_status():
        """Controller statistics."""
        return controller.stats

    @app.get("/exports/{namespace}/{name}", response_model=ExportResultResponse)
    async def export_status(namespace: str, name: str):
        """Last reconcile result for an export."""
        result = controller.last_result(f"{namespace}/{name}")
        if result is None:
            raise HTTPException(status_code=404, detail=f"No reconcile recorded for {namespace}/{name}")
        return ExportResultResponse(**result.to_dict())

    return app
