"""
kernel/completion.py - Export completion detection.
"""

from __future__ import annotations
from typing import Any, Dict, Optional
import logging

from ..core.enums import ExportMethod

logger = logging.getLogger(__name__)


def _status_field(obj: Optional[Dict[str, Any]], name: str) -> int:
    if not obj:
        return 0
    return (obj.get("status") or {}).get(name) or 0


class CompletionDetector:
    """
    Decides from observed workload state whether an export is finished.

    git: the export job reports one succeeded pod.
    download: the job succeeded and the serving deployment has one ready replica.
    """

    def job_succeeded(self, job: Optional[Dict[str, Any]]) -> bool:
        return _status_field(job, "succeeded") == 1

    def deployment_ready(self, deployment: Optional[Dict[str, Any]]) -> bool:
        return _status_field(deployment, "readyReplicas") == 1

    def is_complete(
        self,
        method: ExportMethod,
        job: Optional[Dict[str, Any]],
        deployment: Optional[Dict[str, Any]] = None,
    ) -> bool:
        if not self.job_succeeded(job):
            return False
        if method == ExportMethod.DOWNLOAD:
            return self.deployment_ready(deployment)
        return True
