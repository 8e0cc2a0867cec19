"""
resources/naming.py - Deterministic names and labels for managed objects.
"""

from __future__ import annotations
from typing import Dict, TYPE_CHECKING

from ..core.constants import (
    LABEL_COMPONENT,
    LABEL_NAME,
    LABEL_PART_OF,
    PART_OF_LABEL_VALUE,
    RESOURCE_PREFIX,
    TLS_SECRET_SUFFIX,
)

if TYPE_CHECKING:
    from ..core.export import ExportRequest


def resource_name(request: "ExportRequest") -> str:
    """Name shared by every namespaced object of an export."""
    return f"{RESOURCE_PREFIX}-{request.name}"


def cluster_resource_name(request: "ExportRequest") -> str:
    """Name of cluster-scoped objects; includes the namespace to stay unique."""
    return f"{RESOURCE_PREFIX}-{request.namespace}-{request.name}"


def tls_secret_name(request: "ExportRequest") -> str:
    """Secret the platform fills with the service's serving certificate."""
    return resource_name(request) + TLS_SECRET_SUFFIX


def pod_labels(request: "ExportRequest") -> Dict[str, str]:
    """Labels on the serving pods, used by the service and network policy selectors."""
    name = resource_name(request)
    return {
        LABEL_NAME: name,
        LABEL_COMPONENT: name,
        LABEL_PART_OF: PART_OF_LABEL_VALUE,
    }
