"""
resources/ - Desired state of managed objects

Naming, ownership and manifest generation for the objects an export owns.
"""

from .naming import (
    resource_name,
    cluster_resource_name,
    tls_secret_name,
    pod_labels,
)

from .ownership import (
    OwnedResource,
    OwnershipTable,
    TRANSIENT_KINDS,
)

from .secrets import generate_session_secret

from .generator import ResourceSpecGenerator


__all__ = [
    "resource_name",
    "cluster_resource_name",
    "tls_secret_name",
    "pod_labels",
    "OwnedResource",
    "OwnershipTable",
    "TRANSIENT_KINDS",
    "generate_session_secret",
    "ResourceSpecGenerator",
]
