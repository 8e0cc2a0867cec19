"""
Primer Core Enumerations

All enumeration types used throughout the export operator.
"""

from enum import Enum


class ExportMethod(str, Enum):
    """
    How an export delivers its artifact.

    git: the job commits the exported manifests to a repository.
    download: the job writes a zip archive that a serving deployment exposes.
    """
    GIT = "git"
    DOWNLOAD = "download"


class ConditionStatus(str, Enum):
    """Tri-state value of a status condition."""
    TRUE = "True"
    FALSE = "False"
    UNKNOWN = "Unknown"


class ReconcileOutcome(str, Enum):
    """Result of a single reconciliation pass."""
    NOOP = "noop"          # Nothing left to do until state changes
    REQUEUE = "requeue"    # One resource was created, run again
    ERROR = "error"        # Pass aborted, retry with backoff


class LookupState(str, Enum):
    """Outcome of reading a single object from the state store."""
    FOUND = "found"
    ABSENT = "absent"
    ERROR = "error"


class ResourceKind(str, Enum):
    """
    Kinds of object the operator manages for each export.

    Declared in catalog order.
    """
    JOB = "Job"
    SERVICE_ACCOUNT = "ServiceAccount"
    SECRET = "Secret"
    ROUTE = "Route"
    CLUSTER_ROLE = "ClusterRole"
    CLUSTER_ROLE_BINDING = "ClusterRoleBinding"
    NETWORK_POLICY = "NetworkPolicy"
    PERSISTENT_VOLUME_CLAIM = "PersistentVolumeClaim"
    SERVICE = "Service"
    DEPLOYMENT = "Deployment"

    @property
    def api_version(self) -> str:
        return API_VERSIONS[self]

    @property
    def cluster_scoped(self) -> bool:
        return self in (ResourceKind.CLUSTER_ROLE, ResourceKind.CLUSTER_ROLE_BINDING)


API_VERSIONS = {
    ResourceKind.JOB: "batch/v1",
    ResourceKind.SERVICE_ACCOUNT: "v1",
    ResourceKind.SECRET: "v1",
    ResourceKind.ROUTE: "route.openshift.io/v1",
    ResourceKind.CLUSTER_ROLE: "rbac.authorization.k8s.io/v1",
    ResourceKind.CLUSTER_ROLE_BINDING: "rbac.authorization.k8s.io/v1",
    ResourceKind.NETWORK_POLICY: "networking.k8s.io/v1",
    ResourceKind.PERSISTENT_VOLUME_CLAIM: "v1",
    ResourceKind.SERVICE: "v1",
    ResourceKind.DEPLOYMENT: "apps/v1",
}
