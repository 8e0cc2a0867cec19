"""
resources/generator.py - Desired state of every managed object

One function per managed kind, each mapping an export request to a complete
manifest. Names, namespaces and owner references come from the export's
ownership table; images come from configuration.
"""

from __future__ import annotations
from typing import Any, Callable, Dict, List, Optional, TYPE_CHECKING
import json
import logging

from ..core.constants import (
    APP_PORT,
    APP_PORT_NAME,
    DOWNLOADER_PORT_NAME,
    INGRESS_POLICY_GROUP_LABEL,
    INGRESS_POLICY_GROUP_VALUE,
    JOB_COMMAND,
    OAUTH_REDIRECT_ANNOTATION_PREFIX,
    OUTPUT_MOUNT_PATH,
    OUTPUT_VOLUME,
    PROXY_PORT,
    PROXY_PORT_NAME,
    PROXY_SECRET_MOUNT_PATH,
    PROXY_SECRET_VOLUME,
    PROXY_TLS_MOUNT_PATH,
    PROXY_TLS_VOLUME,
    SECRET_VOLUME_MODE,
    SERVE_MOUNT_PATH,
    SERVING_CERT_ANNOTATION,
    SESSION_SECRET_KEY,
    SSH_KEYS_MODE,
    SSH_KEYS_MOUNT_PATH,
    SSH_KEYS_VOLUME,
    VOLUME_CLAIM_SIZE,
)
from ..core.enums import ExportMethod, ResourceKind
from ..bootstrap.config import ImageConfig
from .naming import pod_labels, tls_secret_name
from .ownership import OwnershipTable
from .secrets import generate_session_secret

if TYPE_CHECKING:
    from ..core.export import ExportRequest

logger = logging.getLogger("resources.generator")

Manifest = Dict[str, Any]


def _env(pairs: List[tuple]) -> List[Dict[str, str]]:
    return [{"name": name, "value": value} for name, value in pairs]


def _claim_volume(claim_name: str) -> Dict[str, Any]:
    return {"name": OUTPUT_VOLUME, "persistentVolumeClaim": {"claimName": claim_name}}


class ResourceSpecGenerator:
    """
    Builds desired manifests for an export's managed objects.

    Every method except ``secret`` is deterministic for a given request
    and image configuration.
    """

    def __init__(
        self,
        images: Optional[ImageConfig] = None,
        secret_factory: Callable[[], str] = generate_session_secret,
    ):
        self.images = images or ImageConfig.from_env()
        self._secret_factory = secret_factory
        self._builders: Dict[ResourceKind, Callable[["ExportRequest", OwnershipTable], Manifest]] = {
            ResourceKind.JOB: self.job,
            ResourceKind.SERVICE_ACCOUNT: self.service_account,
            ResourceKind.SECRET: self.secret,
            ResourceKind.ROUTE: self.route,
            ResourceKind.CLUSTER_ROLE: self.cluster_role,
            ResourceKind.CLUSTER_ROLE_BINDING: self.cluster_role_binding,
            ResourceKind.NETWORK_POLICY: self.network_policy,
            ResourceKind.PERSISTENT_VOLUME_CLAIM: self.volume_claim,
            ResourceKind.SERVICE: self.service,
            ResourceKind.DEPLOYMENT: self.deployment,
        }

    def generate(
        self,
        kind: ResourceKind,
        request: "ExportRequest",
        table: Optional[OwnershipTable] = None,
    ) -> Manifest:
        """Build the manifest for one kind."""
        table = table or OwnershipTable.for_export(request)
        return self._builders[kind](request, table)

    @staticmethod
    def _object(kind: ResourceKind, table: OwnershipTable, **body: Any) -> Manifest:
        manifest: Manifest = {
            "apiVersion": kind.api_version,
            "kind": kind.value,
            "metadata": table.metadata_for(kind),
        }
        manifest.update(body)
        return manifest

    # =========================================================================
    # Job
    # =========================================================================

    def job(self, request: "ExportRequest", table: OwnershipTable) -> Manifest:
        """One-shot export job; its shape depends on the export method."""
        if request.method == ExportMethod.DOWNLOAD:
            return self._download_job(request, table)
        return self._git_job(request, table)

    def _job(
        self,
        request: "ExportRequest",
        table: OwnershipTable,
        env: List[Dict[str, str]],
        mounts: List[Dict[str, Any]],
        volumes: List[Dict[str, Any]],
    ) -> Manifest:
        claim_name = table.ref(ResourceKind.PERSISTENT_VOLUME_CLAIM).name
        return self._object(
            ResourceKind.JOB,
            table,
            spec={
                "template": {
                    "spec": {
                        "restartPolicy": "Never",
                        "serviceAccountName": table.ref(ResourceKind.SERVICE_ACCOUNT).name,
                        "containers": [{
                            "name": request.name,
                            "image": self.images.export_image,
                            "imagePullPolicy": "IfNotPresent",
                            "command": list(JOB_COMMAND),
                            "env": env,
                            "volumeMounts": mounts,
                        }],
                        "volumes": [_claim_volume(claim_name)] + volumes,
                    },
                },
            },
        )

    def _git_job(self, request: "ExportRequest", table: OwnershipTable) -> Manifest:
        spec = request.spec
        env = _env([
            ("REPO", spec.repo),
            ("BRANCH", spec.branch),
            ("EMAIL", spec.email),
            ("NAMESPACE", request.namespace),
            ("METHOD", spec.method.value),
            ("USER", spec.user),
        ])
        mounts = [
            {"name": SSH_KEYS_VOLUME, "mountPath": SSH_KEYS_MOUNT_PATH},
            {"name": OUTPUT_VOLUME, "mountPath": OUTPUT_MOUNT_PATH},
        ]
        volumes = [{
            "name": SSH_KEYS_VOLUME,
            "secret": {"secretName": spec.secret, "defaultMode": SSH_KEYS_MODE},
        }]
        return self._job(request, table, env, mounts, volumes)

    def _download_job(self, request: "ExportRequest", table: OwnershipTable) -> Manifest:
        spec = request.spec
        env = _env([
            ("METHOD", spec.method.value),
            ("NAMESPACE", request.namespace),
            ("EXPORT_NAME", request.name),
            ("USER", spec.user),
            ("TIME", request.created_at),
        ])
        mounts = [{"name": OUTPUT_VOLUME, "mountPath": OUTPUT_MOUNT_PATH}]
        return self._job(request, table, env, mounts, [])

    # =========================================================================
    # Identity and credentials
    # =========================================================================

    def service_account(self, request: "ExportRequest", table: OwnershipTable) -> Manifest:
        """Identity of the job and proxy; redirect reference lets it act as an OAuth client."""
        route_name = table.ref(ResourceKind.ROUTE).name
        redirect = {
            "kind": "OAuthRedirectReference",
            "apiVersion": "v1",
            "reference": {"kind": "Route", "name": route_name},
        }
        manifest = self._object(ResourceKind.SERVICE_ACCOUNT, table)
        manifest["metadata"]["annotations"] = {
            OAUTH_REDIRECT_ANNOTATION_PREFIX + route_name: json.dumps(redirect),
        }
        return manifest

    def secret(self, request: "ExportRequest", table: OwnershipTable) -> Manifest:
        """Proxy cookie secret. Raises SecretGenerationError if randomness fails."""
        token = self._secret_factory()
        return self._object(
            ResourceKind.SECRET,
            table,
            type="Opaque",
            stringData={SESSION_SECRET_KEY: token},
        )

    def cluster_role(self, request: "ExportRequest", table: OwnershipTable) -> Manifest:
        # Impersonation limited to the one user named in the export
        return self._object(
            ResourceKind.CLUSTER_ROLE,
            table,
            rules=[{
                "apiGroups": [""],
                "resources": ["users"],
                "verbs": ["impersonate"],
                "resourceNames": [request.spec.user],
            }],
        )

    def cluster_role_binding(self, request: "ExportRequest", table: OwnershipTable) -> Manifest:
        service_account = table.ref(ResourceKind.SERVICE_ACCOUNT)
        return self._object(
            ResourceKind.CLUSTER_ROLE_BINDING,
            table,
            roleRef={
                "apiGroup": "rbac.authorization.k8s.io",
                "kind": ResourceKind.CLUSTER_ROLE.value,
                "name": table.ref(ResourceKind.CLUSTER_ROLE).name,
            },
            subjects=[{
                "kind": ResourceKind.SERVICE_ACCOUNT.value,
                "name": service_account.name,
                "namespace": service_account.namespace,
            }],
        )

    # =========================================================================
    # Network exposure
    # =========================================================================

    def route(self, request: "ExportRequest", table: OwnershipTable) -> Manifest:
        return self._object(
            ResourceKind.ROUTE,
            table,
            spec={
                "to": {"kind": "Service", "name": table.ref(ResourceKind.SERVICE).name},
                "port": {"targetPort": PROXY_PORT_NAME},
                "tls": {
                    "termination": "reencrypt",
                    "insecureEdgeTerminationPolicy": "Redirect",
                },
            },
        )

    def network_policy(self, request: "ExportRequest", table: OwnershipTable) -> Manifest:
        return self._object(
            ResourceKind.NETWORK_POLICY,
            table,
            spec={
                "podSelector": {"matchLabels": pod_labels(request)},
                "ingress": [{
                    "from": [{
                        "namespaceSelector": {
                            "matchLabels": {INGRESS_POLICY_GROUP_LABEL: INGRESS_POLICY_GROUP_VALUE},
                        },
                    }],
                }],
                "policyTypes": ["Ingress"],
            },
        )

    def volume_claim(self, request: "ExportRequest", table: OwnershipTable) -> Manifest:
        return self._object(
            ResourceKind.PERSISTENT_VOLUME_CLAIM,
            table,
            spec={
                "accessModes": ["ReadWriteOnce"],
                "resources": {"requests": {"storage": VOLUME_CLAIM_SIZE}},
            },
        )

    def service(self, request: "ExportRequest", table: OwnershipTable) -> Manifest:
        manifest = self._object(
            ResourceKind.SERVICE,
            table,
            spec={
                "ports": [
                    {"name": APP_PORT_NAME, "port": APP_PORT},
                    {"name": PROXY_PORT_NAME, "port": PROXY_PORT},
                ],
                "selector": pod_labels(request),
            },
        )
        manifest["metadata"]["annotations"] = {SERVING_CERT_ANNOTATION: tls_secret_name(request)}
        return manifest

    # =========================================================================
    # Serving deployment
    # =========================================================================

    def deployment(self, request: "ExportRequest", table: OwnershipTable) -> Manifest:
        """Static file server for the archive, fronted by an authenticating proxy."""
        labels = pod_labels(request)
        service_account = table.ref(ResourceKind.SERVICE_ACCOUNT).name
        access_review = json.dumps({
            "namespace": request.namespace,
            "resource": "namespaces",
            "resourceName": request.namespace,
            "verb": "get",
        })

        downloader = {
            "name": table.ref(ResourceKind.DEPLOYMENT).name,
            "image": self.images.downloader_image,
            "ports": [{"containerPort": APP_PORT, "name": DOWNLOADER_PORT_NAME}],
            "volumeMounts": [{"name": OUTPUT_VOLUME, "mountPath": SERVE_MOUNT_PATH}],
        }
        proxy = {
            "name": PROXY_PORT_NAME,
            "image": self.images.oauth_image,
            "args": [
                "-provider=openshift",
                f"-https-address=:{PROXY_PORT}",
                "-http-address=",
                "-email-domain=*",
                f"-upstream=http://localhost:{APP_PORT}",
                f"-tls-cert={PROXY_TLS_MOUNT_PATH}/tls.crt",
                f"-tls-key={PROXY_TLS_MOUNT_PATH}/tls.key",
                "-client-secret-file=/var/run/secrets/kubernetes.io/serviceaccount/token",
                f"-cookie-secret-file={PROXY_SECRET_MOUNT_PATH}/{SESSION_SECRET_KEY}",
                f"-openshift-service-account={service_account}",
                "-openshift-ca=/var/run/secrets/kubernetes.io/serviceaccount/ca.crt",
                "-skip-auth-regex=^/metrics",
                f"-openshift-sar={access_review}",
            ],
            "ports": [{"containerPort": PROXY_PORT, "name": PROXY_PORT_NAME}],
            "volumeMounts": [
                {"name": PROXY_TLS_VOLUME, "mountPath": PROXY_TLS_MOUNT_PATH},
                {"name": PROXY_SECRET_VOLUME, "mountPath": PROXY_SECRET_MOUNT_PATH},
            ],
        }

        return self._object(
            ResourceKind.DEPLOYMENT,
            table,
            spec={
                "replicas": 1,
                "selector": {"matchLabels": dict(labels)},
                "template": {
                    "metadata": {"labels": dict(labels)},
                    "spec": {
                        "serviceAccountName": service_account,
                        "containers": [downloader, proxy],
                        "volumes": [
                            _claim_volume(table.ref(ResourceKind.PERSISTENT_VOLUME_CLAIM).name),
                            {
                                "name": PROXY_TLS_VOLUME,
                                "secret": {
                                    "secretName": tls_secret_name(request),
                                    "defaultMode": SECRET_VOLUME_MODE,
                                },
                            },
                            {
                                "name": PROXY_SECRET_VOLUME,
                                "secret": {
                                    "secretName": table.ref(ResourceKind.SECRET).name,
                                    "defaultMode": SECRET_VOLUME_MODE,
                                },
                            },
                        ],
                    },
                },
            },
        )
