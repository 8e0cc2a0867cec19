"""
store/kube.py - Kubernetes-backed state store

Talks to the API server through the kubernetes dynamic client so every
managed kind (including Routes and the Export custom resource) goes through
one code path.
"""

from __future__ import annotations
from typing import Any, Dict, List, Optional
import logging

from kubernetes import config as kube_config
from kubernetes.client import ApiClient
from kubernetes.client.exceptions import ApiException
from kubernetes.dynamic import DynamicClient
from kubernetes.dynamic.exceptions import DynamicApiError, NotFoundError, ResourceNotFoundError

from .base import Lookup, ResourceRef, StateStore
from ..core.constants import EXPORT_API_VERSION, EXPORT_KIND
from ..errors import StateStoreError

logger = logging.getLogger("store.kube")

_API_ERRORS = (ApiException, DynamicApiError, ResourceNotFoundError)


def load_client_config(kubeconfig: Optional[str] = None) -> ApiClient:
    """
    Build an API client from in-cluster config, falling back to kubeconfig.

    Args:
        kubeconfig: Explicit kubeconfig path (skips in-cluster detection)
    """
    if kubeconfig:
        kube_config.load_kube_config(config_file=kubeconfig)
    else:
        try:
            kube_config.load_incluster_config()
            logger.info("Using in-cluster configuration")
        except kube_config.ConfigException:
            kube_config.load_kube_config()
            logger.info("Using kubeconfig configuration")
    return ApiClient()


class KubernetesStateStore(StateStore):
    """StateStore over the kubernetes dynamic client."""

    def __init__(self, api_client: Optional[ApiClient] = None, dynamic: Optional[DynamicClient] = None):
        self._dynamic = dynamic or DynamicClient(api_client or load_client_config())

    def _resource(self, api_version: str, kind: str):
        return self._dynamic.resources.get(api_version=api_version, kind=kind)

    def get_export(self, namespace: str, name: str) -> Lookup:
        return self.get(ResourceRef(EXPORT_API_VERSION, EXPORT_KIND, name, namespace))

    def list_exports(self, namespace: Optional[str] = None) -> List[Dict[str, Any]]:
        try:
            api = self._resource(EXPORT_API_VERSION, EXPORT_KIND)
            result = api.get(namespace=namespace) if namespace else api.get()
        except _API_ERRORS as e:
            raise StateStoreError("list", EXPORT_KIND, "", e, namespace=namespace) from e
        return result.to_dict().get("items") or []

    def get(self, ref: ResourceRef) -> Lookup:
        try:
            api = self._resource(ref.api_version, ref.kind)
            if ref.namespace:
                obj = api.get(name=ref.name, namespace=ref.namespace)
            else:
                obj = api.get(name=ref.name)
        except NotFoundError:
            return Lookup.absent()
        except _API_ERRORS as e:
            return Lookup.failed(StateStoreError("get", ref.kind, ref.name, e, namespace=ref.namespace))
        return Lookup.found(obj.to_dict())

    def create(self, manifest: Dict[str, Any]) -> Dict[str, Any]:
        ref = ResourceRef.from_manifest(manifest)
        try:
            api = self._resource(ref.api_version, ref.kind)
            if ref.namespace:
                obj = api.create(body=manifest, namespace=ref.namespace)
            else:
                obj = api.create(body=manifest)
        except _API_ERRORS as e:
            raise StateStoreError("create", ref.kind, ref.name, e, namespace=ref.namespace) from e
        return obj.to_dict()

    def update_status(self, export: Dict[str, Any]) -> Dict[str, Any]:
        ref = ResourceRef.from_manifest(export)
        try:
            api = self._resource(ref.api_version, ref.kind)
            obj = api.status.replace(body=export, name=ref.name, namespace=ref.namespace)
        except _API_ERRORS as e:
            raise StateStoreError("update status of", ref.kind, ref.name, e, namespace=ref.namespace) from e
        return obj.to_dict()

    def delete(self, ref: ResourceRef, propagation_policy: Optional[str] = None) -> None:
        body = None
        if propagation_policy:
            body = {
                "apiVersion": "v1",
                "kind": "DeleteOptions",
                "propagationPolicy": propagation_policy,
            }
        try:
            api = self._resource(ref.api_version, ref.kind)
            if ref.namespace:
                api.delete(name=ref.name, namespace=ref.namespace, body=body)
            else:
                api.delete(name=ref.name, body=body)
        except _API_ERRORS as e:
            raise StateStoreError("delete", ref.kind, ref.name, e, namespace=ref.namespace) from e
