"""
Primer Test Configuration and Fixtures

Provides an in-memory cluster, an Export factory and helpers to drive
reconciliation passes.
"""

import pytest
from typing import Any, Dict, List, Optional

CREATED_AT = "2021-06-01T12:00:00Z"


def export_object(
    name: str = "sample",
    namespace: str = "team-a",
    method: str = "git",
    **spec: Any,
) -> Dict[str, Any]:
    """Export custom resource as the API server would return it."""
    body = {"method": method}
    if method == "git":
        body.update({
            "repo": "https://x/y",
            "branch": "main",
            "email": "dev@example.com",
            "secret": "git-keys",
        })
    body["user"] = "alice"
    body.update(spec)
    return {
        "apiVersion": "primer.gitops.io/v1alpha1",
        "kind": "Export",
        "metadata": {
            "name": name,
            "namespace": namespace,
            "uid": f"uid-{namespace}-{name}",
            "creationTimestamp": CREATED_AT,
        },
        "spec": body,
    }


@pytest.fixture
def store():
    """Empty in-memory cluster."""
    from primer.store import InMemoryStateStore
    return InMemoryStateStore()


@pytest.fixture
def images():
    from primer.bootstrap.config import ImageConfig
    return ImageConfig()


@pytest.fixture
def generator(images):
    from primer.resources.generator import ResourceSpecGenerator
    return ResourceSpecGenerator(images)


@pytest.fixture
def engine(store, generator):
    from primer.kernel.engine import ReconciliationEngine
    return ReconciliationEngine(store, generator=generator)


@pytest.fixture
def make_export(store):
    """Add an Export to the store and return its key."""
    def _make(name: str = "sample", namespace: str = "team-a", method: str = "git", **spec: Any) -> str:
        store.add(export_object(name, namespace, method, **spec))
        return f"{namespace}/{name}"
    return _make


@pytest.fixture
def make_request():
    """Build an ExportRequest without a store."""
    from primer.core.export import ExportRequest

    def _make(name: str = "sample", namespace: str = "team-a", method: str = "git", **spec: Any):
        return ExportRequest.from_dict(export_object(name, namespace, method, **spec))
    return _make


@pytest.fixture
def child_ref():
    """Reference to a managed object of an export."""
    from primer.core.enums import ResourceKind
    from primer.store import ResourceRef

    def _ref(kind: "ResourceKind", name: str = "sample", namespace: str = "team-a") -> ResourceRef:
        if kind.cluster_scoped:
            return ResourceRef(kind.api_version, kind.value, f"primer-export-{namespace}-{name}")
        return ResourceRef(kind.api_version, kind.value, f"primer-export-{name}", namespace)
    return _ref


@pytest.fixture
def export_ref():
    from primer.store import ResourceRef

    def _ref(name: str = "sample", namespace: str = "team-a") -> ResourceRef:
        return ResourceRef("primer.gitops.io/v1alpha1", "Export", name, namespace)
    return _ref


@pytest.fixture
def converge(engine):
    """Run passes until one does not ask for a requeue."""
    def _converge(key: str, max_passes: int = 20) -> List:
        results = []
        for _ in range(max_passes):
            result = engine.reconcile(key)
            results.append(result)
            if not result.requeue:
                return results
        raise AssertionError(f"{key} still requeueing after {max_passes} passes")
    return _converge


@pytest.fixture
def export_status(store, export_ref):
    """Current status of an export in the store."""
    def _status(name: str = "sample", namespace: str = "team-a") -> Optional[Dict[str, Any]]:
        obj = store.peek(export_ref(name, namespace))
        return (obj or {}).get("status")
    return _status
