"""
store/memory.py - In-memory state store

Dict-backed StateStore used by tests and local dry runs. Besides the
StateStore operations it can:
- inject failures per operation and kind
- record every write as an event, in order
- simulate platform progress (job success, deployment readiness,
  route host assignment)
- garbage-collect owned objects when an Export is deleted
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple
import copy
import itertools
import logging
import threading
import uuid

from .base import Lookup, ResourceRef, StateStore
from ..core.constants import EXPORT_API_VERSION, EXPORT_KIND
from ..core.timestamps import format_rfc3339, utcnow
from ..errors import StateStoreError

logger = logging.getLogger("store.memory")

ObjectKey = Tuple[str, str, Optional[str], str]


class NotFound(Exception):
    """Object does not exist."""


class AlreadyExists(Exception):
    """Object with this name already exists."""


class Conflict(Exception):
    """Object was modified since it was read."""


@dataclass
class StoreEvent:
    """One write recorded by the store."""
    operation: str  # create | update_status | delete
    kind: str
    name: str
    namespace: Optional[str] = None
    propagation_policy: Optional[str] = None


@dataclass
class _Failure:
    operation: str
    kind: str
    error: Exception
    remaining: Optional[int] = None


@dataclass
class _State:
    objects: Dict[ObjectKey, Dict[str, Any]] = field(default_factory=dict)
    events: List[StoreEvent] = field(default_factory=list)
    failures: List[_Failure] = field(default_factory=list)


class InMemoryStateStore(StateStore):
    """Thread-safe dict-backed StateStore."""

    def __init__(self):
        self._state = _State()
        self._lock = threading.RLock()
        self._versions = itertools.count(1)

    # =========================================================================
    # StateStore
    # =========================================================================

    def get_export(self, namespace: str, name: str) -> Lookup:
        return self.get(ResourceRef(EXPORT_API_VERSION, EXPORT_KIND, name, namespace))

    def list_exports(self, namespace: Optional[str] = None) -> List[Dict[str, Any]]:
        with self._lock:
            self._check_failure("list", EXPORT_KIND, EXPORT_KIND, namespace)
            return [
                copy.deepcopy(obj)
                for (api_version, kind, ns, _), obj in sorted(self._state.objects.items(), key=lambda i: str(i[0]))
                if kind == EXPORT_KIND and (namespace is None or ns == namespace)
            ]

    def get(self, ref: ResourceRef) -> Lookup:
        with self._lock:
            try:
                self._check_failure("get", ref.kind, ref.name, ref.namespace)
            except StateStoreError as e:
                return Lookup.failed(e)
            obj = self._state.objects.get(self._key(ref))
            if obj is None:
                return Lookup.absent()
            return Lookup.found(copy.deepcopy(obj))

    def create(self, manifest: Dict[str, Any]) -> Dict[str, Any]:
        ref = ResourceRef.from_manifest(manifest)
        with self._lock:
            self._check_failure("create", ref.kind, ref.name, ref.namespace)
            key = self._key(ref)
            if key in self._state.objects:
                raise StateStoreError(
                    "create", ref.kind, ref.name,
                    AlreadyExists(f'{ref.kind.lower()} "{ref.name}" already exists'),
                    namespace=ref.namespace,
                )

            obj = copy.deepcopy(manifest)
            metadata = obj.setdefault("metadata", {})
            metadata.setdefault("uid", str(uuid.uuid4()))
            metadata.setdefault("creationTimestamp", format_rfc3339(utcnow()))
            metadata["resourceVersion"] = str(next(self._versions))
            self._state.objects[key] = obj
            self._state.events.append(StoreEvent("create", ref.kind, ref.name, ref.namespace))
            logger.debug(f"Created {ref}")
            return copy.deepcopy(obj)

    def update_status(self, export: Dict[str, Any]) -> Dict[str, Any]:
        ref = ResourceRef.from_manifest(export)
        with self._lock:
            self._check_failure("update_status", ref.kind, ref.name, ref.namespace)
            stored = self._state.objects.get(self._key(ref))
            if stored is None:
                raise StateStoreError(
                    "update status of", ref.kind, ref.name,
                    NotFound(f'{ref.kind.lower()} "{ref.name}" not found'),
                    namespace=ref.namespace,
                )

            expected = (export.get("metadata") or {}).get("resourceVersion")
            current = stored["metadata"].get("resourceVersion")
            if expected and expected != current:
                raise StateStoreError(
                    "update status of", ref.kind, ref.name,
                    Conflict("the object has been modified; please apply your changes to the latest version"),
                    namespace=ref.namespace,
                )

            stored["status"] = copy.deepcopy(export.get("status") or {})
            stored["metadata"]["resourceVersion"] = str(next(self._versions))
            self._state.events.append(StoreEvent("update_status", ref.kind, ref.name, ref.namespace))
            return copy.deepcopy(stored)

    def delete(self, ref: ResourceRef, propagation_policy: Optional[str] = None) -> None:
        with self._lock:
            self._check_failure("delete", ref.kind, ref.name, ref.namespace)
            obj = self._state.objects.pop(self._key(ref), None)
            if obj is None:
                raise StateStoreError(
                    "delete", ref.kind, ref.name,
                    NotFound(f'{ref.kind.lower()} "{ref.name}" not found'),
                    namespace=ref.namespace,
                )
            self._state.events.append(
                StoreEvent("delete", ref.kind, ref.name, ref.namespace, propagation_policy)
            )
            self._collect_dependents(obj["metadata"].get("uid"))

    # =========================================================================
    # Test and simulation helpers
    # =========================================================================

    def add(self, obj: Dict[str, Any]) -> Dict[str, Any]:
        """Insert an object directly, without recording an event."""
        ref = ResourceRef.from_manifest(obj)
        with self._lock:
            stored = copy.deepcopy(obj)
            metadata = stored.setdefault("metadata", {})
            metadata.setdefault("uid", str(uuid.uuid4()))
            metadata.setdefault("creationTimestamp", format_rfc3339(utcnow()))
            metadata["resourceVersion"] = str(next(self._versions))
            self._state.objects[self._key(ref)] = stored
            return copy.deepcopy(stored)

    def peek(self, ref: ResourceRef) -> Optional[Dict[str, Any]]:
        """Return a copy of an object, bypassing failure injection."""
        with self._lock:
            obj = self._state.objects.get(self._key(ref))
            return copy.deepcopy(obj) if obj is not None else None

    def exists(self, ref: ResourceRef) -> bool:
        with self._lock:
            return self._key(ref) in self._state.objects

    def patch_status(self, ref: ResourceRef, status: Dict[str, Any]) -> None:
        """Merge fields into an object's status, as a platform controller would."""
        with self._lock:
            obj = self._state.objects[self._key(ref)]
            obj.setdefault("status", {}).update(status)
            obj["metadata"]["resourceVersion"] = str(next(self._versions))

    def patch_spec(self, ref: ResourceRef, spec: Dict[str, Any]) -> None:
        """Merge fields into an object's spec."""
        with self._lock:
            obj = self._state.objects[self._key(ref)]
            obj.setdefault("spec", {}).update(spec)
            obj["metadata"]["resourceVersion"] = str(next(self._versions))

    def succeed_job(self, ref: ResourceRef) -> None:
        """Report a job's single pod as succeeded."""
        self.patch_status(ref, {"succeeded": 1})

    def mark_ready(self, ref: ResourceRef, replicas: int = 1) -> None:
        """Report ready replicas on a deployment."""
        self.patch_status(ref, {"readyReplicas": replicas})

    def assign_host(self, ref: ResourceRef, host: str) -> None:
        """Assign a host to a route, as the router does on admission."""
        self.patch_spec(ref, {"host": host})

    def fail_on(
        self,
        operation: str,
        kind: str,
        error: Optional[Exception] = None,
        times: Optional[int] = None,
    ) -> None:
        """
        Make an operation fail for a kind.

        Args:
            operation: get, list, create, update_status or delete
            kind: Object kind, e.g. "Route"
            error: Underlying cause (defaults to a generic server error)
            times: Number of failures before the operation recovers (None = forever)
        """
        with self._lock:
            self._state.failures.append(_Failure(
                operation=operation,
                kind=kind,
                error=error or RuntimeError("internal error"),
                remaining=times,
            ))

    def clear_failures(self) -> None:
        with self._lock:
            self._state.failures.clear()

    @property
    def events(self) -> List[StoreEvent]:
        with self._lock:
            return list(self._state.events)

    def created_kinds(self) -> List[str]:
        """Kinds in creation order."""
        return [e.kind for e in self.events if e.operation == "create"]

    def deleted_kinds(self) -> List[str]:
        """Kinds in deletion order."""
        return [e.kind for e in self.events if e.operation == "delete"]

    # =========================================================================
    # Internals
    # =========================================================================

    @staticmethod
    def _key(ref: ResourceRef) -> ObjectKey:
        return (ref.api_version, ref.kind, ref.namespace, ref.name)

    def _check_failure(self, operation: str, kind: str, name: str, namespace: Optional[str]) -> None:
        for failure in self._state.failures:
            if failure.operation != operation or failure.kind != kind:
                continue
            if failure.remaining is not None:
                if failure.remaining <= 0:
                    continue
                failure.remaining -= 1
            verb = "update status of" if operation == "update_status" else operation
            raise StateStoreError(verb, kind, name, failure.error, namespace=namespace)

    def _collect_dependents(self, owner_uid: Optional[str]) -> None:
        if not owner_uid:
            return
        dependents = [
            key for key, obj in self._state.objects.items()
            if any(o.get("uid") == owner_uid for o in obj["metadata"].get("ownerReferences") or [])
        ]
        for key in dependents:
            obj = self._state.objects.pop(key)
            logger.debug(f"Garbage collected {key[1]} {key[3]}")
            self._collect_dependents(obj["metadata"].get("uid"))
