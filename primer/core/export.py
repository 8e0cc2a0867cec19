"""
core/export.py - Export request model.

Parses the Export custom resource into typed structures and renders it back
for status writes. Spec validation goes through pydantic; metadata and status
are plain dataclasses.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional
import copy

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from .constants import EXPORT_API_VERSION, EXPORT_KIND
from .enums import ExportMethod
from .timestamps import format_rfc3339, parse_timestamp
from ..status.conditions import Condition


class ExportSpec(BaseModel):
    """Desired export, as declared by the user."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    method: ExportMethod
    repo: str = Field(default="", validation_alias=AliasChoices("repo", "repository"))
    branch: str = ""
    email: str = ""
    user: str = ""
    secret: str = Field(default="", validation_alias=AliasChoices("secret", "secretRef"))


@dataclass
class ExportStatus:
    """Observed export state written back by the operator."""

    completed: bool = False
    route: str = ""
    # None until the first condition is written
    conditions: Optional[List[Condition]] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "completed": self.completed,
            "route": self.route,
        }
        if self.conditions is not None:
            data["conditions"] = [c.to_dict() for c in self.conditions]
        return data

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ExportStatus":
        data = data or {}
        conditions = data.get("conditions")
        return cls(
            completed=bool(data.get("completed", False)),
            route=data.get("route") or "",
            conditions=[Condition.from_dict(c) for c in conditions] if conditions is not None else None,
        )


@dataclass
class ExportRequest:
    """
    An Export object as seen by one reconciliation pass.

    ``spec`` is None when the stored spec failed validation; ``spec_error``
    then carries the validation message so the pass can report it.
    """

    name: str
    namespace: str
    uid: str = ""
    resource_version: str = ""
    creation_timestamp: Optional[datetime] = None

    spec: Optional[ExportSpec] = None
    spec_error: Optional[str] = None
    status: ExportStatus = field(default_factory=ExportStatus)

    # Object as read from the store, reused for status writes
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    @property
    def key(self) -> str:
        return f"{self.namespace}/{self.name}"

    @property
    def method(self) -> Optional[ExportMethod]:
        return self.spec.method if self.spec else None

    @property
    def created_at(self) -> str:
        """Creation timestamp in RFC3339, as handed to the export job."""
        return format_rfc3339(self.creation_timestamp)

    def owner_reference(self) -> Dict[str, Any]:
        """Controller reference placed on every namespaced child."""
        return {
            "apiVersion": EXPORT_API_VERSION,
            "kind": EXPORT_KIND,
            "name": self.name,
            "uid": self.uid,
            "controller": True,
            "blockOwnerDeletion": True,
        }

    def to_dict(self) -> Dict[str, Any]:
        """Render the full object with the current status."""
        obj = copy.deepcopy(self.raw) if self.raw else {
            "apiVersion": EXPORT_API_VERSION,
            "kind": EXPORT_KIND,
            "metadata": {"name": self.name, "namespace": self.namespace},
            "spec": self.spec.model_dump() if self.spec else {},
        }
        metadata = obj.setdefault("metadata", {})
        if self.resource_version:
            metadata["resourceVersion"] = self.resource_version
        obj["status"] = self.status.to_dict()
        return obj

    @classmethod
    def from_dict(cls, obj: Dict[str, Any]) -> "ExportRequest":
        metadata = obj.get("metadata") or {}
        spec: Optional[ExportSpec] = None
        spec_error: Optional[str] = None
        try:
            spec = ExportSpec.model_validate(obj.get("spec") or {})
        except ValidationError as e:
            spec_error = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'spec'}: {err['msg']}"
                for err in e.errors()
            )

        return cls(
            name=metadata.get("name", ""),
            namespace=metadata.get("namespace", ""),
            uid=metadata.get("uid", ""),
            resource_version=str(metadata.get("resourceVersion") or ""),
            creation_timestamp=parse_timestamp(metadata.get("creationTimestamp")),
            spec=spec,
            spec_error=spec_error,
            status=ExportStatus.from_dict(obj.get("status")),
            raw=copy.deepcopy(obj),
        )
