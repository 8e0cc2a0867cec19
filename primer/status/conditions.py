"""
status/conditions.py - Status condition bookkeeping.

Conditions are keyed by type: writing a type that already exists replaces
the entry in place. The transition time only moves when the status value
changes.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, TYPE_CHECKING
import logging

from ..core.constants import (
    CONDITION_RECONCILED,
    MESSAGE_COMPLETE,
    REASON_COMPLETE,
    REASON_ERROR,
)
from ..core.enums import ConditionStatus
from ..core.timestamps import RFC3339_FORMAT, parse_timestamp, utcnow

if TYPE_CHECKING:
    from ..core.export import ExportRequest

logger = logging.getLogger("status.conditions")


@dataclass
class Condition:
    """Single status condition."""

    type: str
    status: ConditionStatus = ConditionStatus.UNKNOWN
    reason: str = ""
    message: str = ""
    last_transition_time: datetime = field(default_factory=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "status": self.status.value,
            "reason": self.reason,
            "message": self.message,
            "lastTransitionTime": self.last_transition_time.strftime(RFC3339_FORMAT),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Condition":
        return cls(
            type=data.get("type", ""),
            status=ConditionStatus(data.get("status", ConditionStatus.UNKNOWN.value)),
            reason=data.get("reason", ""),
            message=data.get("message", ""),
            last_transition_time=parse_timestamp(data.get("lastTransitionTime")) or utcnow(),
        )


class StatusConditionTracker:
    """
    Maintains the condition set on an export's status.

    Every failure path of a pass writes Reconciled/False/Error with the
    failure text; the completion transition writes Reconciled/True/Complete.
    """

    def __init__(self, clock: Callable[[], datetime] = None):
        self._clock = clock or utcnow

    def upsert(
        self,
        conditions: Optional[List[Condition]],
        type: str,
        status: ConditionStatus,
        reason: str,
        message: str,
    ) -> List[Condition]:
        """
        Insert or replace the condition of the given type.

        Args:
            conditions: Existing collection, or None if never written
            type: Condition type (the key)
            status: New status value
            reason: Machine-readable reason
            message: Human-readable message

        Returns:
            The collection holding the new condition, sorted by type
        """
        if conditions is None:
            conditions = []

        new = Condition(
            type=type,
            status=status,
            reason=reason,
            message=message,
            last_transition_time=self._clock(),
        )

        for i, existing in enumerate(conditions):
            if existing.type == type:
                if existing.status == status:
                    new.last_transition_time = existing.last_transition_time
                conditions[i] = new
                return conditions

        conditions.append(new)
        conditions.sort(key=lambda c: c.type)
        return conditions

    def get(self, conditions: Optional[List[Condition]], type: str) -> Optional[Condition]:
        """Return the condition of the given type, if present."""
        for condition in conditions or []:
            if condition.type == type:
                return condition
        return None

    def mark_error(self, request: "ExportRequest", error: BaseException) -> None:
        """Record a failed pass on the request's status."""
        request.status.conditions = self.upsert(
            request.status.conditions,
            CONDITION_RECONCILED,
            ConditionStatus.FALSE,
            REASON_ERROR,
            str(error),
        )
        logger.debug(f"Recorded error condition on {request.key}: {error}")

    def mark_complete(self, request: "ExportRequest") -> None:
        """Record the completion transition on the request's status."""
        request.status.conditions = self.upsert(
            request.status.conditions,
            CONDITION_RECONCILED,
            ConditionStatus.TRUE,
            REASON_COMPLETE,
            MESSAGE_COMPLETE,
        )
