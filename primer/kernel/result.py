"""
kernel/result.py - Outcome of a reconciliation pass.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from ..core.enums import ReconcileOutcome, ResourceKind
from ..core.timestamps import format_rfc3339, utcnow
from ..errors import PrimerError


@dataclass
class ReconcileResult:
    """What one pass did and what the runner should do next."""

    key: str
    outcome: ReconcileOutcome
    error: Optional[PrimerError] = None
    created: Optional[ResourceKind] = None
    completed: bool = False
    # the export itself was not found
    missing: bool = False
    finished_at: datetime = field(default_factory=utcnow)

    @property
    def requeue(self) -> bool:
        return self.outcome == ReconcileOutcome.REQUEUE

    @property
    def failed(self) -> bool:
        return self.outcome == ReconcileOutcome.ERROR

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "outcome": self.outcome.value,
            "error": self.error.to_dict() if self.error else None,
            "created": self.created.value if self.created else None,
            "completed": self.completed,
            "finished_at": format_rfc3339(self.finished_at),
        }
