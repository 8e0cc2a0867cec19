"""
status/ - Export status bookkeeping

Keyed, upsertable status conditions for Export objects.
"""

from .conditions import (
    Condition,
    StatusConditionTracker,
)

__all__ = [
    "Condition",
    "StatusConditionTracker",
]
