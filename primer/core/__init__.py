"""
Primer Core Module

Contains the foundation layer:
- Enumerations shared by every module
- Naming and workload constants
- The Export request model (primer.core.export)
"""

from primer.core.enums import (
    ExportMethod,
    ConditionStatus,
    ReconcileOutcome,
    LookupState,
    ResourceKind,
)

__all__ = [
    "ExportMethod",
    "ConditionStatus",
    "ReconcileOutcome",
    "LookupState",
    "ResourceKind",
]
