"""State store for gangsheet.

Holds the immutable builder snapshot and the validated mutators that
replace it.
"""

from gangsheet.store.models import (
    AddInstancesResult,
    DesignFile,
    DesignUpload,
    GangBuilderState,
    InstanceUpdate,
    PlacedInstance,
)
from gangsheet.store.store import GangBuilderStore, Subscription, state_violations

__all__ = [
    "AddInstancesResult",
    "DesignFile",
    "DesignUpload",
    "GangBuilderState",
    "GangBuilderStore",
    "InstanceUpdate",
    "PlacedInstance",
    "Subscription",
    "state_violations",
]
