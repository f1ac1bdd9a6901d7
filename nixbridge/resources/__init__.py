"""nixbridge resource reconcilers.

Compose the nix engine primitives into create/read/update/delete operations
for each resource kind, plus read-only data sources. Results are plain Python
values; the plugin layer only marshals them.

Key classes:
    DerivationResource     - Keep an installable built, rebuild when collected
    StorePathResource      - Build an installable and expose its system
    StorePathCopyResource  - Keep a closure present in another store
    ReconcileResult        - State + removed flag + user-facing warnings
"""

from .base import ReconcileResult
from .data_sources import (
    DerivationData,
    EvalData,
    StorePathData,
    read_derivation,
    read_eval,
    read_store_path,
)
from .derivation import DerivationResource, DerivationState
from .store_path import StorePathResource, StorePathState
from .store_path_copy import StorePathCopyResource, StorePathCopyState

__all__ = [
    "ReconcileResult",
    # Resources
    "DerivationResource",
    "DerivationState",
    "StorePathResource",
    "StorePathState",
    "StorePathCopyResource",
    "StorePathCopyState",
    # Data sources
    "EvalData",
    "StorePathData",
    "DerivationData",
    "read_eval",
    "read_store_path",
    "read_derivation",
]
