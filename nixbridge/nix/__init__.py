"""nixbridge nix integration.

Drives the ``nix`` command line: runs subcommands, decodes their JSON output
into a uniform artifact model, and synchronises store paths between stores.

Key classes:
    NixExecutor        - Child-process execution of nix subcommands
    NixCLI             - eval / build / describe / path-info / delete + reconciliation
    StoreSynchronizer  - nix copy and remote existence probes
    BinaryCacheProbe   - narinfo lookups against HTTP binary caches
"""

from .cli import DELETE_GC_WARNING, NixCLI
from .decoders import (
    decode_build,
    decode_derivation_show,
    decode_eval,
    decode_eval_raw,
    decode_path_info,
    select_output,
)
from .errors import (
    AmbiguousResultFailure,
    DecodeFailure,
    ExecutionFailure,
    NixError,
    NotFoundFailure,
    RemoteProbeFailure,
)
from .executor import NixExecutor
from .models import (
    Artifact,
    ArtifactPath,
    CopyRequest,
    EvaluateRequest,
    RemoteExistsRequest,
    TransportOptions,
    ValidityResult,
)
from .sync import MISSING_SUBSTITUTER_MARKER, BinaryCacheProbe, StoreSynchronizer

__all__ = [
    # Engine
    "NixCLI",
    "NixExecutor",
    "DELETE_GC_WARNING",
    # Synchronisation
    "StoreSynchronizer",
    "BinaryCacheProbe",
    "MISSING_SUBSTITUTER_MARKER",
    # Decoders
    "select_output",
    "decode_eval",
    "decode_eval_raw",
    "decode_build",
    "decode_derivation_show",
    "decode_path_info",
    # Model
    "Artifact",
    "ArtifactPath",
    "ValidityResult",
    "CopyRequest",
    "EvaluateRequest",
    "RemoteExistsRequest",
    "TransportOptions",
    # Errors
    "NixError",
    "ExecutionFailure",
    "DecodeFailure",
    "NotFoundFailure",
    "AmbiguousResultFailure",
    "RemoteProbeFailure",
]
