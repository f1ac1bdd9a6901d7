"""Nix engine backed by the nix command line interface.

``NixCLI`` wraps one nix subcommand per method (eval, build, derivation show,
path-info, store delete) and pairs it with the matching decoder. On top of
those primitives it offers the two reconciliation policies used by the
resource layer:

* ``ensure_realized`` returns an existing valid artifact without building,
  and only falls back to ``nix build`` when the probe says it is missing.
* ``verify_recorded`` probes a previously recorded artifact and reports
  whether it is still fully present in the store.

Nothing is cached between calls: the store is the only source of truth and
may change out of band (builds, garbage collection, remote copies).
"""

from __future__ import annotations

import asyncio
from typing import Any

from ..config import Config
from ..utils import print_status, print_success
from .decoders import (
    decode_build,
    decode_derivation_show,
    decode_eval,
    decode_eval_raw,
    decode_path_info,
)
from .errors import ExecutionFailure, NotFoundFailure
from .executor import NixExecutor
from .models import Artifact, ArtifactPath, EvaluateRequest, ValidityResult

DELETE_GC_WARNING = (
    "Deleting a store path does not garbage-collect its dependencies. "
    "Run nix-collect-garbage if needed "
    "(https://nixos.org/manual/nix/stable/command-ref/nix-collect-garbage)."
)

# Emitted by ``nix path-info`` when the store has no record of a path.
UNKNOWN_PATH_MARKERS = ("is not valid", "does not exist")


def is_unknown_path(exc: ExecutionFailure) -> bool:
    """Whether a failed path-info ran to completion and reported the path unknown.

    Timeouts (no return code) and engine failures such as an unreachable
    daemon or lock contention do not count.
    """
    if not exc.returncode:
        return False
    return any(marker in exc.stderr for marker in UNKNOWN_PATH_MARKERS)


class NixCLI:
    """Resolves installables to store artifacts using the ``nix`` CLI."""

    def __init__(self, executor: NixExecutor | None = None):
        self.executor = executor or NixExecutor()

    @classmethod
    def from_config(cls, config: Config) -> "NixCLI":
        return cls(NixExecutor.from_config(config.nix))

    # ------------------------------------------------------------------
    # Primitives
    # ------------------------------------------------------------------

    async def evaluate(self, installable: str, apply: str | None = None) -> Any:
        """Evaluate an expression with ``nix eval --json``.

        Args:
            installable: Flake attribute, expression, or store path to evaluate.
            apply: Optional nix function applied to the result by nix itself.

        Returns:
            The decoded JSON value, unchanged.
        """
        stdout = await self.executor.run(
            "eval", *self._eval_args(installable, apply), installable=installable
        )
        return decode_eval(stdout, installable)

    async def evaluate_request(self, request: EvaluateRequest) -> str:
        """Evaluate a request and return the result as compact JSON text."""
        stdout = await self.executor.run(
            "eval",
            *self._eval_args(request.installable, request.apply),
            installable=request.installable,
        )
        return decode_eval_raw(stdout, request.installable)

    @staticmethod
    def _eval_args(installable: str, apply: str | None) -> list[str]:
        args = [installable, "--json"]
        if apply is not None:
            args += ["--apply", apply]
        return args

    async def build(self, installable: str) -> ArtifactPath:
        """Build (or fetch) an installable and return its recipe/output pair.

        This may be slow: it can trigger a full build or a network download.
        """
        print_status(f"Building {installable}...")
        stdout = await self.executor.run(
            "build", "--no-link", "--json", installable, installable=installable
        )
        path = decode_build(stdout, installable)
        print_success(f"Built {path.output_path or path.drv_path}")
        return path

    async def describe(self, installable: str) -> Artifact:
        """Return derivation metadata for an installable without building it."""
        stdout = await self.executor.run(
            "derivation show", installable, installable=installable
        )
        return decode_derivation_show(stdout, installable)

    async def check_validity(self, installable: str) -> ValidityResult:
        """Probe whether an installable's path is present in the local store.

        A path the store knows about but whose content is gone yields
        ``valid=False``; it is not an error.
        """
        stdout = await self.executor.run(
            "path-info", "--json", installable, installable=installable
        )
        return decode_path_info(stdout, installable)

    async def delete(self, installable: str) -> None:
        """Delete a path from the store with ``nix store delete``.

        Dependencies that become unreferenced are NOT reclaimed; see
        ``DELETE_GC_WARNING``.
        """
        print_status(f"Deleting {installable} from the store...")
        await self.executor.run("store delete", installable, installable=installable)

    # ------------------------------------------------------------------
    # Reconciliation policies
    # ------------------------------------------------------------------

    async def ensure_realized(self, installable: str) -> ArtifactPath:
        """Return the artifact for an installable, building only when needed.

        A valid path-info probe is reused as-is. An invalid probe, or a probe
        that fails because the store has no record of the installable (e.g.
        a derivation that was never built), falls back to ``build``.
        """
        try:
            probe = await self.check_validity(installable)
        except (ExecutionFailure, NotFoundFailure):
            probe = None

        if probe is not None and probe.valid:
            return probe.path
        return await self.build(installable)

    async def verify_recorded(self, recorded: ArtifactPath) -> bool:
        """Check that both sides of a recorded artifact are still valid.

        The recipe and output paths are probed concurrently. An empty side is
        not probed. A side that nix reports as unknown counts as invalid; any
        other engine failure (timeout, unreachable daemon) propagates.
        Returns ``False`` when a full rebuild is required.
        """
        paths = [p for p in (recorded.drv_path, recorded.output_path) if p]
        if not paths:
            return False

        results = await asyncio.gather(*(self._probe(p) for p in paths))
        return all(results)

    async def _probe(self, path: str) -> bool:
        try:
            result = await self.check_validity(path)
        except ExecutionFailure as exc:
            if is_unknown_path(exc):
                return False
            raise
        return result.valid
