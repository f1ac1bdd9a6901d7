"""Derivation resource: keeps an installable built in the local store.

Read checks the recorded artifact first and only rebuilds when nix reports
either the recipe or the output as gone. Delete removes the output path from
the store but never garbage-collects its dependencies.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from ..nix.cli import DELETE_GC_WARNING, NixCLI
from ..nix.models import ArtifactPath
from ..utils import print_warning
from .base import ReconcileResult


class DerivationState(BaseModel):
    """Persisted state of a derivation resource."""
    installable: str = Field(..., description="Store path, flake attribute, or expression")
    drv_path: str = Field(default="", description="Path to the derivation file")
    output_path: str = Field(default="", description="Path to the derivation output")

    @property
    def artifact(self) -> ArtifactPath:
        return ArtifactPath(drv_path=self.drv_path, output_path=self.output_path)

    def with_artifact(self, path: ArtifactPath) -> "DerivationState":
        return self.model_copy(update={"drv_path": path.drv_path, "output_path": path.output_path})


class DerivationResource:
    """Create/read/update/delete reconciler for built derivations."""

    def __init__(self, nix: NixCLI):
        self.nix = nix

    async def create(self, plan: DerivationState) -> ReconcileResult[DerivationState]:
        path = await self.nix.ensure_realized(plan.installable)
        return ReconcileResult(state=plan.with_artifact(path))

    async def read(self, state: DerivationState) -> ReconcileResult[DerivationState]:
        """Refresh state, rebuilding when the recorded artifact is gone.

        There is no partial repair: a missing recipe or output triggers a
        full ``nix build`` of the installable.
        """
        if await self.nix.verify_recorded(state.artifact):
            return ReconcileResult(state=state)

        print_warning(f"recorded artifact for {state.installable} is no longer valid, rebuilding")
        path = await self.nix.build(state.installable)
        return ReconcileResult(state=state.with_artifact(path))

    async def update(self, plan: DerivationState) -> ReconcileResult[DerivationState]:
        return await self.create(plan)

    async def delete(self, state: DerivationState) -> ReconcileResult[DerivationState]:
        target = state.output_path or state.installable
        await self.nix.delete(target)
        return ReconcileResult.gone().warn(DELETE_GC_WARNING)
