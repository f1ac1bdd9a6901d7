"""Store path resource: builds an installable and exposes its store paths.

Unlike the derivation resource, read never rebuilds on its own. If the
artifact described by the installable is no longer fully present, the
resource is reported as removed so the next apply recreates it.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from ..nix.cli import NixCLI
from .base import ReconcileResult

DELETE_NOOP_WARNING = (
    "Delete operation is a no-op for store paths: removing them may have "
    "consequences outside of this plan. Use nix-collect-garbage if needed."
)


class StorePathState(BaseModel):
    """Persisted state of a store path resource."""
    installable: str = Field(..., description="Store path, flake attribute, or expression")
    drv_path: str = Field(default="", description="Path to the derivation file")
    output_path: str = Field(default="", description="Path to the derivation output")
    system: str = Field(default="", description="System the derivation is built for")


class StorePathResource:
    """Create/read/update/delete reconciler for built store paths."""

    def __init__(self, nix: NixCLI):
        self.nix = nix

    async def _realize(self, plan: StorePathState) -> StorePathState:
        path = await self.nix.build(plan.installable)
        # Describe the built recipe rather than the installable so the system
        # matches exactly what was built.
        derivation = await self.nix.describe(path.drv_path or plan.installable)
        return plan.model_copy(
            update={
                "drv_path": path.drv_path,
                "output_path": path.output_path,
                "system": derivation.system,
            }
        )

    async def create(self, plan: StorePathState) -> ReconcileResult[StorePathState]:
        return ReconcileResult(state=await self._realize(plan))

    async def read(self, state: StorePathState) -> ReconcileResult[StorePathState]:
        derivation = await self.nix.describe(state.installable)
        if not await self.nix.verify_recorded(derivation.path):
            return ReconcileResult.gone()

        return ReconcileResult(
            state=state.model_copy(
                update={
                    "drv_path": derivation.drv_path,
                    "output_path": derivation.output_path,
                    "system": derivation.system,
                }
            )
        )

    async def update(self, plan: StorePathState) -> ReconcileResult[StorePathState]:
        return ReconcileResult(state=await self._realize(plan))

    async def delete(self, state: StorePathState) -> ReconcileResult[StorePathState]:
        return ReconcileResult.gone().warn(DELETE_NOOP_WARNING)
