"""Store path copy resource: keeps a closure present in another store.

Copies are always executed fresh on create/update. Read asks the destination
store whether the path is still there; if not, the resource is reported as
removed so the next apply copies it again.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from ..nix.models import CopyRequest, RemoteExistsRequest
from ..nix.sync import StoreSynchronizer
from .base import ReconcileResult

DELETE_NOOP_WARNING = (
    "Delete operation is a no-op for copied store paths: removing them may have "
    "consequences outside of this plan. Use nix-collect-garbage on the remote "
    "store if needed."
)


class StorePathCopyState(BaseModel):
    """Persisted state of a store path copy resource."""
    store_path: str = Field(..., description="Store path to copy")
    to_store: str = Field(..., description="URL of the destination store")
    from_store: Optional[str] = Field(default=None, description="URL of the source store")
    check_signatures: Optional[bool] = Field(
        default=None, description="Whether paths must be signed by trusted keys"
    )
    substitute_on_destination: Optional[bool] = Field(
        default=None, description="Let the destination fetch substitutes itself (SSH stores)"
    )
    ssh_options: list[str] = Field(default_factory=list, description="SSH connection options")

    def copy_request(self) -> CopyRequest:
        return CopyRequest(
            installable=self.store_path,
            from_store=self.from_store,
            to_store=self.to_store,
            check_signatures=self.check_signatures,
            substitute_on_destination=self.substitute_on_destination,
            ssh_options=self.ssh_options,
        )

    def exists_request(self) -> RemoteExistsRequest:
        return RemoteExistsRequest(
            installable=self.store_path,
            store=self.to_store,
            ssh_options=self.ssh_options,
        )


class StorePathCopyResource:
    """Create/read/update/delete reconciler for store-to-store copies."""

    def __init__(self, sync: StoreSynchronizer):
        self.sync = sync

    async def create(self, plan: StorePathCopyState) -> ReconcileResult[StorePathCopyState]:
        await self.sync.copy(plan.copy_request())
        return ReconcileResult(state=plan)

    async def read(self, state: StorePathCopyState) -> ReconcileResult[StorePathCopyState]:
        if not await self.sync.remote_store_path_exists(state.exists_request()):
            return ReconcileResult.gone()
        return ReconcileResult(state=state)

    async def update(self, plan: StorePathCopyState) -> ReconcileResult[StorePathCopyState]:
        return await self.create(plan)

    async def delete(self, state: StorePathCopyState) -> ReconcileResult[StorePathCopyState]:
        return ReconcileResult.gone().warn(DELETE_NOOP_WARNING)
