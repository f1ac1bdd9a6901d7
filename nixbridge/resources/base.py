"""Shared result type for resource reconcilers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Generic, TypeVar

from pydantic import BaseModel

from ..utils import print_warning

StateT = TypeVar("StateT", bound=BaseModel)


@dataclass
class ReconcileResult(Generic[StateT]):
    """Outcome of one create/read/update/delete call.

    ``state`` is what the plugin should persist. ``removed=True`` means the
    resource no longer exists and must be dropped from state (it will be
    recreated on the next apply). ``warnings`` are user-facing messages the
    plugin should surface as diagnostics.
    """

    state: StateT | None = None
    removed: bool = False
    warnings: list[str] = field(default_factory=list)

    @classmethod
    def gone(cls, *warnings: str) -> "ReconcileResult[StateT]":
        return cls(state=None, removed=True, warnings=list(warnings))

    def warn(self, message: str) -> "ReconcileResult[StateT]":
        print_warning(message)
        self.warnings.append(message)
        return self
