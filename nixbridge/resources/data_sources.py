"""Read-only data sources: evaluation results, store path info, derivations."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from ..nix.cli import NixCLI
from ..nix.models import EvaluateRequest


class EvalData(BaseModel):
    installable: str
    apply: Optional[str] = None
    output: str = Field(default="", description="Expression result, JSON encoded")


class StorePathData(BaseModel):
    installable: str
    drv_path: str = ""
    output_path: str = ""
    valid: bool = Field(default=False, description="Whether the output is usable")


class DerivationData(BaseModel):
    installable: str
    name: str = ""
    system: str = ""
    drv_path: str = ""
    output_path: str = ""


async def read_eval(nix: NixCLI, installable: str, apply: str | None = None) -> EvalData:
    output = await nix.evaluate_request(EvaluateRequest(installable=installable, apply=apply))
    return EvalData(installable=installable, apply=apply, output=output)


async def read_store_path(nix: NixCLI, installable: str) -> StorePathData:
    """Report the paths of an installable and whether its output is realised.

    When the output is not valid, the paths come from the derivation instead,
    so an unbuilt installable still exposes where it would land.
    """
    probe = await nix.check_validity(installable)
    path = probe.path
    if not probe.valid:
        path = (await nix.describe(installable)).path

    return StorePathData(
        installable=installable,
        drv_path=path.drv_path,
        output_path=path.output_path,
        valid=probe.valid,
    )


async def read_derivation(nix: NixCLI, installable: str) -> DerivationData:
    derivation = await nix.describe(installable)
    return DerivationData(
        installable=installable,
        name=derivation.name,
        system=derivation.system,
        drv_path=derivation.drv_path,
        output_path=derivation.output_path,
    )
