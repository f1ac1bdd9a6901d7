"""Data model for Nix artifacts, requests, and raw command output shapes.

Artifact values (``ArtifactPath``, ``Artifact``, ``ValidityResult``) are
immutable dataclasses created fresh from each command's output. Requests and
raw command output use Pydantic v2 models so malformed engine output is caught
at validation time.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Artifact model
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ArtifactPath:
    """Recipe (``.drv``) path and primary output path of one build.

    Either side may be empty, e.g. an installable that was only evaluated has
    no realised output yet.
    """

    drv_path: str = ""
    output_path: str = ""


@dataclass(frozen=True)
class Artifact:
    """An ``ArtifactPath`` enriched with derivation metadata."""

    name: str
    system: str
    path: ArtifactPath = field(default_factory=ArtifactPath)

    @property
    def drv_path(self) -> str:
        return self.path.drv_path

    @property
    def output_path(self) -> str:
        return self.path.output_path


@dataclass(frozen=True)
class ValidityResult:
    """Outcome of a path-info probe.

    ``valid=False`` means the store knows about the path but its content is
    not present (for instance after garbage collection).
    """

    valid: bool
    path: ArtifactPath = field(default_factory=ArtifactPath)


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

class TransportOptions(BaseModel):
    """Per-call transport settings passed to nix through the environment."""

    ssh_options: list[str] = Field(
        default_factory=list,
        description="SSH options such as '-o StrictHostKeyChecking=no'",
    )

    def as_env(self) -> dict[str, str]:
        """Return the environment overlay nix reads SSH options from."""
        if not self.ssh_options:
            return {}
        return {"NIX_SSHOPTS": " ".join(self.ssh_options)}


class EvaluateRequest(BaseModel):
    """Arguments of ``nix eval``."""
    installable: str = Field(..., description="Expression, flake attribute, or store path")
    apply: Optional[str] = Field(default=None, description="Nix function applied to the result")


class CopyRequest(BaseModel):
    """Arguments of ``nix copy``.

    The boolean flags are tri-state: ``None`` leaves nix's own default.
    """

    installable: str = Field(..., description="Store path or installable whose closure is copied")
    from_store: Optional[str] = Field(default=None, description="Source store URL")
    to_store: Optional[str] = Field(default=None, description="Destination store URL")
    check_signatures: Optional[bool] = Field(default=None)
    substitute_on_destination: Optional[bool] = Field(default=None)
    ssh_options: list[str] = Field(default_factory=list)

    @property
    def transport(self) -> TransportOptions:
        return TransportOptions(ssh_options=self.ssh_options)


class RemoteExistsRequest(BaseModel):
    """Arguments of the remote store existence probe."""
    installable: str
    store: str
    ssh_options: list[str] = Field(default_factory=list)

    @property
    def transport(self) -> TransportOptions:
        return TransportOptions(ssh_options=self.ssh_options)


# ---------------------------------------------------------------------------
# Raw command output shapes
# ---------------------------------------------------------------------------

class _NixOutput(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class BuildResultEntry(_NixOutput):
    """One element of ``nix build --json``."""
    drv_path: str = Field(default="", alias="drvPath")
    outputs: dict[str, str] = Field(default_factory=dict)
    start_time: int = Field(default=0, alias="startTime")
    stop_time: int = Field(default=0, alias="stopTime")


class DerivationOutput(_NixOutput):
    """One named output of a derivation as printed by ``nix derivation show``."""
    # Floating content-addressed outputs have no path until built.
    path: str = ""
    hash_algo: str = Field(default="", alias="hashAlgo")
    hash: str = ""


class DerivationShowEntry(_NixOutput):
    """One value of the ``nix derivation show`` map (the key is the .drv path)."""
    name: str = ""
    system: str = ""
    builder: str = ""
    args: list[str] = Field(default_factory=list)
    env: dict[str, str] = Field(default_factory=dict)
    outputs: dict[str, DerivationOutput] = Field(default_factory=dict)
    input_srcs: list[str] = Field(default_factory=list, alias="inputSrcs")
    input_drvs: dict[str, object] = Field(default_factory=dict, alias="inputDrvs")


class PathInfoEntry(_NixOutput):
    """One element of ``nix path-info --json``."""
    path: str = ""
    deriver: Optional[str] = None
    nar_hash: Optional[str] = Field(default=None, alias="narHash")
    nar_size: Optional[int] = Field(default=None, alias="narSize")
    references: list[str] = Field(default_factory=list)
    registration_time: Optional[int] = Field(default=None, alias="registrationTime")
    # Older nix omits the flag for valid paths; only invalid paths carry valid=false.
    valid: bool = True
