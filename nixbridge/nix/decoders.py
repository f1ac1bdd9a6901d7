"""Decoders turning raw nix JSON output into the artifact model.

Every subcommand reports a collection keyed or indexed by resolved targets.
We only support single-target installables, so each decoder enforces the same
policy: zero results raise ``NotFoundFailure``, more than one raise
``AmbiguousResultFailure``, and malformed output raises ``DecodeFailure``.

Derivations may have several named outputs (``out``, ``dev``, ``doc``...);
``select_output`` picks the primary one deterministically.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any, TypeVar

from pydantic import TypeAdapter, ValidationError

from .errors import AmbiguousResultFailure, DecodeFailure, NotFoundFailure
from .models import (
    Artifact,
    ArtifactPath,
    BuildResultEntry,
    DerivationShowEntry,
    PathInfoEntry,
    ValidityResult,
)

PRIMARY_OUTPUT = "out"

T = TypeVar("T")

_build_adapter = TypeAdapter(list[BuildResultEntry])
_derivation_adapter = TypeAdapter(dict[str, DerivationShowEntry])
_path_info_list_adapter = TypeAdapter(list[PathInfoEntry])
_path_info_map_adapter = TypeAdapter(dict[str, PathInfoEntry | None])


def select_output(outputs: Mapping[str, str] | None) -> str:
    """Pick the primary output path out of a ``{name: path}`` mapping.

    ``out`` wins when present; otherwise the lexicographically smallest name.
    An empty or missing mapping yields ``""``.
    """
    if not outputs:
        return ""
    if PRIMARY_OUTPUT in outputs:
        return outputs[PRIMARY_OUTPUT]
    return outputs[min(outputs)]


def _load_json(raw: bytes | str, installable: str) -> Any:
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="replace")
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        raise DecodeFailure(
            f"unable to decode command output for installable {installable!r}: {exc}",
            installable=installable,
        ) from exc


def _validate(adapter: TypeAdapter[T], data: Any, installable: str) -> T:
    try:
        return adapter.validate_python(data)
    except ValidationError as exc:
        raise DecodeFailure(
            f"unexpected command output for installable {installable!r}: {exc}",
            installable=installable,
        ) from exc


def _single(results: list[T] | dict[str, Any], installable: str):
    """Enforce the one-result-per-installable policy and return that result."""
    if len(results) == 0:
        raise NotFoundFailure(
            f"no result for installable {installable!r}", installable=installable
        )
    if len(results) > 1:
        raise AmbiguousResultFailure(
            f"more than one result for installable {installable!r} "
            f"({len(results)} found)",
            installable=installable,
        )
    if isinstance(results, dict):
        return next(iter(results.items()))
    return results[0]


# ---------------------------------------------------------------------------
# Public decoders
# ---------------------------------------------------------------------------


def decode_eval(raw: bytes | str, installable: str = "") -> Any:
    """Decode ``nix eval --json`` output, returned unchanged."""
    return _load_json(raw, installable)


def decode_eval_raw(raw: bytes | str, installable: str = "") -> str:
    """Decode ``nix eval --json`` output and re-encode it as compact JSON text."""
    return json.dumps(decode_eval(raw, installable), separators=(",", ":"))


def decode_build(raw: bytes | str, installable: str = "") -> ArtifactPath:
    """Decode ``nix build --json`` output into an ``ArtifactPath``."""
    entries = _validate(_build_adapter, _load_json(raw, installable), installable)
    entry: BuildResultEntry = _single(entries, installable)
    return ArtifactPath(drv_path=entry.drv_path, output_path=select_output(entry.outputs))


def decode_derivation_show(raw: bytes | str, installable: str = "") -> Artifact:
    """Decode ``nix derivation show`` output into an ``Artifact``.

    The output is a map keyed by .drv path, so the recipe path comes from the
    key rather than from a field of the value.
    """
    derivations = _validate(_derivation_adapter, _load_json(raw, installable), installable)
    drv_path, derivation = _single(derivations, installable)
    outputs = {name: output.path for name, output in derivation.outputs.items()}
    return Artifact(
        name=derivation.name,
        system=derivation.system,
        path=ArtifactPath(drv_path=drv_path, output_path=select_output(outputs)),
    )


def decode_path_info(raw: bytes | str, installable: str = "") -> ValidityResult:
    """Decode ``nix path-info --json`` output into a ``ValidityResult``.

    Accepts both the historical list form and the map form emitted by nix
    2.19+, where invalid paths map to ``null``.
    """
    data = _load_json(raw, installable)

    if isinstance(data, dict):
        infos = _validate(_path_info_map_adapter, data, installable)
        path, info = _single(infos, installable)
        if info is None:
            return ValidityResult(valid=False, path=ArtifactPath(output_path=path))
        return ValidityResult(
            valid=info.valid,
            path=ArtifactPath(drv_path=info.deriver or "", output_path=info.path or path),
        )

    entries = _validate(_path_info_list_adapter, data, installable)
    entry: PathInfoEntry = _single(entries, installable)
    return ValidityResult(
        valid=entry.valid,
        path=ArtifactPath(drv_path=entry.deriver or "", output_path=entry.path),
    )
