"""Unit tests for nix output decoders (nixbridge.nix.decoders).

Tests cover:
- select_output determinism under permuted keys
- Singleton policy (zero / one / many) for all four decoders
- Malformed JSON and schema mismatches -> DecodeFailure
- Build, derivation show and path-info field mapping
- path-info map form (nix >= 2.19) including null entries
"""

from __future__ import annotations

import itertools
import json

import pytest
from pydantic import ValidationError

from nixbridge.nix.decoders import (
    decode_build,
    decode_derivation_show,
    decode_eval,
    decode_eval_raw,
    decode_path_info,
    select_output,
)
from nixbridge.nix.errors import AmbiguousResultFailure, DecodeFailure, NotFoundFailure
from nixbridge.nix.models import Artifact, ArtifactPath, ValidityResult


# ---------------------------------------------------------------------------
# select_output
# ---------------------------------------------------------------------------


class TestSelectOutput:
    @pytest.mark.unit
    @pytest.mark.parametrize(
        "names",
        list(itertools.permutations(["dev", "out", "doc", "man"])),
    )
    def test_out_wins_regardless_of_order(self, names):
        outputs = {name: f"/nix/store/{name}" for name in names}
        assert select_output(outputs) == "/nix/store/out"

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "names",
        list(itertools.permutations(["man", "dev", "lib"])),
    )
    def test_smallest_name_without_out(self, names):
        outputs = {name: f"/nix/store/{name}" for name in names}
        assert select_output(outputs) == "/nix/store/dev"

    @pytest.mark.unit
    def test_ordering_is_lexicographic_not_length_based(self):
        assert select_output({"bin": "/b", "aa": "/a", "z": "/z"}) == "/a"

    @pytest.mark.unit
    @pytest.mark.parametrize("outputs", [{}, None])
    def test_no_outputs(self, outputs):
        assert select_output(outputs) == ""


# ---------------------------------------------------------------------------
# decode_eval
# ---------------------------------------------------------------------------


class TestDecodeEval:
    @pytest.mark.unit
    @pytest.mark.parametrize(
        "value",
        [{"a": [1, 2, {"b": None}]}, [], "hello", 42, True, None],
    )
    def test_passthrough(self, value):
        assert decode_eval(json.dumps(value).encode()) == value

    @pytest.mark.unit
    def test_raw_is_compact(self):
        assert decode_eval_raw(b'{ "a" : [1, 2] }\n') == '{"a":[1,2]}'

    @pytest.mark.unit
    @pytest.mark.parametrize("raw", [b"", b"{not json", b"<html>"])
    def test_malformed(self, raw):
        with pytest.raises(DecodeFailure) as exc_info:
            decode_eval(raw, "expr")
        assert isinstance(exc_info.value.__cause__, json.JSONDecodeError)
        assert exc_info.value.installable == "expr"


# ---------------------------------------------------------------------------
# decode_build
# ---------------------------------------------------------------------------


class TestDecodeBuild:
    @pytest.mark.unit
    def test_single_result(self, build_output, hello_paths):
        path = decode_build(json.dumps(build_output).encode(), "nixpkgs#hello")
        assert path == hello_paths

    @pytest.mark.unit
    def test_multiple_outputs_selects_out(self, build_output, hello_paths):
        build_output[0]["outputs"] = {
            "dev": "/nix/store/dev",
            "out": hello_paths.output_path,
            "bin": "/nix/store/bin",
        }
        path = decode_build(json.dumps(build_output), "nixpkgs#hello")
        assert path.output_path == hello_paths.output_path

    @pytest.mark.unit
    def test_no_outputs_gives_empty_output_path(self, build_output, hello_paths):
        build_output[0]["outputs"] = {}
        path = decode_build(json.dumps(build_output), "nixpkgs#hello")
        assert path == ArtifactPath(drv_path=hello_paths.drv_path, output_path="")

    @pytest.mark.unit
    def test_zero_results(self):
        with pytest.raises(NotFoundFailure, match="no result for installable"):
            decode_build(b"[]", "nixpkgs#hello")

    @pytest.mark.unit
    def test_two_results(self, build_output):
        with pytest.raises(AmbiguousResultFailure, match="more than one result"):
            decode_build(json.dumps(build_output * 2), "nixpkgs#hello")

    @pytest.mark.unit
    def test_schema_mismatch(self):
        with pytest.raises(DecodeFailure) as exc_info:
            decode_build(b'{"drvPath": "x"}', "nixpkgs#hello")
        assert isinstance(exc_info.value.__cause__, ValidationError)

    @pytest.mark.unit
    def test_malformed_json(self):
        with pytest.raises(DecodeFailure):
            decode_build(b"[{", "nixpkgs#hello")

    @pytest.mark.unit
    def test_unknown_fields_ignored(self, build_output, hello_paths):
        build_output[0]["cpuUser"] = 1.5
        assert decode_build(json.dumps(build_output)) == hello_paths


# ---------------------------------------------------------------------------
# decode_derivation_show
# ---------------------------------------------------------------------------


class TestDecodeDerivationShow:
    @pytest.mark.unit
    def test_single_result(self, derivation_show_output, hello_paths):
        artifact = decode_derivation_show(
            json.dumps(derivation_show_output).encode(), "nixpkgs#hello"
        )
        assert artifact == Artifact(
            name="hello-2.12.1", system="x86_64-linux", path=hello_paths
        )
        assert artifact.drv_path == hello_paths.drv_path
        assert artifact.output_path == hello_paths.output_path

    @pytest.mark.unit
    def test_recipe_path_comes_from_key(self, derivation_show_output, hello_paths):
        value = derivation_show_output.pop(hello_paths.drv_path)
        derivation_show_output["/nix/store/other.drv"] = value
        artifact = decode_derivation_show(json.dumps(derivation_show_output))
        assert artifact.drv_path == "/nix/store/other.drv"

    @pytest.mark.unit
    def test_output_selection_without_out(self, derivation_show_output, hello_paths):
        derivation_show_output[hello_paths.drv_path]["outputs"] = {
            "man": {"path": "/nix/store/man"},
            "doc": {"path": "/nix/store/doc"},
        }
        artifact = decode_derivation_show(json.dumps(derivation_show_output))
        assert artifact.output_path == "/nix/store/doc"

    @pytest.mark.unit
    def test_floating_output_without_path(self, derivation_show_output, hello_paths):
        derivation_show_output[hello_paths.drv_path]["outputs"] = {
            "out": {"hashAlgo": "r:sha256"}
        }
        artifact = decode_derivation_show(json.dumps(derivation_show_output))
        assert artifact.output_path == ""

    @pytest.mark.unit
    def test_zero_results(self):
        with pytest.raises(NotFoundFailure):
            decode_derivation_show(b"{}", "nixpkgs#hello")

    @pytest.mark.unit
    def test_two_results(self, derivation_show_output, hello_paths):
        value = derivation_show_output[hello_paths.drv_path]
        derivation_show_output["/nix/store/second.drv"] = value
        with pytest.raises(AmbiguousResultFailure):
            decode_derivation_show(json.dumps(derivation_show_output), "nixpkgs#hello")

    @pytest.mark.unit
    def test_schema_mismatch(self):
        with pytest.raises(DecodeFailure):
            decode_derivation_show(b'[{"name": "hello"}]', "nixpkgs#hello")


# ---------------------------------------------------------------------------
# decode_path_info
# ---------------------------------------------------------------------------


class TestDecodePathInfo:
    @pytest.mark.unit
    def test_valid_path(self, path_info_output, hello_paths):
        result = decode_path_info(json.dumps(path_info_output).encode())
        assert result == ValidityResult(valid=True, path=hello_paths)

    @pytest.mark.unit
    def test_invalid_path_is_not_an_error(self, invalid_path_info_output, hello_paths):
        result = decode_path_info(json.dumps(invalid_path_info_output))
        assert result.valid is False
        assert result.path == ArtifactPath(output_path=hello_paths.output_path)

    @pytest.mark.unit
    def test_missing_valid_flag_means_valid(self, path_info_output):
        del path_info_output[0]["valid"]
        assert decode_path_info(json.dumps(path_info_output)).valid is True

    @pytest.mark.unit
    def test_null_deriver(self, path_info_output):
        path_info_output[0]["deriver"] = None
        assert decode_path_info(json.dumps(path_info_output)).path.drv_path == ""

    @pytest.mark.unit
    def test_map_form(self, path_info_output, hello_paths):
        entry = dict(path_info_output[0])
        path = entry.pop("path")
        result = decode_path_info(json.dumps({path: entry}))
        assert result == ValidityResult(valid=True, path=hello_paths)

    @pytest.mark.unit
    def test_map_form_null_is_invalid(self, hello_paths):
        result = decode_path_info(json.dumps({hello_paths.output_path: None}))
        assert result.valid is False
        assert result.path.output_path == hello_paths.output_path

    @pytest.mark.unit
    @pytest.mark.parametrize("raw", [b"[]", b"{}"])
    def test_zero_results(self, raw):
        with pytest.raises(NotFoundFailure):
            decode_path_info(raw, "/nix/store/x")

    @pytest.mark.unit
    def test_two_results(self, path_info_output):
        with pytest.raises(AmbiguousResultFailure):
            decode_path_info(json.dumps(path_info_output * 2), "/nix/store/x")

    @pytest.mark.unit
    def test_two_results_map_form(self):
        with pytest.raises(AmbiguousResultFailure):
            decode_path_info(b'{"/nix/store/a": null, "/nix/store/b": null}')

    @pytest.mark.unit
    @pytest.mark.parametrize("raw", [b"", b'"a string"', b'[{"valid": "maybe"}]'])
    def test_malformed(self, raw):
        with pytest.raises(DecodeFailure):
            decode_path_info(raw, "/nix/store/x")
