"""Shared pytest fixtures for the nixbridge test suite.

Provides reusable fixtures for:
- Mock asyncio subprocesses
- A scriptable fake ``nix`` binary (``fake_nix``)
- Realistic JSON outputs of nix build / derivation show / path-info
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import pytest


HELLO_DRV = "/nix/store/sq9b3fm2qwlk6xq4gbjnmcfaz5azhfw0-hello-2.12.1.drv"
HELLO_OUT = "/nix/store/63l345l7dgcfz789w1y93j1540czafqh-hello-2.12.1"

MISSING_SUBSTITUTER_STDERR = (
    "error: path '/nix/store/63l345l7dgcfz789w1y93j1540czafqh-hello-2.12.1' "
    "is required, but there is no substituter that can build it"
)


# ---------------------------------------------------------------------------
# Mock subprocess helpers
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_subprocess():
    """Mock asyncio subprocess for testing command execution.

    Returns a factory that creates mock subprocess instances with configurable
    stdout, stderr, and return codes.

    Usage:
        def test_command(mock_subprocess):
            proc = mock_subprocess(stdout="output", returncode=0)
            with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=proc)):
                ...
    """
    def factory(
        stdout: str = "",
        stderr: str = "",
        returncode: int = 0,
    ) -> AsyncMock:
        mock_proc = AsyncMock()
        mock_proc.communicate = AsyncMock(
            return_value=(stdout.encode("utf-8"), stderr.encode("utf-8"))
        )
        mock_proc.returncode = returncode
        mock_proc.pid = 99999
        mock_proc.kill = MagicMock()
        mock_proc.wait = AsyncMock(return_value=returncode)
        return mock_proc

    return factory


@dataclass
class _Rule:
    subcommand: list[str]
    stdout: str
    stderr: str
    returncode: int
    when_arg: str | None = None


@dataclass
class NixCall:
    argv: list[str]
    env: dict[str, str] | None

    @property
    def args(self) -> list[str]:
        return self.argv[1:]


@dataclass
class FakeNix:
    """Scriptable stand-in for the nix binary.

    Register answers with ``respond``; the first rule whose subcommand words
    match (and whose ``when_arg`` appears in argv, if given) answers the call.
    Every invocation is recorded in ``calls``.
    """

    mock_subprocess: Any
    rules: list[_Rule] = field(default_factory=list)
    calls: list[NixCall] = field(default_factory=list)

    def respond(
        self,
        subcommand: str,
        stdout: Any = "",
        stderr: str = "",
        returncode: int = 0,
        when_arg: str | None = None,
    ) -> None:
        if not isinstance(stdout, str):
            stdout = json.dumps(stdout)
        self.rules.append(
            _Rule(subcommand.split(), stdout, stderr, returncode, when_arg)
        )

    def calls_for(self, subcommand: str) -> list[NixCall]:
        words = subcommand.split()
        return [c for c in self.calls if c.argv[1 : 1 + len(words)] == words]

    async def __call__(self, *argv: str, **kwargs: Any) -> AsyncMock:
        argv_list = list(argv)
        self.calls.append(NixCall(argv=argv_list, env=kwargs.get("env")))
        for rule in self.rules:
            words = rule.subcommand
            if argv_list[1 : 1 + len(words)] != words:
                continue
            if rule.when_arg is not None and rule.when_arg not in argv_list:
                continue
            return self.mock_subprocess(
                stdout=rule.stdout, stderr=rule.stderr, returncode=rule.returncode
            )
        return self.mock_subprocess(
            stderr=f"error: unexpected call {' '.join(argv_list)}", returncode=1
        )


@pytest.fixture
def fake_nix(mock_subprocess):
    """Patch ``asyncio.create_subprocess_exec`` with a ``FakeNix``."""
    fake = FakeNix(mock_subprocess)
    with patch("asyncio.create_subprocess_exec", side_effect=fake.__call__):
        yield fake


# ---------------------------------------------------------------------------
# nix output fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def build_output() -> list[dict[str, Any]]:
    """``nix build --no-link --json nixpkgs#hello`` output."""
    return [
        {
            "drvPath": HELLO_DRV,
            "outputs": {"out": HELLO_OUT},
            "startTime": 0,
            "stopTime": 0,
        }
    ]


@pytest.fixture
def derivation_show_output() -> dict[str, Any]:
    """``nix derivation show nixpkgs#hello`` output (trimmed env)."""
    return {
        HELLO_DRV: {
            "args": ["-e", "/nix/store/v6x3cs394jgqfbi0a42pam708flxaphh-default-builder.sh"],
            "builder": "/nix/store/rm1hz1lybxangc8sdl7xvzs5dcvigvf7-bash-5.2p26/bin/bash",
            "env": {
                "name": "hello-2.12.1",
                "out": HELLO_OUT,
                "system": "x86_64-linux",
            },
            "inputDrvs": {
                "/nix/store/a4b7jr0rg1nhdwlyb9p9axw5g5v8ls3p-bash-5.2p26.drv": {
                    "dynamicOutputs": {},
                    "outputs": ["out"],
                }
            },
            "inputSrcs": ["/nix/store/v6x3cs394jgqfbi0a42pam708flxaphh-default-builder.sh"],
            "name": "hello-2.12.1",
            "outputs": {"out": {"path": HELLO_OUT}},
            "system": "x86_64-linux",
        }
    }


@pytest.fixture
def path_info_output() -> list[dict[str, Any]]:
    """``nix path-info --json <hello>`` output for a valid path."""
    return [
        {
            "deriver": HELLO_DRV,
            "narHash": "sha256-5MFU0XOZyFtIuQNxWQOHtXMHcWmRmGMK8ZpfVLuE1Fw=",
            "narSize": 226560,
            "path": HELLO_OUT,
            "references": [HELLO_OUT],
            "registrationTime": 1700000000,
            "valid": True,
        }
    ]


@pytest.fixture
def invalid_path_info_output() -> list[dict[str, Any]]:
    """``nix path-info --json`` output for a path whose content was collected."""
    return [{"path": HELLO_OUT, "valid": False}]


@pytest.fixture
def hello_paths():
    """The recipe/output pair of ``nixpkgs#hello`` used across fixtures."""
    from nixbridge.nix.models import ArtifactPath

    return ArtifactPath(drv_path=HELLO_DRV, output_path=HELLO_OUT)


@pytest.fixture
def missing_substituter_stderr() -> str:
    """stderr of ``nix copy --offline`` when the store lacks the path."""
    return MISSING_SUBSTITUTER_STDERR
