"""Child-process execution of nix subcommands.

Builds a structured argv for every invocation (never a shell string), runs it
with ``asyncio.create_subprocess_exec``, captures stdout and stderr separately,
and turns a non-zero exit into an ``ExecutionFailure`` that carries the full
engine stderr.
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import Mapping, Sequence

from ..config import LOCK_FILE_FLAGS, NixConfig
from ..utils import console, format_command, print_command
from .errors import ExecutionFailure


class NixExecutor:
    """Runs ``nix <subcommand> <lock-file flags> <args...>`` as a child process.

    The executor holds no state besides its configuration, so a single
    instance can serve any number of concurrent calls. Concurrent mutations
    of the store are serialised by nix itself.
    """

    def __init__(
        self,
        binary: str = "nix",
        timeout: float | None = None,
        extra_env: Mapping[str, str] | None = None,
        lock_file_flags: Sequence[str] = LOCK_FILE_FLAGS,
        verbose: bool = False,
    ):
        self.binary = binary
        self.timeout = timeout
        self.extra_env = dict(extra_env or {})
        self.lock_file_flags = list(lock_file_flags)
        self.verbose = verbose

    @classmethod
    def from_config(cls, config: NixConfig) -> "NixExecutor":
        return cls(
            binary=config.binary,
            timeout=config.timeout,
            extra_env=config.extra_env,
            lock_file_flags=config.lock_file_flags,
            verbose=config.verbose,
        )

    def command(self, subcommand: str, *args: str) -> list[str]:
        """Compose the argv for a subcommand.

        ``subcommand`` may contain several words (``"derivation show"``); each
        becomes its own argv element.
        """
        return [self.binary, *subcommand.split(), *self.lock_file_flags, *args]

    def _environment(self, env: Mapping[str, str] | None) -> dict[str, str] | None:
        overlay = {**self.extra_env, **(env or {})}
        if not overlay:
            return None
        return {**os.environ, **overlay}

    async def run(
        self,
        subcommand: str,
        *args: str,
        env: Mapping[str, str] | None = None,
        installable: str = "",
    ) -> bytes:
        """Run a nix subcommand and return its raw stdout.

        Args:
            subcommand: The nix subcommand, e.g. ``"build"`` or ``"store delete"``.
            *args: Arguments appended after the lock-file flags.
            env: Variables overlaid on the inherited environment for this call only.
            installable: Installable the call is about, attached to failures.

        Returns:
            The captured stdout bytes.

        Raises:
            ExecutionFailure: If nix cannot be started, times out, or exits non-zero.
            asyncio.CancelledError: If the caller is cancelled; the child is killed first.
        """
        argv = self.command(subcommand, *args)
        cmd_str = format_command(argv)

        if self.verbose:
            print_command(argv)

        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=self._environment(env),
            )
        except FileNotFoundError:
            raise ExecutionFailure(
                f"nix binary not found: '{self.binary}'. "
                "Ensure nix is installed and in PATH.",
                command=cmd_str,
                installable=installable,
            )
        except PermissionError:
            raise ExecutionFailure(
                f"Permission denied executing: '{self.binary}'.",
                command=cmd_str,
                installable=installable,
            )

        try:
            stdout_bytes, stderr_bytes = await asyncio.wait_for(
                process.communicate(), timeout=self.timeout
            )
        except asyncio.TimeoutError:
            await _terminate(process)
            raise ExecutionFailure(
                f"nix command timed out after {self.timeout}s: {cmd_str}",
                command=cmd_str,
                installable=installable,
            )
        except asyncio.CancelledError:
            await _terminate(process)
            raise

        if process.returncode != 0:
            stderr = (stderr_bytes or b"").decode("utf-8", errors="replace").strip()
            raise ExecutionFailure(
                f"unable to execute command {cmd_str!r} "
                f"(exit {process.returncode}): {stderr}",
                command=cmd_str,
                stderr=stderr,
                returncode=process.returncode,
                installable=installable,
            )

        return stdout_bytes or b""

    async def check_available(self) -> bool:
        """Check whether the nix binary can be executed.

        Returns:
            True if ``nix --version`` exits successfully.
        """
        try:
            process = await asyncio.create_subprocess_exec(
                self.binary, "--version",
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except (FileNotFoundError, PermissionError):
            console.print(
                f"[red]nix not available:[/red] '{self.binary}' not found in PATH."
            )
            return False

        try:
            stdout_bytes, _ = await asyncio.wait_for(
                process.communicate(), timeout=10.0
            )
        except asyncio.TimeoutError:
            await _terminate(process)
            console.print(f"[red]nix did not answer:[/red] '{self.binary} --version' timed out.")
            return False

        if process.returncode != 0:
            return False
        version = stdout_bytes.decode("utf-8", errors="replace").strip()
        console.print(f"[green]nix available:[/green] {version}")
        return True


async def _terminate(process: asyncio.subprocess.Process) -> None:
    """Kill a child process and reap it so no zombie is left behind."""
    if process.returncode is None:
        try:
            process.kill()
        except ProcessLookupError:
            pass
    try:
        await asyncio.wait_for(process.wait(), timeout=10.0)
    except asyncio.TimeoutError:
        pass
