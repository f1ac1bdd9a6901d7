"""Failure taxonomy for Nix command execution and output decoding.

Every exception carries the installable it was raised for (when known) so the
caller can report a failure without re-running the command. Engine stderr is
always embedded verbatim: Nix's own diagnostics are the primary debugging aid.
"""


class NixError(Exception):
    """Base class for every failure raised by the Nix integration."""

    def __init__(self, message: str, installable: str = ""):
        self.installable = installable
        super().__init__(message)


class ExecutionFailure(NixError):
    """Raised when a nix child process exits with a non-zero code."""

    def __init__(
        self,
        message: str,
        command: str = "",
        stderr: str = "",
        returncode: int | None = None,
        installable: str = "",
    ):
        self.command = command
        self.stderr = stderr
        self.returncode = returncode
        super().__init__(message, installable=installable)


class DecodeFailure(NixError):
    """Raised when command output is not the JSON shape we expect."""


class NotFoundFailure(NixError):
    """Raised when a command reports no result for an installable."""


class AmbiguousResultFailure(NixError):
    """Raised when a command reports more than one result for an installable."""


class RemoteProbeFailure(NixError):
    """Raised when a remote store existence probe fails for an unrecognised reason."""

    def __init__(self, message: str, store: str = "", installable: str = ""):
        self.store = store
        super().__init__(message, installable=installable)
