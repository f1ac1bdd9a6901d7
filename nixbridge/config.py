"""nixbridge configuration.

Typed configuration for the Nix integration. All settings use Pydantic v2
models so they are validated at construction time and can be serialised
to/from JSON or read from environment variables.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

# Both flags keep nix from touching flake.lock, so every command we run is
# read-only with respect to dependency metadata.
LOCK_FILE_FLAGS: tuple[str, ...] = ("--no-update-lock-file", "--no-write-lock-file")


class NixConfig(BaseModel):
    """How the ``nix`` binary is invoked."""

    binary: str = Field(default="nix", description="Path or name of the nix executable")
    timeout: float | None = Field(
        default=None, gt=0, description="Per-command timeout in seconds (None = no limit)"
    )
    verbose: bool = Field(default=False, description="Echo every nix invocation to the console")
    extra_env: dict[str, str] = Field(
        default_factory=dict,
        description="Environment variables added to every nix child process",
    )
    lock_file_flags: list[str] = Field(default_factory=lambda: list(LOCK_FILE_FLAGS))


class Config(BaseModel):
    """Global nixbridge configuration.

    Instances are typically created once by the plugin entry point and passed
    to ``NixCLI.from_config`` and ``StoreSynchronizer.from_config``.
    """

    nix: NixConfig = Field(default_factory=NixConfig)
    binary_cache_timeout: float = Field(
        default=30.0, gt=0, description="Timeout in seconds for HTTP binary cache probes"
    )

    # ------------------------------------------------------------------
    # Serialisation helpers
    # ------------------------------------------------------------------

    def save(self, path: Path) -> Path:
        """Persist the configuration to a JSON file.

        Returns:
            The path where the file was written.
        """
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return target

    @classmethod
    def load(cls, path: Path) -> "Config":
        """Load a previously-saved configuration from JSON."""
        raw = Path(path).read_text(encoding="utf-8")
        return cls.model_validate_json(raw)

    @classmethod
    def from_env(cls) -> "Config":
        """Build a ``Config`` from environment variables.

        Recognised variables (all optional):
            NIXBRIDGE_NIX_BINARY, NIXBRIDGE_TIMEOUT, NIXBRIDGE_VERBOSE,
            NIXBRIDGE_CACHE_TIMEOUT.
        """
        nix_kwargs: dict[str, Any] = {}
        if os.environ.get("NIXBRIDGE_NIX_BINARY"):
            nix_kwargs["binary"] = os.environ["NIXBRIDGE_NIX_BINARY"]
        if os.environ.get("NIXBRIDGE_TIMEOUT"):
            nix_kwargs["timeout"] = float(os.environ["NIXBRIDGE_TIMEOUT"])
        if os.environ.get("NIXBRIDGE_VERBOSE"):
            nix_kwargs["verbose"] = os.environ["NIXBRIDGE_VERBOSE"].strip().lower() in (
                "1", "true", "yes", "on",
            )

        kwargs: dict[str, Any] = {"nix": NixConfig(**nix_kwargs)}
        if os.environ.get("NIXBRIDGE_CACHE_TIMEOUT"):
            kwargs["binary_cache_timeout"] = float(os.environ["NIXBRIDGE_CACHE_TIMEOUT"])

        return cls(**kwargs)
