"""Pure helper functions exposed to configuration authors.

Neither function runs nix; they only build or translate strings.
"""

from __future__ import annotations

from pydantic import BaseModel

# nix architecture prefix -> AMI architecture
AMI_ARCHITECTURES: dict[str, str] = {
    "aarch64": "arm64",
    "x86_64": "x86_64",
    "i686": "i386",
}


class UnsupportedSystemError(ValueError):
    """Raised when a nix system has no AMI architecture equivalent."""


class FlakeNixosConfiguration(BaseModel):
    installable: str
    flake: str
    configuration: str
    attribute: str


def flake_nixos_configuration(
    flake: str, configuration: str, attribute: str
) -> FlakeNixosConfiguration:
    """Construct the installable of a NixOS configuration attribute in a flake.

    ``flake_nixos_configuration(".", "awesomeHost", "system.build.toplevel")``
    gives ``.#nixosConfigurations."awesomeHost".config.system.build.toplevel``.
    The configuration name is quoted so hosts with dots or dashes resolve
    to a single attribute. Installables are passed to nix as one argv element,
    so no shell quoting is added.
    """
    quoted = configuration.replace("\\", "\\\\").replace('"', '\\"')
    return FlakeNixosConfiguration(
        installable=f'{flake}#nixosConfigurations."{quoted}".config.{attribute}',
        flake=flake,
        configuration=configuration,
        attribute=attribute,
    )


def system_to_ami_architecture(system: str) -> str:
    """Map a nix system such as ``aarch64-linux`` to an AMI architecture.

    Raises:
        UnsupportedSystemError: If the architecture part is not known.
    """
    architecture = system.split("-", 1)[0]
    try:
        return AMI_ARCHITECTURES[architecture]
    except KeyError:
        raise UnsupportedSystemError(
            f"Unable to map nix architecture {architecture!r} to an AMI architecture"
        ) from None
