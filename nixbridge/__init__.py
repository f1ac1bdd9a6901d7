"""nixbridge: drive the Nix build engine from a declarative infrastructure tool.

Typical usage::

    nix = NixCLI.from_config(Config.from_env())
    path = await nix.ensure_realized("nixpkgs#hello")
    print(path.output_path)
"""

from .config import Config, NixConfig
from .nix import NixCLI, StoreSynchronizer

__all__ = ["Config", "NixConfig", "NixCLI", "StoreSynchronizer"]

__version__ = "0.1.0"
