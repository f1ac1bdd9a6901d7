"""Copying store path closures between Nix stores.

``StoreSynchronizer.copy`` drives ``nix copy``. Copies are always attempted
fresh: remote store state can change out of band, so no copy result is
remembered between calls.

``remote_store_path_exists`` answers "is this path already in that store?".
For HTTP(S) binary caches it asks the cache for the path's ``.narinfo``
directly (``BinaryCacheProbe``), unless the cache refuses anonymous access.
Any other store kind (or a private cache) has no machine-readable
query, so an offline ``nix copy`` from the store to itself is attempted and
its failure text is inspected for ``MISSING_SUBSTITUTER_MARKER``.
"""

from __future__ import annotations

import re

import httpx

from ..config import Config
from ..utils import print_status, print_success
from .errors import ExecutionFailure, RemoteProbeFailure
from .executor import NixExecutor
from .models import CopyRequest, RemoteExistsRequest

# Emitted by nix when an offline copy cannot find the path in the store.
# If nix ever rewords this, the regression test pinning it must fail.
MISSING_SUBSTITUTER_MARKER = "no substituter that can build it"

_STORE_PATH_RE = re.compile(r"^(?:/[^/]+)+/(?P<hash>[0-9a-df-np-sv-z]{32})-[^/^]+/?$")


def store_path_hash(path: str) -> str | None:
    """Return the 32-character hash part of a store path, or None."""
    match = _STORE_PATH_RE.match(path)
    return match.group("hash") if match else None


def is_binary_cache(store: str) -> bool:
    return store.startswith(("http://", "https://"))


def copy_arguments(request: CopyRequest) -> list[str]:
    """Build the ``nix copy`` arguments for a request.

    ``--no-check-sigs`` is only added on an explicit ``check_signatures=False``
    and ``--substitute-on-destination`` only on an explicit ``True``.
    """
    args = [request.installable]
    if request.from_store is not None:
        args += ["--from", request.from_store]
    if request.to_store is not None:
        args += ["--to", request.to_store]
    if request.check_signatures is False:
        args.append("--no-check-sigs")
    if request.substitute_on_destination is True:
        args.append("--substitute-on-destination")
    return args


class BinaryCacheProbe:
    """Checks path presence in an HTTP binary cache via its ``.narinfo`` file."""

    def __init__(self, timeout: float = 30.0, transport: httpx.AsyncBaseTransport | None = None):
        self.timeout = timeout
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout, connect=10.0),
            transport=self.transport,
            follow_redirects=True,
        )

    @staticmethod
    def narinfo_url(store: str, path_hash: str) -> str:
        """Build the narinfo URL, dropping store query parameters like ``?priority=``."""
        base = store.split("?", 1)[0].rstrip("/")
        return f"{base}/{path_hash}.narinfo"

    async def exists(self, store: str, store_path: str) -> bool | None:
        """Return whether ``store_path`` is present in the binary cache ``store``.

        Returns:
            True or False, or None when the cache refused the anonymous
            request (HTTP 401/403) and cannot be asked without credentials.

        Raises:
            RemoteProbeFailure: On transport errors or unexpected HTTP statuses.
        """
        path_hash = store_path_hash(store_path)
        if path_hash is None:
            raise RemoteProbeFailure(
                f"{store_path!r} is not a store path", store=store, installable=store_path
            )

        url = self.narinfo_url(store, path_hash)
        try:
            async with self._client() as client:
                response = await client.head(url)
        except httpx.HTTPError as exc:
            raise RemoteProbeFailure(
                f"unable to query binary cache {store}: {exc}",
                store=store,
                installable=store_path,
            ) from exc

        if response.status_code == 200:
            return True
        if response.status_code == 404:
            return False
        # Private caches need the credentials nix reads from its own
        # configuration (netrc-file, access-tokens); only nix can answer.
        if response.status_code in (401, 403):
            return None
        raise RemoteProbeFailure(
            f"binary cache {store} returned HTTP {response.status_code} for {url}",
            store=store,
            installable=store_path,
        )


class StoreSynchronizer:
    """Copies closures between stores and probes remote stores for paths."""

    def __init__(
        self,
        executor: NixExecutor | None = None,
        cache_probe: BinaryCacheProbe | None = None,
    ):
        self.executor = executor or NixExecutor()
        self.cache_probe = cache_probe or BinaryCacheProbe()

    @classmethod
    def from_config(cls, config: Config) -> "StoreSynchronizer":
        return cls(
            NixExecutor.from_config(config.nix),
            BinaryCacheProbe(timeout=config.binary_cache_timeout),
        )

    async def copy(self, request: CopyRequest) -> None:
        """Copy the closure of ``request.installable`` between two stores."""
        print_status(
            f"Copying {request.installable} "
            f"from {request.from_store or 'default store'} "
            f"to {request.to_store or 'default store'}..."
        )
        await self.executor.run(
            "copy",
            *copy_arguments(request),
            env=request.transport.as_env(),
            installable=request.installable,
        )
        print_success(f"Copied {request.installable}")

    async def remote_store_path_exists(self, request: RemoteExistsRequest) -> bool:
        """Check whether a path already exists in a (remote) store.

        Raises:
            RemoteProbeFailure: If the probe fails for any reason other than
                the path being absent.
        """
        if is_binary_cache(request.store) and store_path_hash(request.installable):
            exists = await self.cache_probe.exists(request.store, request.installable)
            if exists is not None:
                return exists

        try:
            await self.executor.run(
                "copy",
                "--offline",
                "--from", request.store,
                "--to", request.store,
                request.installable,
                env=request.transport.as_env(),
                installable=request.installable,
            )
        except ExecutionFailure as exc:
            if MISSING_SUBSTITUTER_MARKER in exc.stderr:
                return False
            raise RemoteProbeFailure(
                f"unable to check whether {request.installable!r} exists in "
                f"{request.store}: {exc}",
                store=request.store,
                installable=request.installable,
            ) from exc
        return True
