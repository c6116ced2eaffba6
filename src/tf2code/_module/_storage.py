"""Local cache of remote module sources and the (unimplemented) credentials layer."""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from tf2code._errors import LoadError

logger = logging.getLogger(__name__)

DEFAULT_DATA_DIR = Path(".terraform")
DEFAULT_REGISTRY_HOST = "registry.terraform.io"


class HostCredentials(Protocol):
    def token(self) -> str: ...


class CredentialsSource(Protocol):
    """Looks up, stores and forgets credentials for service hosts."""

    def for_host(self, host: str) -> HostCredentials | None: ...

    def store_for_host(self, host: str, credentials: HostCredentials) -> None: ...

    def forget_for_host(self, host: str) -> None: ...


class NoCredentials:
    """A credentials source that never has credentials.

    Store and forget requests are accepted and ignored.
    """

    def for_host(self, host: str) -> HostCredentials | None:  # noqa: ARG002
        return None

    def store_for_host(self, host: str, credentials: HostCredentials) -> None:
        pass

    def forget_for_host(self, host: str) -> None:
        pass


@dataclass(slots=True)
class ServiceDiscovery:
    """Service discovery for module registries, backed by a credentials source."""

    credentials: CredentialsSource

    def credentials_for(self, host: str) -> HostCredentials | None:
        return self.credentials.for_host(host)


def registry_host(source: str) -> str | None:
    """Return the registry host of a registry module source, or None for other sources.

    Example:
        >>> registry_host("hashicorp/consul/aws")
        'registry.terraform.io'
        >>> registry_host("app.terraform.io/acme/vpc/aws")
        'app.terraform.io'
        >>> registry_host("git::https://example.com/vpc.git") is None
        True

    """
    if "::" in source or "://" in source or source.startswith(("./", "../", "/")):
        return None
    parts = source.split("//", 1)[0].split("/")
    if len(parts) == 3:  # noqa: PLR2004
        return DEFAULT_REGISTRY_HOST
    if len(parts) == 4 and "." in parts[0]:  # noqa: PLR2004
        return parts[0]
    return None


@dataclass(slots=True)
class ModuleStorage:
    """Resolves non-local module sources to cached copies under ``storage_dir``.

    Fetching is not implemented: a remote module must already be present in
    the cache (for example after ``terraform get``).
    """

    storage_dir: Path
    services: ServiceDiscovery

    @classmethod
    def default(cls, data_dir: Path = DEFAULT_DATA_DIR) -> ModuleStorage:
        return cls(storage_dir=data_dir / "modules", services=ServiceDiscovery(NoCredentials()))

    def cache_dir(self, key: str, source: str) -> Path:
        digest = hashlib.md5(f"{key};{source}".encode(), usedforsecurity=False).hexdigest()
        return self.storage_dir / digest

    def fetch(self, key: str, source: str) -> Path:
        """Return the cached directory of module ``key`` with the given source.

        Raises:
            LoadError: If the module has not been cached.

        """
        host = registry_host(source)
        if host is not None and self.services.credentials_for(host) is None:
            logger.debug(f"No credentials for module registry {host}")

        cached = self.cache_dir(key, source)
        if not cached.is_dir():
            msg = f"Module {key} (source {source!r}) is not available in {self.storage_dir}; fetch it first"
            raise LoadError(msg)
        logger.debug(f"Using cached module {key} from {cached}")
        return cached
