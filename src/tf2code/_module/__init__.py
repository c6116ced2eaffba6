"""Module tree loading.

Reads a directory of Terraform configuration files (and the modules it
calls) into a `ModuleTree` of parsed declarations.
"""

from ._config import Declaration, DeclarationKind, ModuleConfig, Position
from ._loader import load_module_config
from ._storage import (
    DEFAULT_DATA_DIR,
    CredentialsSource,
    HostCredentials,
    ModuleStorage,
    NoCredentials,
    ServiceDiscovery,
    registry_host,
)
from ._tree import ModuleTree

__all__ = [
    "DEFAULT_DATA_DIR",
    "CredentialsSource",
    "Declaration",
    "DeclarationKind",
    "HostCredentials",
    "ModuleConfig",
    "ModuleStorage",
    "ModuleTree",
    "NoCredentials",
    "Position",
    "ServiceDiscovery",
    "load_module_config",
    "registry_host",
]
