"""
parsemodel.core: types, errors, configuration and the model registry shared
by the client runtime.
"""

from parsemodel.core.config import ClientConfig, configure, get_transport
from parsemodel.core.exceptions import (ConfigError, ParseModelError,
                                        RecordNotFound, TransportError,
                                        UnresolvableTypeError)
from parsemodel.core.registry import Registry, registry
from parsemodel.core.types import ActionType, ResourceState

__all__ = [
    # Types
    "ActionType",
    "ResourceState",
    # Configuration
    "ClientConfig",
    "configure",
    "get_transport",
    "Registry",
    "registry",
    # Errors
    "ParseModelError",
    "TransportError",
    "RecordNotFound",
    "UnresolvableTypeError",
    "ConfigError",
]
