"""Registry package for ECR repository and policy management.

This package provides the registry target type and the backend
implementations for private ECR and ECR Public.
"""

from .providers import (
    PrivateRegistry,
    PublicRegistry,
    RegistryBackend,
)
from .types import (
    ECR_PUBLIC_DOMAIN,
    REPOSITORY_ALREADY_EXISTS,
    RegistryTarget,
    is_registry_public,
)

__all__ = [
    # Protocol
    "RegistryBackend",
    # Backends
    "PrivateRegistry",
    "PublicRegistry",
    # Types
    "RegistryTarget",
    "ECR_PUBLIC_DOMAIN",
    "REPOSITORY_ALREADY_EXISTS",
    "is_registry_public",
]
