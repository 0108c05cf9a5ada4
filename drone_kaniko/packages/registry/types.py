"""Registry types and data structures.

This module contains shared types used across the registry package.
No dependencies on drone_kaniko.* modules to maintain independence.
"""

from dataclasses import dataclass

ECR_PUBLIC_DOMAIN = "public.ecr.aws"

REPOSITORY_ALREADY_EXISTS = "RepositoryAlreadyExistsException"


def is_registry_public(registry: str) -> bool:
    """True when the registry is ECR Public (e.g. "public.ecr.aws/example-registry")."""
    return registry.startswith(ECR_PUBLIC_DOMAIN)


@dataclass(frozen=True)
class RegistryTarget:
    """The registry and repository a build pushes to.

    Attributes:
        registry: Registry host, optionally with a namespace
                  (e.g. "123456789012.dkr.ecr.us-east-1.amazonaws.com" or
                  "public.ecr.aws/myorg")
        repository: Repository name inside the registry (e.g. "app")
        region: AWS region used for the registry API calls
    """

    registry: str
    repository: str
    region: str = "us-east-1"

    @property
    def is_public(self) -> bool:
        return is_registry_public(self.registry)

    @property
    def reference(self) -> str:
        return f"{self.registry}/{self.repository}"
