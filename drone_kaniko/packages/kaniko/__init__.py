"""Kaniko executor package.

Holds the build job value type, the executor invocation and the tag
strategies. No registry-specific code lives here.
"""

from .build_types import (
    ArtifactSpec,
    BuildJob,
    CredentialSetup,
    DockerConfig,
    RegistryType,
)
from .executor import (
    DEFAULT_DIGEST_FILE,
    EXECUTOR_PATH,
    build_command,
    execute,
    resolve_tags,
)

__all__ = [
    # Types
    "ArtifactSpec",
    "BuildJob",
    "CredentialSetup",
    "DockerConfig",
    "RegistryType",
    # Executor
    "DEFAULT_DIGEST_FILE",
    "EXECUTOR_PATH",
    "build_command",
    "execute",
    "resolve_tags",
]
