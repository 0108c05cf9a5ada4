"""Repository Service.

Creates the target repository when asked to and uploads lifecycle and
repository policies. Every failure here aborts the run before the image
is built.
"""

from pathlib import Path

import structlog
from botocore.exceptions import BotoCoreError, ClientError

from drone_kaniko.errors import ConfigurationError, FileIOError, RegistryError
from drone_kaniko.packages.registry import (
    REPOSITORY_ALREADY_EXISTS,
    RegistryBackend,
    RegistryTarget,
)

logger = structlog.stdlib.get_logger(__name__)


def validate_target(target: RegistryTarget) -> None:
    if not target.registry:
        raise ConfigurationError("registry must be specified")
    if not target.repository:
        raise ConfigurationError("repo must be specified")


def ensure_repository(target: RegistryTarget, backend: RegistryBackend) -> bool:
    """Create the target repository unless it already exists.

    Returns:
        True when the repository was created, False when it already existed

    Raises:
        RegistryError: For any backend failure other than "already exists"
    """
    validate_target(target)

    try:
        backend.create_repository(target.repository)
    except ClientError as e:
        error_code = e.response["Error"]["Code"]
        if error_code == REPOSITORY_ALREADY_EXISTS:
            logger.info(
                "Repository already exists",
                repository=target.repository,
                backend=backend.name,
            )
            return False

        logger.error(
            "Failed to create repository",
            repository=target.repository,
            backend=backend.name,
            error_code=error_code,
        )
        raise RegistryError(f"failed to create repository: {e}") from e
    except BotoCoreError as e:
        logger.error(
            "Failed to create repository",
            repository=target.repository,
            backend=backend.name,
            error=str(e),
        )
        raise RegistryError(f"failed to create repository: {e}") from e

    return True


def read_policy_file(path: str) -> str:
    """Read a policy document verbatim.

    Raises:
        FileIOError: If the file cannot be read
    """
    try:
        return Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise FileIOError(f"failed to read policy file {path}: {e}") from e


def upload_lifecycle_policy(
    backend: RegistryBackend, repository: str, policy_text: str
) -> None:
    """Replace the lifecycle policy of `repository`.

    Raises:
        RegistryError: If the backend rejects the policy
    """
    try:
        backend.set_lifecycle_policy(repository, policy_text)
    except (ClientError, BotoCoreError) as e:
        logger.error(
            "Failed to upload lifecycle policy",
            repository=repository,
            backend=backend.name,
            error=str(e),
        )
        raise RegistryError(f"error uploading lifecycle policy: {e}") from e


def upload_repository_policy(
    backend: RegistryBackend, repository: str, policy_text: str
) -> None:
    """Replace the repository access policy of `repository`.

    Raises:
        RegistryError: If the backend rejects the policy
    """
    try:
        backend.set_repository_policy(repository, policy_text)
    except (ClientError, BotoCoreError) as e:
        logger.error(
            "Failed to upload repository policy",
            repository=repository,
            backend=backend.name,
            error=str(e),
        )
        raise RegistryError(f"error uploading repository policy: {e}") from e
