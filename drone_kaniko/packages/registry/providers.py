"""Registry backends for the repository and policy operations.

This module provides the RegistryBackend protocol and the two AWS
implementations: private ECR and ECR Public. Both expose the same
capabilities so callers never branch on the registry type themselves.
"""

from typing import TYPE_CHECKING, Protocol

import structlog

from drone_kaniko.errors import RegistryError

if TYPE_CHECKING:
    from mypy_boto3_ecr.client import ECRClient
    from mypy_boto3_ecr_public.client import ECRPublicClient

logger = structlog.stdlib.get_logger(__name__)


class RegistryBackend(Protocol):
    """Protocol for registry backend implementations.

    Methods call the registry API directly and let botocore exceptions
    propagate; error classification happens in the repository service.
    """

    name: str

    def create_repository(self, repository_name: str) -> None:
        """Create a repository.

        Raises:
            botocore.exceptions.ClientError, including
            RepositoryAlreadyExistsException when it already exists
        """
        ...

    def set_repository_policy(self, repository_name: str, policy_text: str) -> None:
        """Replace the repository access policy with `policy_text`."""
        ...

    def set_lifecycle_policy(self, repository_name: str, policy_text: str) -> None:
        """Replace the repository lifecycle policy with `policy_text`."""
        ...


class PrivateRegistry:
    """AWS ECR (private) backend."""

    name = "ecr"

    def __init__(self, ecr_client: "ECRClient"):
        self.ecr_client = ecr_client

    def create_repository(self, repository_name: str) -> None:
        self.ecr_client.create_repository(repositoryName=repository_name)
        logger.info("Created ECR repository", repository=repository_name)

    def set_repository_policy(self, repository_name: str, policy_text: str) -> None:
        self.ecr_client.set_repository_policy(
            repositoryName=repository_name,
            policyText=policy_text,
        )
        logger.info("Set ECR repository policy", repository=repository_name)

    def set_lifecycle_policy(self, repository_name: str, policy_text: str) -> None:
        self.ecr_client.put_lifecycle_policy(
            repositoryName=repository_name,
            lifecyclePolicyText=policy_text,
        )
        logger.info("Put ECR lifecycle policy", repository=repository_name)


class PublicRegistry:
    """AWS ECR Public backend."""

    name = "ecr-public"

    def __init__(self, ecr_public_client: "ECRPublicClient"):
        self.ecr_public_client = ecr_public_client

    def create_repository(self, repository_name: str) -> None:
        self.ecr_public_client.create_repository(repositoryName=repository_name)
        logger.info("Created ECR Public repository", repository=repository_name)

    def set_repository_policy(self, repository_name: str, policy_text: str) -> None:
        self.ecr_public_client.set_repository_policy(
            repositoryName=repository_name,
            policyText=policy_text,
        )
        logger.info("Set ECR Public repository policy", repository=repository_name)

    def set_lifecycle_policy(self, repository_name: str, policy_text: str) -> None:
        # ECR Public has no lifecycle policy API
        raise RegistryError(
            f"lifecycle policies are not supported for public repository {repository_name}: "
            "ECR Public has no lifecycle policy API, only private ECR repositories accept one"
        )
