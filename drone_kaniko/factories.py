from functools import lru_cache

import boto3
import structlog
from botocore.exceptions import BotoCoreError

from drone_kaniko.errors import RegistryError
from drone_kaniko.packages.registry import (
    PrivateRegistry,
    PublicRegistry,
    RegistryBackend,
    RegistryTarget,
)

logger = structlog.stdlib.get_logger(__name__)


@lru_cache
def aws_session_factory(
    region: str,
    access_key: str = "",
    secret_key: str = "",
    session_token: str = "",
    profile: str = "",
) -> boto3.Session:
    """Session for the registry API calls.

    Static keys are only used as a pair; otherwise the default credential
    chain applies (named profile, IAM role, instance profile, ...).
    """
    options: dict[str, str] = {"region_name": region}
    if profile:
        options["profile_name"] = profile
    if access_key and secret_key:
        options["aws_access_key_id"] = access_key
        options["aws_secret_access_key"] = secret_key
        if session_token:
            options["aws_session_token"] = session_token
    return boto3.Session(**options)


def registry_backend_factory(
    target: RegistryTarget,
    session: boto3.Session,
) -> RegistryBackend:
    """Select the registry backend for a target.

    Returns:
        PublicRegistry for ECR Public targets, PrivateRegistry otherwise

    Raises:
        RegistryError: If the AWS client cannot be configured
    """
    try:
        if target.is_public:
            backend: RegistryBackend = PublicRegistry(session.client("ecr-public"))
        else:
            backend = PrivateRegistry(session.client("ecr"))
    except BotoCoreError as e:
        raise RegistryError(f"failed to load aws config: {e}") from e

    logger.debug(
        "Selected registry backend",
        backend=backend.name,
        registry=target.registry,
        region=target.region,
    )
    return backend
