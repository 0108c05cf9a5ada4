"""Credential Service.

Builds the credential document kaniko reads at startup and the environment
its credential helpers need. Nothing here touches `os.environ`: the returned
environment is handed to the executor process explicitly.
"""

from pathlib import Path

import structlog

from drone_kaniko.errors import (
    ConfigurationError,
    CredentialEnvironmentError,
    FileIOError,
)
from drone_kaniko.packages.kaniko.build_types import CredentialSetup, DockerConfig
from drone_kaniko.packages.registry import ECR_PUBLIC_DOMAIN

logger = structlog.stdlib.get_logger(__name__)

DOCKER_CONFIG_PATH = "/kaniko/.docker/config.json"
LEGACY_REGISTRY = "https://index.docker.io/v1/"
ECR_CREDENTIAL_HELPER = "ecr-login"

ACCESS_KEY_ENV = "AWS_ACCESS_KEY_ID"
SECRET_KEY_ENV = "AWS_SECRET_ACCESS_KEY"

GCR_KEY_PATH = "/kaniko/config.json"
GCR_CREDENTIALS_ENV = "GOOGLE_APPLICATION_CREDENTIALS"


def credential_environment(values: dict[str, str]) -> dict[str, str]:
    """Validate variables destined for the executor environment.

    Raises:
        CredentialEnvironmentError: If a name or value cannot be exported
            to a child process
    """
    env: dict[str, str] = {}
    for name, value in values.items():
        if not name or "=" in name or "\x00" in name:
            raise CredentialEnvironmentError(
                f"failed to set {name!r} environment variable: invalid name"
            )
        if "\x00" in value:
            raise CredentialEnvironmentError(
                f"failed to set {name} environment variable: value contains NUL"
            )
        env[name] = value
    return env


def synthesize_docker_config(
    username: str,
    password: str,
    access_key: str,
    secret_key: str,
    registry: str,
    no_push: bool,
) -> CredentialSetup:
    """Build the ECR credential setup.

    Auth is only configured when pushing or when an access key is given, so
    repository and policy calls still authenticate in no-push runs. Both the
    ECR Public domain and the target registry go through the `ecr-login`
    helper: base images are commonly pulled from ECR Public while pushing
    to a private registry.

    Raises:
        ConfigurationError: If auth is needed and no registry is set
        CredentialEnvironmentError: If the access keys cannot be exported
    """
    docker_config = DockerConfig()

    if username:
        docker_config.set_auth(LEGACY_REGISTRY, username, password)

    if no_push and not access_key:
        logger.info("Skipping registry auth setup", no_push=no_push)
        return CredentialSetup(docker_config=docker_config)

    if not registry:
        raise ConfigurationError("registry must be specified")

    env: dict[str, str] = {}
    # Without a key pair the helper falls back to the IAM role
    if access_key and secret_key:
        env = credential_environment(
            {ACCESS_KEY_ENV: access_key, SECRET_KEY_ENV: secret_key}
        )

    docker_config.set_cred_helper(ECR_PUBLIC_DOMAIN, ECR_CREDENTIAL_HELPER)
    docker_config.set_cred_helper(registry, ECR_CREDENTIAL_HELPER)

    logger.info(
        "Configured registry credential helper",
        registry=registry,
        helper=ECR_CREDENTIAL_HELPER,
        static_keys=bool(env),
    )
    return CredentialSetup(docker_config=docker_config, env=env)


def synthesize_basic_auth_config(
    username: str,
    password: str,
    registry: str,
) -> CredentialSetup:
    """Build a username/password credential setup for a Docker registry.

    Anonymous when neither is given. Without a registry the credentials
    are bound to Docker Hub.

    Raises:
        ConfigurationError: If only one of username and password is set
    """
    docker_config = DockerConfig()

    if not username and not password:
        return CredentialSetup(docker_config=docker_config)
    if not username:
        raise ConfigurationError("username must be specified")
    if not password:
        raise ConfigurationError("password must be specified")

    docker_config.set_auth(registry or LEGACY_REGISTRY, username, password)
    logger.info("Configured registry auth", registry=registry or LEGACY_REGISTRY)
    return CredentialSetup(docker_config=docker_config)


def setup_gcr_auth(json_key: str, key_path: str = GCR_KEY_PATH) -> CredentialSetup:
    """Write a GCR service account key and point the executor at it.

    The key may be absent: images that are not pushed need none, and on GKE
    workload identity hands the pod its credentials.

    Raises:
        FileIOError: If the key file cannot be written
    """
    if not json_key:
        logger.info("No GCR JSON key given, relying on ambient credentials")
        return CredentialSetup()

    try:
        path = Path(key_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json_key, encoding="utf-8")
    except OSError as e:
        raise FileIOError(f"failed to write GCR JSON key: {e}") from e

    logger.info("Wrote GCR JSON key", path=key_path)
    return CredentialSetup(
        env=credential_environment({GCR_CREDENTIALS_ENV: key_path}),
    )


def write_docker_config(
    docker_config: DockerConfig, path: str = DOCKER_CONFIG_PATH
) -> None:
    """Persist the credential document, replacing whatever was there.

    Raises:
        FileIOError: If the document cannot be written
    """
    try:
        config_path = Path(path)
        config_path.parent.mkdir(parents=True, exist_ok=True)
        config_path.write_text(docker_config.to_json(), encoding="utf-8")
    except OSError as e:
        raise FileIOError(f"failed to write docker config {path}: {e}") from e

    logger.debug(
        "Wrote docker config",
        path=path,
        auths=sorted(docker_config.auths),
        cred_helpers=sorted(docker_config.cred_helpers),
    )
