"""Plugin orchestration.

Each variant runs the same sequence: credential setup, optional repository
creation, optional policy uploads, then exactly one executor run. A
PluginError anywhere before the executor aborts the run; nothing already
done (written files, created repositories) is rolled back.
"""

from collections.abc import Callable, Mapping

import boto3
import structlog

from drone_kaniko.factories import aws_session_factory, registry_backend_factory
from drone_kaniko.packages import kaniko
from drone_kaniko.packages.kaniko import (
    ArtifactSpec,
    BuildJob,
    CredentialSetup,
    RegistryType,
)
from drone_kaniko.packages.registry import RegistryBackend, RegistryTarget
from drone_kaniko.services import credential_service, repository_service
from drone_kaniko.settings import (
    DockerSettings,
    ECRSettings,
    GCRSettings,
    PluginSettings,
)

logger = structlog.stdlib.get_logger(__name__)

SessionFactory = Callable[..., boto3.Session]

SESSION_TOKEN_ENV = "AWS_SESSION_TOKEN"
PROFILE_ENV = "AWS_PROFILE"


def build_job(
    settings: PluginSettings,
    repo: str,
    cache_repo: str,
    credentials: CredentialSetup,
    base_env: Mapping[str, str] | None = None,
) -> BuildJob:
    """Assemble the executor job.

    The executor environment is `base_env` (variables from the env file)
    overlaid with the credential environment.
    """
    return BuildJob(
        dockerfile=settings.DOCKERFILE,
        context=settings.CONTEXT,
        tags=tuple(settings.TAGS),
        auto_tag=settings.AUTO_TAG,
        auto_tag_suffix=settings.AUTO_TAG_SUFFIX,
        expand_tag=settings.EXPAND_TAG,
        args=tuple(settings.BUILD_ARGS),
        target=settings.TARGET,
        repo=repo,
        mirrors=tuple(settings.REGISTRY_MIRRORS),
        labels=tuple(settings.CUSTOM_LABELS),
        snapshot_mode=settings.SNAPSHOT_MODE,
        enable_cache=settings.ENABLE_CACHE,
        cache_dir=settings.CACHE_DIR,
        cache_copy_layers=settings.CACHE_COPY_LAYERS,
        cache_no_compress=settings.CACHE_NO_COMPRESS,
        cache_repo=cache_repo,
        cache_ttl=settings.CACHE_TTL,
        digest_file=kaniko.DEFAULT_DIGEST_FILE,
        no_push=settings.NO_PUSH,
        verbosity=settings.VERBOSITY,
        use_new_run=settings.USE_NEW_RUN,
        platform=settings.PLATFORM,
        drone_commit_ref=settings.DRONE_COMMIT_REF,
        drone_repo_branch=settings.DRONE_REPO_BRANCH,
        env={**(base_env or {}), **credentials.env},
    )


def session_credentials(
    settings: ECRSettings, base_env: Mapping[str, str] | None
) -> tuple[str, str, dict[str, str]]:
    """Access key, secret key and extra session options for the registry API.

    PLUGIN_ACCESS_KEY/PLUGIN_SECRET_KEY win; otherwise AWS_* variables from
    the env file are used.
    """
    base_env = base_env or {}
    options: dict[str, str] = {}
    if base_env.get(PROFILE_ENV):
        options["profile"] = base_env[PROFILE_ENV]

    if settings.ACCESS_KEY and settings.SECRET_KEY:
        return settings.ACCESS_KEY, settings.SECRET_KEY, options

    if base_env.get(SESSION_TOKEN_ENV):
        options["session_token"] = base_env[SESSION_TOKEN_ENV]
    return (
        base_env.get(credential_service.ACCESS_KEY_ENV, ""),
        base_env.get(credential_service.SECRET_KEY_ENV, ""),
        options,
    )


def run_ecr(
    settings: ECRSettings,
    docker_config_path: str = credential_service.DOCKER_CONFIG_PATH,
    session_factory: SessionFactory = aws_session_factory,
    base_env: Mapping[str, str] | None = None,
) -> bool:
    """Run the ECR plugin.

    Returns:
        Whether the executor ran (False when auto-tagging skipped the build)

    Raises:
        PluginError: On any failure; the executor is never started after a
            failure in credential, repository or policy setup
    """
    target = RegistryTarget(
        registry=settings.REGISTRY,
        repository=settings.REPO,
        region=settings.REGION,
    )

    credentials = credential_service.synthesize_docker_config(
        username=settings.USERNAME,
        password=settings.PASSWORD,
        access_key=settings.ACCESS_KEY,
        secret_key=settings.SECRET_KEY,
        registry=settings.REGISTRY,
        no_push=settings.NO_PUSH,
    )
    if not credentials.docker_config.is_empty:
        credential_service.write_docker_config(
            credentials.docker_config, docker_config_path
        )

    backend: RegistryBackend | None = None

    def get_backend() -> RegistryBackend:
        nonlocal backend
        if backend is None:
            repository_service.validate_target(target)
            access_key, secret_key, options = session_credentials(settings, base_env)
            session = session_factory(settings.REGION, access_key, secret_key, **options)
            backend = registry_backend_factory(target, session)
        return backend

    # only create the repository when pushing
    if not settings.NO_PUSH and settings.CREATE_REPOSITORY:
        repository_service.ensure_repository(target, get_backend())

    if settings.LIFECYCLE_POLICY:
        policy_text = repository_service.read_policy_file(settings.LIFECYCLE_POLICY)
        repository_service.upload_lifecycle_policy(
            get_backend(), target.repository, policy_text
        )

    if settings.REPOSITORY_POLICY:
        policy_text = repository_service.read_policy_file(settings.REPOSITORY_POLICY)
        repository_service.upload_repository_policy(
            get_backend(), target.repository, policy_text
        )

    cache_repo = settings.qualified_cache_repo if settings.CACHE_REPO else ""
    job = build_job(settings, target.reference, cache_repo, credentials, base_env)
    artifact = ArtifactSpec(
        artifact_file=settings.ARTIFACT_FILE,
        registry=settings.REGISTRY,
        repo=settings.REPO,
        registry_type=RegistryType.ECR,
    )
    return kaniko.execute(job, artifact)


def run_gcr(
    settings: GCRSettings,
    key_path: str = credential_service.GCR_KEY_PATH,
    base_env: Mapping[str, str] | None = None,
) -> bool:
    """Run the GCR plugin. See `run_ecr` for the return value and errors."""
    credentials = credential_service.setup_gcr_auth(settings.JSON_KEY, key_path)

    cache_repo = settings.qualified_cache_repo if settings.CACHE_REPO else ""
    job = build_job(
        settings, settings.qualified_repo, cache_repo, credentials, base_env
    )
    artifact = ArtifactSpec(
        artifact_file=settings.ARTIFACT_FILE,
        registry=settings.REGISTRY,
        repo=settings.REPO,
        registry_type=RegistryType.GCR,
    )
    return kaniko.execute(job, artifact)


def run_docker(
    settings: DockerSettings,
    docker_config_path: str = credential_service.DOCKER_CONFIG_PATH,
    base_env: Mapping[str, str] | None = None,
) -> bool:
    """Run the Docker registry plugin.

    REPO is used as given (e.g. "org/app" on Docker Hub); REGISTRY only
    selects where the credentials apply.
    """
    credentials = credential_service.synthesize_basic_auth_config(
        username=settings.USERNAME,
        password=settings.PASSWORD,
        registry=settings.REGISTRY,
    )
    if not credentials.docker_config.is_empty:
        credential_service.write_docker_config(
            credentials.docker_config, docker_config_path
        )

    job = build_job(settings, settings.REPO, settings.CACHE_REPO, credentials, base_env)
    artifact = ArtifactSpec(
        artifact_file=settings.ARTIFACT_FILE,
        registry=settings.REGISTRY,
        repo=settings.REPO,
        registry_type=RegistryType.DOCKER,
    )
    return kaniko.execute(job, artifact)
