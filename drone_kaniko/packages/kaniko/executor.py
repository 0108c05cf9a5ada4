import os
import shlex
import subprocess

import structlog

from drone_kaniko.errors import ConfigurationError, DelegateError

from .artifact import write_artifact_file
from .build_types import ArtifactSpec, BuildJob
from .tags import default_tag_suffix, expand_tags, use_default_tag

logger = structlog.stdlib.get_logger(__name__)

EXECUTOR_PATH = "/kaniko/executor"
DEFAULT_DIGEST_FILE = "/kaniko/digest-file"
BUILD_ARG_FLAG = "--build-arg="


def resolve_tags(job: BuildJob) -> list[str] | None:
    """Final tag list for a job, or None when an auto-tagged build is skipped."""
    if job.auto_tag and job.expand_tag:
        raise ConfigurationError("the auto-tag flag does not work with the expand-tag flag")

    if job.auto_tag:
        if not use_default_tag(job.drone_commit_ref, job.drone_repo_branch):
            return None
        return default_tag_suffix(job.drone_commit_ref, job.auto_tag_suffix)

    if job.expand_tag:
        return expand_tags(list(job.tags))

    return list(job.tags)


def build_command(job: BuildJob, tags: list[str]) -> list[str]:
    """Render the executor command line for a job."""
    cmd = [
        EXECUTOR_PATH,
        f"--dockerfile={job.dockerfile}",
        f"--context={job.context}",
    ]

    for tag in tags:
        cmd.append(f"--destination={job.repo}:{tag}")
    for arg in job.args:
        cmd.append(f"{BUILD_ARG_FLAG}{arg}")
    for label in job.labels:
        cmd.append(f"--label={label}")

    if job.target:
        cmd.append(f"--target={job.target}")

    if job.enable_cache:
        cmd.append("--cache=true")
        if job.cache_dir:
            cmd.append(f"--cache-dir={job.cache_dir}")
        if job.cache_repo:
            cmd.append(f"--cache-repo={job.cache_repo}")
        if job.cache_ttl:
            cmd.append(f"--cache-ttl={job.cache_ttl}h")
        if job.cache_copy_layers:
            cmd.append("--cache-copy-layers")
        if job.cache_no_compress:
            cmd.append("--compressed-caching=false")

    if job.digest_file:
        cmd.append(f"--digest-file={job.digest_file}")
    for mirror in job.mirrors:
        cmd.append(f"--registry-mirror={mirror}")
    if job.snapshot_mode:
        cmd.append(f"--snapshotMode={job.snapshot_mode}")
    if job.no_push:
        cmd.append("--no-push")
    if job.verbosity:
        cmd.append(f"--verbosity={job.verbosity}")
    if job.use_new_run:
        cmd.append("--use-new-run")
    if job.platform:
        cmd.append(f"--platform={job.platform}")

    return cmd


def redact_command(cmd: list[str]) -> list[str]:
    """Command with build-arg values masked, for logging."""
    redacted = []
    for arg in cmd:
        # NAME without a value takes it from the environment; nothing to mask
        if arg.startswith(BUILD_ARG_FLAG) and "=" in arg[len(BUILD_ARG_FLAG) :]:
            name = arg[len(BUILD_ARG_FLAG) :].split("=", 1)[0]
            arg = f"{BUILD_ARG_FLAG}{name}=***"
        redacted.append(arg)
    return redacted


def run_executor(cmd: list[str], env: dict[str, str]) -> None:
    """Run the executor with stdout/stderr passed through to the step log.

    Raises:
        DelegateError: If the executor cannot start or exits non-zero
    """
    logger.info("Running kaniko executor", command=shlex.join(redact_command(cmd)))
    try:
        result = subprocess.run(cmd, env={**os.environ, **env}, check=False)
    except OSError as e:
        raise DelegateError(f"failed to start {cmd[0]}: {e}") from e

    if result.returncode != 0:
        raise DelegateError(
            f"kaniko executor exited with status {result.returncode}",
            returncode=result.returncode,
        )


def execute(job: BuildJob, artifact: ArtifactSpec | None = None) -> bool:
    """Run one build job.

    Returns:
        False when the build was skipped by auto-tagging, True after a
        successful build

    Raises:
        ConfigurationError: If the tag flags conflict
        DelegateError: If the executor fails
        FileIOError: If the artifact file cannot be written
    """
    tags = resolve_tags(job)
    if tags is None:
        logger.info("Skipping automated docker build", ref=job.drone_commit_ref)
        return False

    run_executor(build_command(job, tags), job.env)

    if artifact and artifact.artifact_file and not job.no_push:
        write_artifact_file(artifact, tags, job.digest_file)

    return True
