from pathlib import Path

import structlog

from drone_kaniko.errors import FileIOError

from .build_types import ArtifactData, ArtifactImage, ArtifactSpec, DockerArtifact

logger = structlog.stdlib.get_logger(__name__)


def read_digest(digest_file: str) -> str:
    try:
        return Path(digest_file).read_text(encoding="utf-8").strip()
    except OSError as e:
        raise FileIOError(f"failed to read digest file {digest_file}: {e}") from e


def build_artifact(spec: ArtifactSpec, tags: list[str], digest: str) -> DockerArtifact:
    return DockerArtifact(
        data=ArtifactData(
            registry_type=spec.registry_type,
            registry_url=spec.registry,
            images=[
                ArtifactImage(image=f"{spec.repo}:{tag}", digest=digest) for tag in tags
            ],
        )
    )


def write_artifact_file(spec: ArtifactSpec, tags: list[str], digest_file: str) -> None:
    """Record the pushed images for downstream pipeline steps.

    Raises:
        FileIOError: If the digest cannot be read or the file cannot be written
    """
    artifact = build_artifact(spec, tags, read_digest(digest_file))

    try:
        path = Path(spec.artifact_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(artifact.model_dump_json(by_alias=True), encoding="utf-8")
    except OSError as e:
        raise FileIOError(f"failed to write artifact file {spec.artifact_file}: {e}") from e

    logger.info(
        "Wrote artifact file",
        path=spec.artifact_file,
        images=[image.image for image in artifact.data.images],
    )
