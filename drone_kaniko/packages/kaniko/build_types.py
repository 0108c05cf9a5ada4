import base64
from collections.abc import Mapping
from enum import Enum
from types import MappingProxyType

from pydantic import BaseModel, ConfigDict, Field, field_validator


class DockerAuth(BaseModel):
    auth: str


class DockerConfig(BaseModel):
    """Credential document read by kaniko from `/kaniko/.docker/config.json`.

    One entry per registry host in each map; setting a host again replaces
    its previous entry.
    """

    model_config = ConfigDict(populate_by_name=True)

    auths: dict[str, DockerAuth] = Field(default_factory=dict)
    cred_helpers: dict[str, str] = Field(default_factory=dict, alias="credHelpers")

    def set_auth(self, registry: str, username: str, password: str) -> None:
        token = base64.b64encode(f"{username}:{password}".encode()).decode()
        self.auths[registry] = DockerAuth(auth=token)

    def set_cred_helper(self, registry: str, helper: str) -> None:
        self.cred_helpers[registry] = helper

    @property
    def is_empty(self) -> bool:
        return not self.auths and not self.cred_helpers

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)


class CredentialSetup(BaseModel):
    """Result of credential synthesis for one plugin run."""

    docker_config: DockerConfig = Field(default_factory=DockerConfig)
    env: dict[str, str] = Field(default_factory=dict)
    """Extra environment for the executor (credential helper inputs)"""


class RegistryType(str, Enum):
    DOCKER = "Docker"
    ECR = "ECR"
    GCR = "GCR"


class BuildJob(BaseModel):
    """Everything the kaniko executor is invoked with.

    Frozen: the orchestrator builds it once and hands it to the executor
    unchanged.
    """

    model_config = ConfigDict(frozen=True)

    dockerfile: str = "Dockerfile"
    context: str = "."
    tags: tuple[str, ...] = ("latest",)
    auto_tag: bool = False
    auto_tag_suffix: str = ""
    expand_tag: bool = False
    args: tuple[str, ...] = ()
    target: str = ""
    repo: str
    mirrors: tuple[str, ...] = ()
    labels: tuple[str, ...] = ()
    snapshot_mode: str = ""
    enable_cache: bool = False
    cache_dir: str = ""
    cache_copy_layers: bool = False
    cache_no_compress: bool = False
    cache_repo: str = ""
    cache_ttl: int = 0
    digest_file: str = ""
    no_push: bool = False
    verbosity: str = ""
    use_new_run: bool = False
    platform: str = ""
    drone_commit_ref: str = ""
    drone_repo_branch: str = ""
    env: Mapping[str, str] = Field(default_factory=dict, repr=False, validate_default=True)

    @field_validator("env", mode="after")
    @classmethod
    def freeze_env(cls, value: Mapping[str, str]) -> Mapping[str, str]:
        return MappingProxyType(dict(value))


class ArtifactSpec(BaseModel):
    """Where and how to record pushed images after a build."""

    model_config = ConfigDict(frozen=True)

    artifact_file: str = ""
    registry: str = ""
    repo: str = ""
    registry_type: RegistryType = RegistryType.DOCKER


class ArtifactImage(BaseModel):
    image: str
    digest: str


class ArtifactData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    registry_type: RegistryType = Field(alias="registryType")
    registry_url: str = Field(alias="registryUrl")
    images: list[ArtifactImage]


class DockerArtifact(BaseModel):
    kind: str = "docker/v1"
    data: ArtifactData
