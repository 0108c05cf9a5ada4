from typing import Annotated

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import (
    BaseSettings,
    NoDecode,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from drone_kaniko.utils.settings_utils import TagsFileSettingsSource, split_comma_list

CommaList = Annotated[list[str], NoDecode]


class DroneConfig(BaseSettings):
    """Build metadata injected by the Drone runner (no PLUGIN_ prefix)."""

    DRONE_COMMIT_REF: str = Field("", validation_alias="DRONE_COMMIT_REF")
    DRONE_REPO_BRANCH: str = Field("", validation_alias="DRONE_REPO_BRANCH")


class BuildConfig(BaseSettings):
    DOCKERFILE: str = "Dockerfile"
    CONTEXT: str = "."
    TAGS: CommaList = ["latest"]
    EXPAND_TAG: bool = False
    AUTO_TAG: bool = False
    AUTO_TAG_SUFFIX: str = ""
    BUILD_ARGS: CommaList = []
    TARGET: str = ""
    REPO: str = ""
    REGISTRY: str = ""
    REGISTRY_MIRRORS: CommaList = []
    CUSTOM_LABELS: CommaList = []
    SNAPSHOT_MODE: str = ""
    ARTIFACT_FILE: str = ""
    NO_PUSH: bool = False
    VERBOSITY: str = ""
    USE_NEW_RUN: bool = False
    PLATFORM: str = ""

    @field_validator("TAGS", "BUILD_ARGS", "REGISTRY_MIRRORS", "CUSTOM_LABELS", mode="before")
    @classmethod
    def split_lists(cls, value):
        return split_comma_list(value)


class CacheConfig(BaseSettings):
    ENABLE_CACHE: bool = False
    CACHE_DIR: str = "/cache"
    """Local base image cache, only used when ENABLE_CACHE is set"""
    CACHE_COPY_LAYERS: bool = False
    CACHE_NO_COMPRESS: bool = False
    CACHE_REPO: str = ""
    CACHE_TTL: int = 0
    """Cache timeout in hours, 0 leaves kaniko's two week default"""


class DockerAuthConfig(BaseSettings):
    USERNAME: str = Field(
        "",
        validation_alias=AliasChoices("PLUGIN_USERNAME", "DOCKER_USERNAME"),
    )
    PASSWORD: str = Field(
        "",
        validation_alias=AliasChoices("PLUGIN_PASSWORD", "DOCKER_PASSWORD"),
    )


class ECRConfig(BaseSettings):
    REGION: str = "us-east-1"
    CREATE_REPOSITORY: bool = False
    ACCESS_KEY: str = ""
    SECRET_KEY: str = ""
    LIFECYCLE_POLICY: str = ""
    """Path to a lifecycle policy document uploaded before the build"""
    REPOSITORY_POLICY: str = ""
    """Path to a repository policy document uploaded before the build"""


class GCRConfig(BaseSettings):
    JSON_KEY: str = ""
    """Service account key; empty when workload identity provides credentials"""


class PluginSettings(DroneConfig, BuildConfig, CacheConfig, BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="PLUGIN_",
        env_ignore_empty=True,
        populate_by_name=True,
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """
        Define the priority order for settings sources.

        Priority (highest to lowest):
        1. CLI flags (init kwargs)
        2. Environment variables
        3. PLUGIN_ENV_FILE dotenv file
        4. `.tags` file in the working directory (TAGS only)
        5. Default values
        """
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            TagsFileSettingsSource(settings_cls),
            file_secret_settings,
        )

    @property
    def qualified_repo(self) -> str:
        return f"{self.REGISTRY}/{self.REPO}"

    @property
    def qualified_cache_repo(self) -> str:
        return f"{self.REGISTRY}/{self.CACHE_REPO}"


class ECRSettings(ECRConfig, DockerAuthConfig, PluginSettings):
    pass


class GCRSettings(GCRConfig, PluginSettings):
    REGISTRY: str = "gcr.io"


class DockerSettings(DockerAuthConfig, PluginSettings):
    pass
