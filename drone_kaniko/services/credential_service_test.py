import base64
import json
import os

import pytest

from drone_kaniko.errors import (
    ConfigurationError,
    CredentialEnvironmentError,
    FileIOError,
)
from drone_kaniko.packages.kaniko import DockerConfig
from drone_kaniko.services import credential_service
from drone_kaniko.services.credential_service import (
    ACCESS_KEY_ENV,
    ECR_CREDENTIAL_HELPER,
    GCR_CREDENTIALS_ENV,
    LEGACY_REGISTRY,
    SECRET_KEY_ENV,
)

REGISTRY = "123456789012.dkr.ecr.us-east-1.amazonaws.com"


class TestSynthesizeDockerConfig:
    def test_push_binds_public_domain_and_registry_to_helper(self):
        setup = credential_service.synthesize_docker_config(
            username="",
            password="",
            access_key="",
            secret_key="",
            registry=REGISTRY,
            no_push=False,
        )

        assert setup.docker_config.cred_helpers == {
            "public.ecr.aws": ECR_CREDENTIAL_HELPER,
            REGISTRY: ECR_CREDENTIAL_HELPER,
        }
        assert setup.docker_config.auths == {}
        # IAM role: nothing to hand to the helper
        assert setup.env == {}

    def test_key_pair_becomes_executor_environment(self):
        setup = credential_service.synthesize_docker_config(
            username="",
            password="",
            access_key="AKIAEXAMPLE",
            secret_key="secret",
            registry=REGISTRY,
            no_push=False,
        )

        assert setup.env == {ACCESS_KEY_ENV: "AKIAEXAMPLE", SECRET_KEY_ENV: "secret"}
        assert ACCESS_KEY_ENV not in os.environ
        assert SECRET_KEY_ENV not in os.environ

    def test_access_key_without_secret_is_not_exported(self):
        setup = credential_service.synthesize_docker_config(
            username="",
            password="",
            access_key="AKIAEXAMPLE",
            secret_key="",
            registry=REGISTRY,
            no_push=True,
        )

        assert setup.env == {}
        assert REGISTRY in setup.docker_config.cred_helpers

    def test_username_binds_legacy_registry(self):
        setup = credential_service.synthesize_docker_config(
            username="octocat",
            password="hunter2",
            access_key="",
            secret_key="",
            registry=REGISTRY,
            no_push=False,
        )

        token = setup.docker_config.auths[LEGACY_REGISTRY].auth
        assert base64.b64decode(token).decode() == "octocat:hunter2"

    def test_no_push_without_access_key_skips_auth(self):
        setup = credential_service.synthesize_docker_config(
            username="",
            password="",
            access_key="",
            secret_key="",
            registry="",
            no_push=True,
        )

        assert setup.docker_config.is_empty
        assert setup.env == {}

    def test_no_push_with_access_key_still_requires_registry(self):
        with pytest.raises(ConfigurationError, match="registry must be specified"):
            credential_service.synthesize_docker_config(
                username="",
                password="",
                access_key="AKIAEXAMPLE",
                secret_key="secret",
                registry="",
                no_push=True,
            )

    def test_push_without_registry_fails(self):
        with pytest.raises(ConfigurationError, match="registry must be specified"):
            credential_service.synthesize_docker_config(
                username="",
                password="",
                access_key="",
                secret_key="",
                registry="",
                no_push=False,
            )

    def test_unexportable_key_fails(self):
        with pytest.raises(CredentialEnvironmentError, match=SECRET_KEY_ENV):
            credential_service.synthesize_docker_config(
                username="",
                password="",
                access_key="AKIAEXAMPLE",
                secret_key="bad\x00secret",
                registry=REGISTRY,
                no_push=False,
            )


class TestCredentialEnvironment:
    def test_rejects_invalid_names(self):
        with pytest.raises(CredentialEnvironmentError):
            credential_service.credential_environment({"A=B": "value"})

        with pytest.raises(CredentialEnvironmentError):
            credential_service.credential_environment({"": "value"})


class TestWriteDockerConfig:
    def test_writes_auths_and_cred_helpers(self, docker_config_path):
        config = DockerConfig()
        config.set_cred_helper(REGISTRY, ECR_CREDENTIAL_HELPER)

        credential_service.write_docker_config(config, docker_config_path)

        with open(docker_config_path, encoding="utf-8") as handle:
            written = json.load(handle)
        assert written == {
            "auths": {},
            "credHelpers": {REGISTRY: ECR_CREDENTIAL_HELPER},
        }

    def test_second_write_replaces_content(self, docker_config_path):
        first = DockerConfig()
        first.set_auth("registry.example.com", "user", "pass")
        first.set_cred_helper("old.example.com", "desktop")
        credential_service.write_docker_config(first, docker_config_path)

        second = DockerConfig()
        second.set_cred_helper(REGISTRY, ECR_CREDENTIAL_HELPER)
        credential_service.write_docker_config(second, docker_config_path)

        with open(docker_config_path, encoding="utf-8") as handle:
            written = json.load(handle)
        assert written == {
            "auths": {},
            "credHelpers": {REGISTRY: ECR_CREDENTIAL_HELPER},
        }

    def test_later_binding_for_same_host_wins(self):
        config = DockerConfig()
        config.set_auth(REGISTRY, "first", "a")
        config.set_auth(REGISTRY, "second", "b")

        assert len(config.auths) == 1
        assert base64.b64decode(config.auths[REGISTRY].auth).decode() == "second:b"

    def test_unwritable_path_fails(self, tmp_path):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("", encoding="utf-8")

        with pytest.raises(FileIOError):
            credential_service.write_docker_config(
                DockerConfig(), str(blocker / "config.json")
            )


class TestBasicAuthConfig:
    def test_binds_registry(self):
        setup = credential_service.synthesize_basic_auth_config(
            "octocat", "hunter2", "registry.example.com"
        )
        assert list(setup.docker_config.auths) == ["registry.example.com"]

    def test_defaults_to_docker_hub(self):
        setup = credential_service.synthesize_basic_auth_config("octocat", "hunter2", "")
        assert list(setup.docker_config.auths) == [LEGACY_REGISTRY]

    def test_anonymous(self):
        setup = credential_service.synthesize_basic_auth_config("", "", "")
        assert setup.docker_config.is_empty

    def test_password_without_username_fails(self):
        with pytest.raises(ConfigurationError, match="username"):
            credential_service.synthesize_basic_auth_config("", "hunter2", "")

    def test_username_without_password_fails(self):
        with pytest.raises(ConfigurationError, match="password"):
            credential_service.synthesize_basic_auth_config("octocat", "", "")


class TestGCRAuth:
    def test_writes_key_and_points_environment_at_it(self, tmp_path):
        key_path = str(tmp_path / "kaniko" / "config.json")

        setup = credential_service.setup_gcr_auth('{"type": "service_account"}', key_path)

        assert setup.env == {GCR_CREDENTIALS_ENV: key_path}
        with open(key_path, encoding="utf-8") as handle:
            assert handle.read() == '{"type": "service_account"}'
        assert GCR_CREDENTIALS_ENV not in os.environ

    def test_no_key_uses_ambient_credentials(self, tmp_path):
        key_path = tmp_path / "config.json"

        setup = credential_service.setup_gcr_auth("", str(key_path))

        assert setup.env == {}
        assert not key_path.exists()
