import os
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from drone_kaniko.factories import aws_session_factory


@pytest.fixture
def client_error():
    """Factory for botocore ClientErrors carrying a given error code."""

    def make(code: str, operation: str = "CreateRepository") -> ClientError:
        return ClientError(
            {"Error": {"Code": code, "Message": f"{code} raised by test"}},
            operation,
        )

    return make


# Keep the runner's own Drone/AWS environment out of settings tests
@pytest.fixture(autouse=True)
def clean_plugin_env(monkeypatch, tmp_path):
    for name in list(os.environ):
        if name.startswith(("PLUGIN_", "DRONE_", "DOCKER_", "AWS_")):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.delenv("GOOGLE_APPLICATION_CREDENTIALS", raising=False)
    # No stray .tags file from the repository checkout
    monkeypatch.chdir(tmp_path)
    aws_session_factory.cache_clear()
    yield
    aws_session_factory.cache_clear()


@pytest.fixture
def backend() -> MagicMock:
    """A registry backend whose calls all succeed."""
    mock_backend = MagicMock()
    mock_backend.name = "ecr"
    return mock_backend


@pytest.fixture
def docker_config_path(tmp_path) -> str:
    return str(tmp_path / "kaniko" / ".docker" / "config.json")
