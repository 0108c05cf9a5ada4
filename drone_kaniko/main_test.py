import os
import subprocess
from unittest.mock import patch

import pytest

from drone_kaniko import main as cli
from drone_kaniko.settings import ECRSettings


@pytest.fixture(autouse=True)
def no_logging_setup():
    with patch("drone_kaniko.main.setup_logger"):
        yield


def test_build_parser_only_sets_given_flags():
    parser = cli.build_parser("ecr", ECRSettings)

    args = parser.parse_args(
        ["--repo", "app", "--create-repository", "--args", "A=1,B=2", "--cache-ttl", "3"]
    )

    assert vars(args) == {
        "REPO": "app",
        "CREATE_REPOSITORY": True,
        "BUILD_ARGS": "A=1,B=2",
        "CACHE_TTL": "3",
    }


def test_flags_override_environment(monkeypatch):
    monkeypatch.setenv("PLUGIN_REPO", "from-env")
    monkeypatch.setenv("PLUGIN_NO_PUSH", "true")
    parser = cli.build_parser("ecr", ECRSettings)
    args = parser.parse_args(["--repo", "from-flag", "--cache-ttl", "3"])

    settings = cli.load_settings(ECRSettings, vars(args))

    assert settings.REPO == "from-flag"
    assert settings.CACHE_TTL == 3
    assert settings.NO_PUSH is True


def test_missing_env_file_is_fatal(monkeypatch, tmp_path):
    monkeypatch.setenv("PLUGIN_ENV_FILE", str(tmp_path / "missing.env"))

    with pytest.raises(SystemExit) as exc_info:
        cli.main("ecr", [])

    assert exc_info.value.code == 1


def test_configuration_error_exits_non_zero():
    with patch("subprocess.run") as mock_run:
        with pytest.raises(SystemExit) as exc_info:
            cli.main("ecr", ["--repo", "app"])

    assert exc_info.value.code == 1
    mock_run.assert_not_called()


def test_executor_exit_code_is_propagated():
    with patch(
        "subprocess.run",
        return_value=subprocess.CompletedProcess(args=[], returncode=2),
    ):
        with pytest.raises(SystemExit) as exc_info:
            cli.main("docker", ["--repo", "octocat/app"])

    assert exc_info.value.code == 2


def test_success_returns_normally():
    with patch(
        "subprocess.run",
        return_value=subprocess.CompletedProcess(args=[], returncode=0),
    ) as mock_run:
        cli.main("gcr", ["--repo", "project/app"])

    assert "--destination=gcr.io/project/app:latest" in mock_run.call_args[0][0]


def test_env_file_variables_reach_executor(monkeypatch, tmp_path):
    env_file = tmp_path / "plugin.env"
    env_file.write_text(
        "\n".join(
            [
                "PLUGIN_REGISTRY=123456789012.dkr.ecr.us-east-1.amazonaws.com",
                "PLUGIN_REPO=app",
                "PLUGIN_NO_PUSH=true",
                "AWS_PROFILE=ci",
                "AWS_ACCESS_KEY_ID=AKIAFROMFILE",
                "AWS_DEFAULT_REGION=us-west-2",
            ]
        ),
        encoding="utf-8",
    )
    monkeypatch.setenv("PLUGIN_ENV_FILE", str(env_file))
    monkeypatch.setenv("AWS_DEFAULT_REGION", "eu-west-1")

    with patch(
        "subprocess.run",
        return_value=subprocess.CompletedProcess(args=[], returncode=0),
    ) as mock_run:
        cli.main("ecr", [])

    env = mock_run.call_args[1]["env"]
    assert env["AWS_PROFILE"] == "ci"
    assert env["AWS_ACCESS_KEY_ID"] == "AKIAFROMFILE"
    # the process environment wins over the file
    assert env["AWS_DEFAULT_REGION"] == "eu-west-1"
    assert "AWS_PROFILE" not in os.environ
    assert "--no-push" in mock_run.call_args[0][0]
