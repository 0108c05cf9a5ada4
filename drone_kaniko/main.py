"""Command line entry points for the kaniko plugins.

Drone runs each plugin image without arguments and passes its settings as
PLUGIN_* environment variables. Every setting also has a flag for local
runs; flags win over the environment.

Usage:
    kaniko-ecr [--repo app --registry 123.dkr.ecr.us-east-1.amazonaws.com ...]
    python -m drone_kaniko.main gcr --repo project/app --json-key "$KEY"
"""

import argparse
import os
import sys
from collections.abc import Callable
from pathlib import Path

import structlog
from pydantic import ValidationError
from pydantic_settings import BaseSettings

from drone_kaniko import __version__, plugin
from drone_kaniko.errors import ConfigurationError, DelegateError, PluginError
from drone_kaniko.settings import DockerSettings, ECRSettings, GCRSettings
from drone_kaniko.utils.logging import setup_logger
from drone_kaniko.utils.settings_utils import read_env_file

logger = structlog.stdlib.get_logger(__name__)

ENV_FILE_VARIABLE = "PLUGIN_ENV_FILE"

VARIANTS: dict[str, tuple[type[BaseSettings], Callable[..., bool]]] = {
    "ecr": (ECRSettings, plugin.run_ecr),
    "gcr": (GCRSettings, plugin.run_gcr),
    "docker": (DockerSettings, plugin.run_docker),
}

# Short flag names shared with the drone-docker plugin
FLAG_ALIASES = {
    "BUILD_ARGS": ["--args"],
    "USERNAME": ["--docker-username"],
    "PASSWORD": ["--docker-password"],
}


def flag_name(field_name: str) -> str:
    return "--" + field_name.lower().replace("_", "-")


def build_parser(variant: str, settings_cls: type[BaseSettings]) -> argparse.ArgumentParser:
    """One optional flag per settings field; unset flags are left out of the namespace."""
    parser = argparse.ArgumentParser(
        prog=f"kaniko-{variant}",
        description=f"kaniko {variant} plugin",
        argument_default=argparse.SUPPRESS,
    )
    parser.add_argument("--version", action="version", version=__version__)

    for field_name, field in settings_cls.model_fields.items():
        flags = [flag_name(field_name), *FLAG_ALIASES.get(field_name, [])]
        if field.annotation is bool:
            parser.add_argument(*flags, dest=field_name, action="store_true")
        else:
            parser.add_argument(*flags, dest=field_name)

    return parser


def env_file_path() -> str | None:
    env_file = os.environ.get(ENV_FILE_VARIABLE)
    if env_file and not Path(env_file).is_file():
        raise ConfigurationError(f"env file {env_file} does not exist")
    return env_file or None


def load_settings(settings_cls: type[BaseSettings], overrides: dict) -> BaseSettings:
    """Build settings from flags, environment and the optional env file."""
    env_file = env_file_path()

    try:
        return settings_cls(_env_file=env_file, **overrides)
    except ValidationError as e:
        raise ConfigurationError(f"invalid plugin settings: {e}") from e


def main(variant: str, argv: list[str] | None = None) -> None:
    settings_cls, run = VARIANTS[variant]
    parser = build_parser(variant, settings_cls)
    args = parser.parse_args(argv)

    setup_logger()
    structlog.contextvars.bind_contextvars(plugin=variant)

    try:
        settings = load_settings(settings_cls, vars(args))
        env_file = env_file_path()
        # every variable in the env file also reaches the executor and the AWS session
        base_env = read_env_file(env_file) if env_file else {}
        built = run(settings, base_env=base_env)
    except DelegateError as exc:
        logger.error("Image build failed", error=str(exc))
        raise SystemExit(exc.returncode) from exc
    except PluginError as exc:
        # Keep failures short and readable in step logs.
        logger.error("Plugin failed", error=str(exc), error_type=type(exc).__name__)
        raise SystemExit(1) from exc

    logger.info("Plugin finished", built=built)


def ecr_main() -> None:
    main("ecr")


def gcr_main() -> None:
    main("gcr")


def docker_main() -> None:
    main("docker")


if __name__ == "__main__":
    if len(sys.argv) < 2 or sys.argv[1] not in VARIANTS:
        print(f"usage: python -m drone_kaniko.main {{{','.join(VARIANTS)}}} [flags]", file=sys.stderr)
        raise SystemExit(2)
    main(sys.argv[1], sys.argv[2:])
