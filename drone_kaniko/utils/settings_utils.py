import os
from pathlib import Path
from typing import Any

import structlog
from dotenv import dotenv_values
from pydantic_settings import (
    PydanticBaseSettingsSource,
)

logger = structlog.stdlib.get_logger(__name__)

TAGS_FILE = ".tags"


def split_comma_list(value: Any) -> Any:
    """Split a comma separated setting into a list.

    Drone hands list settings to plugins as `a,b,c`; values that are already
    lists (init kwargs, tests) pass through with blanks removed.
    """
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(",")
    if isinstance(value, (list, tuple)):
        return [str(item).strip() for item in value if str(item).strip()]
    return value


def read_env_file(path: str | Path) -> dict[str, str]:
    """Variables from a dotenv file that the process environment does not set.

    The file may carry variables for the tools the plugin starts (AWS_PROFILE,
    AWS_WEB_IDENTITY_TOKEN_FILE, ...), not only PLUGIN_* settings. Values
    already in the environment win, and `os.environ` is left untouched.
    """
    values = {
        name: value
        for name, value in dotenv_values(path).items()
        if value is not None and name not in os.environ
    }
    logger.debug("Read env file", path=str(path), variables=sorted(values))
    return values


class TagsFileSettingsSource(PydanticBaseSettingsSource):
    """
    Custom settings source that reads image tags from a `.tags` file.

    Drone pipelines commonly generate tags in an earlier step and write them
    to `.tags` in the workspace. The file is only consulted when the `TAGS`
    field exists on the settings class; environment variables and init
    kwargs take precedence because this source comes after them.

    Example:
        `.tags` containing `1.2.3,1.2,latest` yields TAGS=["1.2.3", "1.2", "latest"]
    """

    def __init__(self, settings_cls, tags_file: str | Path = TAGS_FILE):
        super().__init__(settings_cls)
        self.tags_file = Path(tags_file)

    def get_field_value(
        self, field_name: str, field_info: Any
    ) -> tuple[Any, str, bool]:
        if field_name != "TAGS" or not self.tags_file.is_file():
            return None, field_name, False

        contents = self.tags_file.read_text(encoding="utf-8").strip()
        if not contents:
            return None, field_name, False

        logger.debug("Read tags from file", path=str(self.tags_file))
        return contents.replace("\n", ","), field_name, False

    def prepare_field_value(
        self, field_name: str, field: Any, value: Any, value_is_complex: bool
    ) -> Any:
        return value

    def __call__(self) -> dict[str, Any]:
        d: dict[str, Any] = {}

        for field_name in self.settings_cls.model_fields:
            field_value, field_key, value_is_complex = self.get_field_value(
                field_name, self.settings_cls.model_fields[field_name]
            )
            if field_value is not None:
                d[field_key] = field_value

        return d
