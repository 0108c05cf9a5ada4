class PluginError(RuntimeError):
    """Base class for every error that aborts a plugin run.

    The CLI entry point catches this, logs it once and exits non-zero.
    """


class ConfigurationError(PluginError):
    """A required identifier (registry, repository, ...) is missing or invalid."""


class CredentialEnvironmentError(PluginError):
    """Credentials could not be exported to the executor environment."""


class RegistryError(PluginError):
    """The registry backend rejected a create or policy call."""


class FileIOError(PluginError):
    """A policy file could not be read or a generated file could not be written."""


class DelegateError(PluginError):
    """The kaniko executor could not be started or exited non-zero."""

    def __init__(self, message: str, returncode: int = 1):
        super().__init__(message)
        self.returncode = returncode
