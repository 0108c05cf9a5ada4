from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("drone-kaniko")
except PackageNotFoundError:
    __version__ = "unknown"
