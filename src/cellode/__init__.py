from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("cellode")
except PackageNotFoundError:
    __version__ = "unknown"
