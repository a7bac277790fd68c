"""rigforge - rigging and animation lifecycle tracking for generated 3D assets."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("rigforge")
except PackageNotFoundError:
    __version__ = "unknown"
