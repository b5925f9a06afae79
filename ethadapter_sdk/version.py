"""
Version information for the ethadapter SDK.
"""
import importlib.metadata
import pathlib

import tomli

DISTRIBUTION = "ethadapter-sdk"
DEFAULT_VERSION = "0.1.0"


def _source_version() -> str:
    # Source checkouts are not installed; read pyproject.toml next to the package
    pyproject = pathlib.Path(__file__).parent.parent / "pyproject.toml"
    try:
        with pyproject.open("rb") as f:
            return tomli.load(f)["project"]["version"]
    except (OSError, KeyError, tomli.TOMLDecodeError):
        return DEFAULT_VERSION


try:
    __version__ = importlib.metadata.version(DISTRIBUTION)
except importlib.metadata.PackageNotFoundError:
    __version__ = _source_version()
