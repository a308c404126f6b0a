"""Package version, read from installed metadata or pyproject.toml."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("onecache")
except PackageNotFoundError:
    # Source checkout without an install
    import tomllib
    from pathlib import Path

    _pyproject = Path(__file__).resolve().parent.parent / "pyproject.toml"
    try:
        with open(_pyproject, "rb") as f:
            __version__ = tomllib.load(f)["project"]["version"]
    except (OSError, KeyError, tomllib.TOMLDecodeError):
        __version__ = "0.0.0-dev"
