"""Package version resolution.

Installed distributions report their version through :mod:`importlib.metadata`.
Source checkouts that were never installed fall back to ``[project].version``
in the neighbouring ``pyproject.toml``.
"""

from __future__ import annotations

from importlib import metadata
from pathlib import Path

from packaging.version import InvalidVersion, Version

try:  # pragma: no cover - exercised on Python < 3.11
    import tomllib  # type: ignore[attr-defined]
except ModuleNotFoundError:  # pragma: no cover - fallback when tomllib is unavailable
    import tomli as tomllib  # type: ignore

DISTRIBUTION = "tire-friction"


def _version_from_pyproject(root: Path | None = None) -> str:
    candidates = [root] if root is not None else list(Path(__file__).resolve().parents[1:3])
    for directory in candidates:
        pyproject = directory / "pyproject.toml"
        if not pyproject.is_file():
            continue
        with pyproject.open("rb") as handle:
            project = tomllib.load(handle).get("project", {})
        if project.get("name") == DISTRIBUTION and "version" in project:
            return str(project["version"])
    raise RuntimeError(f"'{DISTRIBUTION}' is neither installed nor inside its source tree.")


def _load_version() -> str:
    try:
        raw_version = metadata.version(DISTRIBUTION)
    except metadata.PackageNotFoundError:
        raw_version = _version_from_pyproject()

    try:
        release = Version(raw_version).release
    except InvalidVersion as exc:
        raise RuntimeError(f"Invalid '{DISTRIBUTION}' version {raw_version!r}") from exc
    if len(release) != 3:
        raise RuntimeError(f"'{DISTRIBUTION}' versions are MAJOR.MINOR.PATCH, got {raw_version!r}")
    return raw_version


__version__ = _load_version()

__all__ = ["__version__"]
