"""Helpers to load estimator configuration files.

Configuration lives either in the ``[tool.tire_friction]`` table of a
``pyproject.toml`` or in a standalone TOML file whose ``[tire_friction]``
table (or top level) holds the estimator options::

    [tool.tire_friction]
    link_name = "wheel_front_left"
    collision_name = "collision"
    slip_static = 0.1

    [tool.tire_friction.logging]
    level = "info"
    format = "json"
"""

from __future__ import annotations

import os
from collections.abc import Iterable, Mapping as ABCMapping
from pathlib import Path
from typing import Any

try:  # Python 3.11+
    import tomllib  # type: ignore[attr-defined]
except ModuleNotFoundError:  # pragma: no cover - Python < 3.11 fallback
    import tomli as tomllib  # type: ignore


__all__ = [
    "CONFIG_ENV_VAR",
    "load_config",
    "load_config_file",
    "load_project_config",
]


CONFIG_ENV_VAR = "TIRE_FRICTION_CONFIG"

_PROJECT_FILENAME = "pyproject.toml"
_SECTION = "tire_friction"


def _as_dict(payload: ABCMapping[str, Any]) -> dict[str, Any]:
    """Recursively coerce TOML mappings into regular dictionaries."""

    result: dict[str, Any] = {}
    for key, value in payload.items():
        key_str = str(key)
        if isinstance(value, ABCMapping):
            result[key_str] = _as_dict(value)
        elif isinstance(value, list):
            result[key_str] = [
                _as_dict(item) if isinstance(item, ABCMapping) else item for item in value
            ]
        else:
            result[key_str] = value
    return result


def _iter_unique_paths(paths: Iterable[Path]) -> list[Path]:
    seen: dict[Path, None] = {}
    ordered: list[Path] = []
    for path in paths:
        resolved = path.expanduser().resolve(strict=False)
        if resolved in seen:
            continue
        seen[resolved] = None
        ordered.append(resolved)
    return ordered


def _load_toml_mapping(path: Path) -> dict[str, Any] | None:
    if not path.is_file():
        return None
    with path.open("rb") as handle:
        data = tomllib.load(handle)
    if isinstance(data, ABCMapping):
        return _as_dict(data)
    return None


def load_project_config(path: Path) -> tuple[dict[str, Any], Path] | None:
    """Load the ``[tool.tire_friction]`` section from ``pyproject.toml``.

    ``path`` may be the ``pyproject.toml`` itself or the directory holding it.
    """

    path = path.expanduser()
    pyproject_path = path if path.name == _PROJECT_FILENAME else path / _PROJECT_FILENAME
    pyproject_path = pyproject_path.resolve(strict=False)

    payload = _load_toml_mapping(pyproject_path)
    if not payload:
        return None

    tool_section = payload.get("tool")
    if not isinstance(tool_section, ABCMapping):
        return None

    section = tool_section.get(_SECTION)
    if not isinstance(section, ABCMapping):
        return None

    return _as_dict(section), pyproject_path


def load_config_file(path: Path) -> tuple[dict[str, Any], Path] | None:
    """Load a standalone TOML file.

    A ``[tire_friction]`` table takes precedence; otherwise the whole document
    is used.  ``pyproject.toml`` files are delegated to
    :func:`load_project_config`.
    """

    path = path.expanduser()
    if path.name == _PROJECT_FILENAME or path.is_dir():
        return load_project_config(path)

    resolved = path.resolve(strict=False)
    payload = _load_toml_mapping(resolved)
    if payload is None:
        return None

    section = payload.get(_SECTION)
    if isinstance(section, ABCMapping):
        return _as_dict(section), resolved
    return payload, resolved


def load_config(path: Path | None = None) -> dict[str, Any]:
    """Resolve the estimator configuration.

    The explicit ``path`` wins, then the file named by ``TIRE_FRICTION_CONFIG``
    and finally ``pyproject.toml`` in the current directory.  The returned
    mapping records its origin under ``_config_path``.
    """

    candidates: list[Path] = []
    if path is not None:
        candidates.append(Path(path))
    env_config = os.environ.get(CONFIG_ENV_VAR)
    if env_config:
        candidates.append(Path(env_config))
    candidates.append(Path.cwd() / _PROJECT_FILENAME)

    for candidate in _iter_unique_paths(candidates):
        loaded = load_config_file(candidate)
        if loaded is None:
            continue
        payload, source = loaded
        payload["_config_path"] = source
        return payload

    return {"_config_path": None}
