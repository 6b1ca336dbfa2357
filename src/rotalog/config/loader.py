"""Configuration loading pipeline.

Sources are merged in increasing precedence: built-in defaults, the user
configuration directory, ``rotalog.toml``/``rotalog.yaml`` in the working
directory, ``[tool.rotalog]`` in ``pyproject.toml``, ``ROTALOG__*``
environment variables and finally explicit overrides.
"""

from __future__ import annotations

import importlib
import json
import os
from pathlib import Path
from types import ModuleType
from typing import Any, Dict, List, Mapping, cast

from platformdirs import user_config_dir

from ..core.validation import ConfigurationError
from .schema import RotalogConfig, build_config, default_config

try:  # pragma: no cover
    import tomllib  # type: ignore[attr-defined]
except ModuleNotFoundError:  # pragma: no cover
    import tomli as tomllib  # type: ignore[no-redef]

try:  # pragma: no cover
    yaml_module = importlib.import_module("yaml")
except ModuleNotFoundError:  # pragma: no cover
    yaml_module = None

yaml: ModuleType | None = yaml_module

_APP_NAME = "rotalog"
_ENV_PREFIX = "ROTALOG__"
_FILENAMES = ("rotalog.toml", "rotalog.yaml", "rotalog.yml")


def _read_file(path: Path) -> Dict[str, Any]:
    if not path.is_file():
        return {}
    if path.suffix == ".toml":
        with path.open("rb") as fh:
            return tomllib.load(fh)
    if yaml is None:
        return {}
    with path.open("r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh)
    if isinstance(data, Mapping):
        return {str(key): value for key, value in data.items()}
    return {}


def _merge(base: Dict[str, Any], incoming: Mapping[str, Any]) -> Dict[str, Any]:
    for key, value in incoming.items():
        existing = base.get(key)
        if isinstance(value, Mapping):
            nested = dict(existing) if isinstance(existing, Mapping) else {}
            base[key] = _merge(nested, value)
        else:
            base[key] = value
    return base


def _load_directory(directory: Path) -> Dict[str, Any]:
    data: Dict[str, Any] = {}
    if not directory.is_dir():
        return data
    for filename in _FILENAMES:
        payload = _read_file(directory / filename)
        if payload:
            _merge(data, payload)
    return data


def _load_user_config() -> Dict[str, Any]:
    return _load_directory(Path(user_config_dir(_APP_NAME)))


def _load_local_config() -> Dict[str, Any]:
    return _load_directory(Path.cwd())


def _load_pyproject() -> Dict[str, Any]:
    data = _read_file(Path("pyproject.toml"))
    tool = data.get("tool", {})
    section = tool.get(_APP_NAME, {}) if isinstance(tool, Mapping) else {}
    if isinstance(section, Mapping):
        return {str(key): value for key, value in section.items()}
    return {}


def _coerce_value(value: str) -> Any:
    stripped = value.strip()
    lowered = stripped.lower()
    if lowered in {"true", "false"}:
        return lowered == "true"
    for convert in (int, float):
        try:
            return convert(stripped)
        except ValueError:
            continue
    if stripped[:1] in {"[", "{"}:
        try:
            return json.loads(stripped)
        except json.JSONDecodeError:
            pass
    return stripped


def _env_config(environ: Mapping[str, str] | None = None) -> Dict[str, Any]:
    data: Dict[str, Any] = {}
    for env_key, raw_value in (os.environ if environ is None else environ).items():
        if not env_key.startswith(_ENV_PREFIX):
            continue
        *sections, leaf = env_key[len(_ENV_PREFIX) :].lower().split("__")
        target: Dict[str, Any] = data
        for section in sections:
            target = cast(Dict[str, Any], target.setdefault(section, {}))
        target[leaf] = _coerce_value(raw_value)
    return data


def config_layers(overrides: Mapping[str, Any] | None = None) -> List[Dict[str, Any]]:
    """Return every configuration layer, lowest precedence first."""

    return [
        default_config(),
        _load_user_config(),
        _load_local_config(),
        _load_pyproject(),
        _env_config(),
        dict(overrides or {}),
    ]


def load_configuration(overrides: Mapping[str, Any] | None = None) -> RotalogConfig:
    """Load configuration from supported sources in precedence order."""

    merged: Dict[str, Any] = {}
    for layer in config_layers(overrides):
        _merge(merged, layer)
    try:
        return build_config(merged)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid rotalog configuration: {exc}") from exc
