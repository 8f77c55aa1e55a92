"""
Layered key/value config store.

Layers, lowest to highest precedence::

    defaults  →  config file  →  environment  →  overrides (set)  →  flags

Keys are dotted paths (``nested.fifth_param``). Every segment is matched
ignoring case, ``-`` and ``_``, so a file key ``FifthParam`` answers to
``fifth_param`` and ``fifth-param``. The first spelling seen for a key is
kept when layers are merged and when the store is written back.

Environment lookup (after :meth:`ConfigStore.automatic_env`) maps a key to
``<PREFIX>_<SEGMENTS>`` upper-cased, each segment in its flag-name form and
``.`` and ``-`` turned into ``_``: ``nested.fifth-param``, ``nested.fifth_param``
and ``Nested.FifthParam`` with prefix ``app`` all read ``APP_NESTED_FIFTH_PARAM``.

Supported file types are ``toml`` (read with tomllib, written with
tomli-w), ``json`` and ``yaml``/``yml`` (PyYAML).
"""

from __future__ import annotations

import copy
import json
import os
import tomllib
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import IO, Any

import tomli_w
import yaml

from cfgbind.errors import (
    ConfigError,
    ConfigFileNotFoundError,
    ConfigParseError,
    DecodeError,
    UnsupportedConfigTypeError,
)
from cfgbind.fields import canonical_name, normalize_key
from cfgbind.logging import get_logger

logger = get_logger(__name__)

SUPPORTED_TYPES = ("toml", "json", "yaml", "yml")

_MISSING = object()


# ── Tree helpers ─────────────────────────────────────────────────────────


def split_key(key: str) -> list[str]:
    """Split a dotted key into its non-empty segments."""
    return [segment for segment in str(key).split(".") if segment]


def _find(tree: Mapping[str, Any], segment: str) -> str | None:
    """Return the spelling of *segment* used in *tree*, if any."""
    wanted = normalize_key(segment)
    for existing in tree:
        if normalize_key(existing) == wanted:
            return existing
    return None


def _lookup(tree: Mapping[str, Any], segments: list[str]) -> Any:
    node: Any = tree
    for segment in segments:
        if not isinstance(node, Mapping):
            return _MISSING
        found = _find(node, segment)
        if found is None:
            return _MISSING
        node = node[found]
    return node


def _assign(tree: dict[str, Any], segments: list[str], value: Any) -> None:
    node = tree
    for segment in segments[:-1]:
        found = _find(node, segment)
        if found is None or not isinstance(node[found], dict):
            found = found or segment
            node[found] = {}
        node = node[found]
    last = segments[-1]
    node[_find(node, last) or last] = value


def deep_merge(base: Mapping[str, Any], incoming: Mapping[str, Any]) -> dict[str, Any]:
    """Merge *incoming* over *base* recursively; *incoming* wins.

    Returns a new dict; neither argument is modified.
    """
    result = copy.deepcopy(dict(base))
    for key, value in incoming.items():
        existing = _find(result, key)
        if existing is not None and isinstance(result[existing], Mapping) and isinstance(value, Mapping):
            result[existing] = deep_merge(result[existing], value)
        else:
            result[existing or key] = copy.deepcopy(value)
    return result


def _infer_type(path: Path) -> str | None:
    suffix = path.suffix.lstrip(".").lower()
    return suffix if suffix in SUPPORTED_TYPES else None


def parse_config(text: str, config_type: str, origin: str = "<memory>") -> dict[str, Any]:
    """Parse config *text* of the given type into a mapping."""
    config_type = config_type.lower()
    if config_type not in SUPPORTED_TYPES:
        raise UnsupportedConfigTypeError(config_type)
    try:
        if config_type == "toml":
            data = tomllib.loads(text)
        elif config_type == "json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text)
    except (tomllib.TOMLDecodeError, json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigParseError(origin, cause=e) from e

    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise ConfigParseError(origin, cause=ValueError("top level must be a table"))
    return dict(data)


def dump_config(data: Mapping[str, Any], config_type: str) -> str:
    """Serialise *data* as the given config type."""
    config_type = config_type.lower()
    if config_type == "toml":
        return tomli_w.dumps(_drop_none(data))
    if config_type == "json":
        return json.dumps(data, indent=2, default=str) + "\n"
    if config_type in ("yaml", "yml"):
        return yaml.safe_dump(dict(data), sort_keys=False)
    raise UnsupportedConfigTypeError(config_type)


def _drop_none(data: Mapping[str, Any]) -> dict[str, Any]:
    # TOML has no null
    return {
        k: _drop_none(v) if isinstance(v, Mapping) else v
        for k, v in data.items()
        if v is not None
    }


# ── Store ────────────────────────────────────────────────────────────────


class ConfigStore:
    """Layered config store (defaults, file, environment, overrides, flags).

    Parameters
    ----------
    env_prefix:
        Prefix for environment variable names (no trailing ``_``).
    automatic_env:
        Consult environment variables on every lookup.
    """

    def __init__(self, *, env_prefix: str = "", automatic_env: bool = False):
        self._defaults: dict[str, Any] = {}
        self._config: dict[str, Any] = {}
        self._overrides: dict[str, Any] = {}
        self._flags: dict[str, Any] = {}

        self._search_paths: list[Path] = []
        self._config_name = "config"
        self._config_file: Path | None = None
        self._config_type: str | None = None
        self._config_file_used: Path | None = None

        self._env_prefix = env_prefix
        self._automatic_env = automatic_env

    # ── Setup ────────────────────────────────────────────────────

    def add_search_path(self, path: str | Path) -> None:
        path = Path(path)
        if path not in self._search_paths:
            self._search_paths.append(path)

    @property
    def search_paths(self) -> list[Path]:
        return list(self._search_paths)

    def set_config_name(self, name: str) -> None:
        """Base name (without extension) searched for in the search paths."""
        self._config_name = name

    def set_config_file(self, path: str | Path) -> None:
        """Use an explicit file instead of searching."""
        self._config_file = Path(path)

    def set_config_type(self, config_type: str) -> None:
        if config_type.lower() not in SUPPORTED_TYPES:
            raise UnsupportedConfigTypeError(config_type)
        self._config_type = config_type.lower()

    def set_env_prefix(self, prefix: str) -> None:
        self._env_prefix = prefix

    def automatic_env(self, enabled: bool = True) -> None:
        self._automatic_env = enabled

    @property
    def config_file_used(self) -> Path | None:
        return self._config_file_used

    # ── Reading ──────────────────────────────────────────────────

    def find_config_file(self) -> Path:
        """Locate the config file.

        Raises:
            ConfigFileNotFoundError: no candidate exists
        """
        if self._config_file is not None:
            if self._config_file.is_file():
                return self._config_file
            raise ConfigFileNotFoundError(str(self._config_file))

        for directory in self._search_paths:
            for ext in SUPPORTED_TYPES:
                candidate = directory / f"{self._config_name}.{ext}"
                if candidate.is_file():
                    return candidate
            if self._config_type:
                candidate = directory / self._config_name
                if candidate.is_file():
                    return candidate

        raise ConfigFileNotFoundError(self._config_name, [str(p) for p in self._search_paths])

    def read_in_config(self) -> Path:
        """Find and read the config file, replacing the file layer."""
        path = self.find_config_file()
        config_type = self._config_type or _infer_type(path) or "yaml"
        self._config = parse_config(path.read_text(encoding="utf-8"), config_type, str(path))
        self._config_file_used = path
        logger.debug("config_file_read", path=str(path), type=config_type)
        return path

    def read_config(self, source: str | bytes | IO, config_type: str | None = None) -> None:
        """Read config content from a string or stream, replacing the file layer."""
        if hasattr(source, "read"):
            source = source.read()
        if isinstance(source, bytes):
            source = source.decode("utf-8")
        self._config = parse_config(source, config_type or self._config_type or "yaml")

    # ── Lookup ───────────────────────────────────────────────────

    def env_name(self, key: str | list[str]) -> str:
        segments = split_key(key) if isinstance(key, str) else key
        parts = [canonical_name(segment) for segment in segments]
        if self._env_prefix:
            parts.insert(0, self._env_prefix)
        return "_".join(parts).replace("-", "_").upper()

    def _env_value(self, segments: list[str]) -> str | None:
        if not self._automatic_env or not segments:
            return None
        return os.environ.get(self.env_name(segments))

    def _pinned(self, segments: list[str]) -> bool:
        """True when an override or flag outranks the environment for *segments*."""
        return any(_lookup(layer, segments) is not _MISSING for layer in (self._flags, self._overrides))

    def _merged(self) -> dict[str, Any]:
        merged: dict[str, Any] = {}
        for layer in (self._defaults, self._config, self._overrides, self._flags):
            merged = deep_merge(merged, layer)
        return merged

    def get(self, key: str, default: Any = None) -> Any:
        """Resolve *key* through all layers."""
        segments = split_key(key)
        if not segments:
            return self.all_settings()

        for layer in (self._flags, self._overrides):
            value = _lookup(layer, segments)
            if value is not _MISSING and not isinstance(value, Mapping):
                return value

        env = self._env_value(segments)
        if env is not None:
            return env

        value = _lookup(self._merged(), segments)
        return default if value is _MISSING else value

    def get_raw(self, key: str) -> Any:
        """Raw sub-tree (mapping, list or scalar) at *key*, or None."""
        return self.get(key)

    def get_string(self, key: str) -> str:
        value = self.get(key)
        if value is None:
            return ""
        if isinstance(value, bool):
            return str(value).lower()
        return str(value)

    def get_int(self, key: str) -> int:
        value = self.get(key)
        try:
            return int(value) if value not in (None, "") else 0
        except (TypeError, ValueError):
            return 0

    def get_float(self, key: str) -> float:
        value = self.get(key)
        try:
            return float(value) if value not in (None, "") else 0.0
        except (TypeError, ValueError):
            return 0.0

    def get_bool(self, key: str) -> bool:
        value = self.get(key)
        if isinstance(value, str):
            return value.strip().lower() in ("true", "1", "yes", "on")
        return bool(value)

    def is_set(self, key: str) -> bool:
        return self.get(key) is not None

    def section(self, key: str | None, names: Iterable[str] = ()) -> dict[str, Any]:
        """Mapping at *key* (whole store for None) with environment
        variables overlaid for the given field *names*.

        Raises:
            DecodeError: the value at *key* is not a table
        """
        raw = self.get(key) if key else self._merged()
        if raw is None:
            raw = {}
        if not isinstance(raw, Mapping):
            raise DecodeError(f"Config key {key!r} is not a table", key=key, value=raw)

        result = dict(raw)
        prefix = split_key(key) if key else []
        for name in names:
            segments = [*prefix, name]
            if self._pinned(segments):
                continue
            env = self._env_value(segments)
            if env is not None:
                result[_find(result, name) or name] = env
        return result

    def all_settings(self) -> dict[str, Any]:
        """Every known key merged across layers, environment applied."""
        merged = self._merged()
        if self._automatic_env:
            self._apply_env(merged, [])
        return merged

    def _apply_env(self, tree: dict[str, Any], prefix: list[str]) -> None:
        for key, value in tree.items():
            if isinstance(value, dict):
                self._apply_env(value, [*prefix, key])
                continue
            segments = [*prefix, key]
            if self._pinned(segments):
                continue
            env = self._env_value(segments)
            if env is not None:
                tree[key] = env

    # ── Writing ──────────────────────────────────────────────────

    def set(self, key: str, value: Any) -> None:
        """Override *key* in memory (outranks file and environment)."""
        _assign(self._overrides, split_key(key), value)

    def set_default(self, key: str, value: Any) -> None:
        _assign(self._defaults, split_key(key), value)

    def set_flag(self, key: str, value: Any) -> None:
        """Publish a value parsed from a command-line flag."""
        _assign(self._flags, split_key(key), value)

    def clear_flags(self) -> None:
        """Drop every published flag value."""
        self._flags = {}

    def write_config(self) -> Path:
        """Write defaults, file values and overrides back to the config file."""
        path = self._config_file_used or self._config_file
        if path is None:
            raise ConfigError("No config file to write; use write_config_as()")
        return self.write_config_as(path)

    def write_config_as(self, path: str | Path) -> Path:
        path = Path(path)
        config_type = self._config_type or _infer_type(path)
        if config_type is None:
            raise UnsupportedConfigTypeError(path.suffix or "<none>")

        data: dict[str, Any] = {}
        for layer in (self._defaults, self._config, self._overrides):
            data = deep_merge(data, layer)

        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(dump_config(data, config_type), encoding="utf-8")
        logger.info("config_file_written", path=str(path), type=config_type)
        return path


__all__ = [
    "ConfigStore",
    "SUPPORTED_TYPES",
    "deep_merge",
    "dump_config",
    "parse_config",
    "split_key",
]
