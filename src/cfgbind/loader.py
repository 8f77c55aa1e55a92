"""
Process-wide config loading, exactly once.

The first :meth:`ConfigLoader.ensure_loaded` call discovers the executable
name, registers the home and current directories as search paths, enables
environment lookup and reads ``.<executable>.{toml,json,yaml,yml}`` if one
exists. Every later call is a no-op, no matter how many bindings resolve.

A missing config file is a normal state: the process continues with
defaults, flags and environment. An unresolvable home directory or
executable name is fatal and exits with status 1.

Quick start::

    from cfgbind import loader

    loader.configure(app_name="mw")      # optional, before first use
    loader.ensure_loaded()
    loader.get_string("region")
"""

from __future__ import annotations

import sys
import threading
from collections.abc import Callable
from pathlib import Path
from typing import Any

from cfgbind.errors import ConfigFileNotFoundError, PathUnresolvableError
from cfgbind.logging import get_logger
from cfgbind.settings import CfgBindSettings, get_settings
from cfgbind.store import ConfigStore

logger = get_logger(__name__)

LoadFunc = Callable[[ConfigStore], None]


def executable_name() -> str:
    """Base name of the running program (``mw`` for ``/usr/bin/mw``)."""
    argv0 = sys.argv[0] if sys.argv else ""
    name = Path(argv0).stem if argv0 else ""
    if not name or name == "-c":
        raise PathUnresolvableError("executable name")
    return name


def home_dir() -> Path:
    try:
        return Path.home()
    except (RuntimeError, KeyError) as e:
        raise PathUnresolvableError("home directory", cause=e) from e


class ConfigLoader:
    """One-shot loader for a :class:`ConfigStore`.

    Parameters
    ----------
    store:
        Store to fill.
    app_name:
        Config base name without the leading dot. Defaults to the
        executable name.
    config_file:
        Explicit config file; disables the search.
    search_paths:
        Directories to search. Defaults to the home directory and the
        current directory.
    env_prefix:
        Prefix for automatic environment lookup.
    load:
        Replaces the default load procedure entirely (e.g. to read an
        in-memory document in tests).
    """

    def __init__(
        self,
        store: ConfigStore,
        *,
        app_name: str | None = None,
        config_file: str | Path | None = None,
        search_paths: list[str | Path] | None = None,
        env_prefix: str | None = None,
        load: LoadFunc | None = None,
    ):
        self.store = store
        self.app_name = app_name
        self.config_file = Path(config_file) if config_file else None
        self.search_paths = [Path(p) for p in search_paths] if search_paths is not None else None
        self.env_prefix = env_prefix
        self._load = load or self._default_load
        self._lock = threading.Lock()
        self._done = False

    @classmethod
    def from_settings(
        cls, store: ConfigStore, settings: CfgBindSettings | None = None, **kwargs: Any
    ) -> ConfigLoader:
        settings = settings or get_settings()
        kwargs.setdefault("app_name", settings.app_name or None)
        kwargs.setdefault("config_file", settings.config_file or None)
        kwargs.setdefault("env_prefix", settings.env_prefix or None)
        return cls(store, **kwargs)

    @property
    def loaded(self) -> bool:
        return self._done

    def ensure_loaded(self) -> None:
        """Run the load procedure once; later calls return immediately."""
        if self._done:
            return
        with self._lock:
            if self._done:
                return
            try:
                self._load(self.store)
            finally:
                self._done = True

    def reset(self) -> None:
        """Re-arm the gate (tests only)."""
        with self._lock:
            self._done = False

    def _default_load(self, store: ConfigStore) -> None:
        try:
            if self.config_file is not None:
                store.set_config_file(self.config_file)
            else:
                name = self.app_name or executable_name()
                paths = self.search_paths if self.search_paths is not None else [home_dir(), Path.cwd()]
                for path in paths:
                    store.add_search_path(path)
                store.set_config_name(f".{name}")
        except PathUnresolvableError as e:
            logger.error("config_search_unresolvable", error=e.message)
            raise SystemExit(1) from e

        if self.env_prefix:
            store.set_env_prefix(self.env_prefix)
        store.automatic_env()

        try:
            path = store.read_in_config()
        except ConfigFileNotFoundError as e:
            logger.debug("config_file_absent", name=e.name, search_paths=e.search_paths)
            return
        logger.info("config_file_used", path=str(path))


# ── Process-wide store and loader ────────────────────────────────────────

_store: ConfigStore | None = None
_loader: ConfigLoader | None = None
_init_lock = threading.Lock()


def get_store() -> ConfigStore:
    """Get (or create) the process-wide store."""
    global _store
    with _init_lock:
        if _store is None:
            _store = ConfigStore()
        return _store


def get_loader() -> ConfigLoader:
    """Get (or create) the process-wide loader, configured from
    ``CFGBIND_*`` settings."""
    global _loader
    store = get_store()
    with _init_lock:
        if _loader is None:
            _loader = ConfigLoader.from_settings(store)
        return _loader


def configure(
    *,
    store: ConfigStore | None = None,
    loader: ConfigLoader | None = None,
    **loader_kwargs: Any,
) -> ConfigLoader:
    """Replace the process-wide store and/or loader.

    Call before the first resolution. Keyword arguments build a new
    :class:`ConfigLoader` for the (new or existing) store.
    """
    global _store, _loader
    with _init_lock:
        if loader is not None:
            _store, _loader = loader.store, loader
            return loader
        _store = store or _store or ConfigStore()
        _loader = ConfigLoader(_store, **loader_kwargs) if loader_kwargs else ConfigLoader.from_settings(_store)
        return _loader


def ensure_loaded() -> None:
    get_loader().ensure_loaded()


def read_in_config() -> None:
    ensure_loaded()


def get(key: str, default: Any = None) -> Any:
    ensure_loaded()
    return get_store().get(key, default)


def get_int(key: str) -> int:
    ensure_loaded()
    return get_store().get_int(key)


def get_string(key: str) -> str:
    ensure_loaded()
    return get_store().get_string(key)


def set(key: str, value: Any) -> None:  # noqa: A001
    ensure_loaded()
    get_store().set(key, value)


def write_config() -> Path:
    ensure_loaded()
    return get_store().write_config()


__all__ = [
    "ConfigLoader",
    "configure",
    "ensure_loaded",
    "executable_name",
    "get",
    "get_int",
    "get_loader",
    "get_store",
    "get_string",
    "home_dir",
    "read_in_config",
    "set",
    "write_config",
]
