"""
cfgbind - bind dataclass records to click commands, config files and
environment variables with one deterministic precedence order.

Precedence (highest to lowest)::

    command-line flag  →  config file / environment  →  record default

Quick start::

    from dataclasses import dataclass
    import click
    import cfgbind

    @dataclass
    class RootConfig:
        region: str = "eu-west-1"
        verbose: bool = False

    config = RootConfig()

    @click.group()
    def cli():
        ...

    cfgbind.bind(cli, config, persistent=True)

Architecture::

    fields.py       FieldDescriptor / canonical flag names
    flags.py        click option registration writing into records
    merge.py        decode + precedence merge (Precedence policies)
    collection.py   select one element of a list of tables
    binder.py       hook chain over the click context tree
    store.py        layered ConfigStore (defaults/file/env/overrides/flags)
    loader.py       exactly-once process-wide config loading
"""

__version__ = "0.1.0"

from cfgbind.binder import (
    Binder,
    Binding,
    bind,
    bind_key,
    bind_persistent,
    bind_persistent_key,
    bind_selected,
    get_binder,
    unmarshal,
    unmarshal_key,
)
from cfgbind.collection import load_collection, select_and_bind, select_element
from cfgbind.errors import (
    CfgBindError,
    ConfigError,
    ConfigFileNotFoundError,
    ConfigParseError,
    DecodeError,
    InvalidTargetKindError,
    PathUnresolvableError,
    UnsupportedConfigTypeError,
)
from cfgbind.fields import FieldDescriptor, FieldKind, canonical_name, describe
from cfgbind.loader import ConfigLoader, configure, ensure_loaded, get_store
from cfgbind.merge import Precedence, decode, merge
from cfgbind.store import ConfigStore

__all__ = [
    # Binding
    "Binder",
    "Binding",
    "bind",
    "bind_key",
    "bind_persistent",
    "bind_persistent_key",
    "bind_selected",
    "get_binder",
    "unmarshal",
    "unmarshal_key",
    # Collections
    "load_collection",
    "select_and_bind",
    "select_element",
    # Fields
    "FieldDescriptor",
    "FieldKind",
    "canonical_name",
    "describe",
    # Merge
    "Precedence",
    "decode",
    "merge",
    # Store / loader
    "ConfigStore",
    "ConfigLoader",
    "configure",
    "ensure_loaded",
    "get_store",
    # Errors
    "CfgBindError",
    "ConfigError",
    "ConfigFileNotFoundError",
    "ConfigParseError",
    "DecodeError",
    "InvalidTargetKindError",
    "PathUnresolvableError",
    "UnsupportedConfigTypeError",
]
