"""
CLI layer for cfgbind.

A small Typer application for inspecting and editing the layered config
store of the current program. Its own root options are bound through
:mod:`cfgbind.binder`, so they resolve from flags, then the ``cli`` section
of the config file, then their defaults.

Entry point::

    cfgbind --help
"""

from cfgbind.cli.app import app, build_command, main

__all__ = ["app", "build_command", "main"]
