"""
Registering record fields as click options.

Each primitive field becomes one option on the command, named after the
field's canonical flag name and defaulting to the field's current value.
Parsing writes straight into the record: when a value comes from the
command line the option callback assigns it to the field and reports it to
``on_set``. Values taken from the option default are not written, so a
record already resolved by an ancestor's hook is never reset by a
descendant's copy of a persistent flag.

Options are registered with ``expose_value=False``: the command callback
keeps its own signature and reads the record instead.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import click
from click.core import ParameterSource

from cfgbind.errors import InvalidTargetKindError
from cfgbind.fields import FieldDescriptor, FieldKind, describe
from cfgbind.logging import get_logger

logger = get_logger(__name__)

OnSet = Callable[[FieldDescriptor, Any], None]

_CLICK_TYPES: dict[FieldKind, click.ParamType] = {
    FieldKind.STRING: click.STRING,
    FieldKind.INT: click.INT,
    FieldKind.FLOAT: click.FLOAT,
}


@dataclass
class FlagBinding:
    """One registered option and the record field it writes to."""

    command: click.Command
    option: click.Option
    record: Any
    field: FieldDescriptor

    def refresh_default(self) -> None:
        """Make the option default (and so ``--help``) show the field's
        current value."""
        self.option.default = getattr(self.record, self.field.name)


def make_option(record: Any, desc: FieldDescriptor, on_set: OnSet | None = None) -> click.Option:
    """Build the click option for one primitive field."""

    def callback(ctx: click.Context, param: click.Parameter, value: Any) -> Any:
        if ctx.get_parameter_source(param.name) is ParameterSource.COMMANDLINE:
            setattr(record, desc.name, value)
            if on_set is not None:
                on_set(desc, value)
        return value

    if desc.kind is FieldKind.BOOL:
        decls = [f"--{desc.flag_name}/--no-{desc.flag_name}", desc.name]
        param_type = None
    else:
        decls = [f"--{desc.flag_name}", desc.name]
        param_type = _CLICK_TYPES[desc.kind]

    return click.Option(
        decls,
        type=param_type,
        default=getattr(record, desc.name),
        show_default=True,
        help=desc.usage or None,
        callback=callback,
        expose_value=False,
    )


def register(
    command: click.Command,
    record: Any,
    *,
    on_set: OnSet | None = None,
) -> list[FlagBinding]:
    """Register every primitive field of *record* as an option on *command*.

    Nested records and unsupported kinds are skipped.

    Raises:
        InvalidTargetKindError: *record* is not a dataclass instance.
    """
    if isinstance(record, type):
        raise InvalidTargetKindError(record, f"Expected a {record.__name__} instance, got the class")
    bindings: list[FlagBinding] = []
    for desc in describe(record):
        if not desc.kind.is_primitive:
            logger.debug(
                "flag_skipped",
                record=type(record).__name__,
                field=desc.name,
                kind=desc.kind.value,
            )
            continue
        option = make_option(record, desc, on_set)
        command.params.append(option)
        bindings.append(FlagBinding(command=command, option=option, record=record, field=desc))
    return bindings


__all__ = [
    "FlagBinding",
    "OnSet",
    "make_option",
    "register",
]
