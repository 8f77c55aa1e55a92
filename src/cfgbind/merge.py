"""
Precedence merging of config-sourced values onto flag-mutated records.

Precedence (highest to lowest):
    1. Value set by a command-line flag
    2. Value from the config file / environment
    3. Compiled-in record default

:func:`merge` implements it in three steps: snapshot the record as flag
parsing left it, decode the config data straight onto the record, then put
back every snapshot value that outranks the config value. Which snapshot
values outrank config depends on the :class:`Precedence` policy:

* ``Precedence.EXPLICIT``: the fields the caller reports as set on the
  command line win, whatever their value. An explicit ``--no-debug`` or
  ``--retries 0`` survives a config file that says otherwise.
* ``Precedence.NONZERO``: a snapshot value wins only when it is not the zero
  value of its kind. A flag explicitly set back to ``0``/``false``/``""``
  cannot be told apart from an unset flag and loses to a non-zero config
  value; likewise a non-zero compiled-in default outranks config. Kept for
  callers that cannot track which flags were set.

Decoding coerces each value onto its field's annotation through pydantic in
lax mode, so environment strings such as ``"102"`` or ``"false"`` land as
``102`` and ``False``.
"""

from __future__ import annotations

import copy
from collections.abc import Collection, Mapping
from enum import Enum
from functools import lru_cache
from typing import Any

from pydantic import ConfigDict, TypeAdapter, ValidationError

from cfgbind.errors import DecodeError
from cfgbind.fields import FieldKind, describe, is_record, normalize_key

_LAX = ConfigDict(coerce_numbers_to_str=True)


class Precedence(str, Enum):
    """Which flag-snapshot values outrank config values."""

    EXPLICIT = "explicit"
    NONZERO = "nonzero"


@lru_cache(maxsize=None)
def _adapter(annotation: Any) -> TypeAdapter:
    return TypeAdapter(annotation, config=_LAX)


def coerce(annotation: Any, value: Any, *, key: str | None = None) -> Any:
    """Coerce *value* onto *annotation* or raise DecodeError."""
    try:
        return _adapter(annotation).validate_python(value)
    except ValidationError as e:
        raise DecodeError(
            f"Cannot decode {value!r} for {key or annotation!s}",
            key=key,
            value=value,
            cause=e,
        ) from e


def is_zero(value: Any) -> bool:
    """True for the zero value of a kind: None, False, 0, 0.0, "", empty
    containers, or a record whose fields are all zero."""
    if value is None:
        return True
    if is_record(value) and not isinstance(value, type):
        return all(is_zero(getattr(value, d.name)) for d in describe(value))
    if isinstance(value, (bool, int, float, str, list, tuple, dict, set)):
        return not value
    return False


def decode(data: Mapping[str, Any] | None, target: Any, *, path: str = "") -> Any:
    """Decode an open mapping onto *target* in place.

    Keys match fields ignoring case, ``-`` and ``_``. Fields without a key
    (or with a ``None`` value) are left untouched; unknown keys are ignored.
    Nested mappings decode into the existing nested record.

    Raises:
        DecodeError: a value cannot be coerced onto its field, or *data* is
            not a mapping.
    """
    if data is None:
        return target
    if not isinstance(data, Mapping):
        raise DecodeError(
            f"Expected a mapping to decode onto {type(target).__name__}, got {type(data).__name__}",
            key=path or None,
            value=data,
        )

    index = {normalize_key(k): v for k, v in data.items()}
    for desc in describe(target):
        value = index.get(normalize_key(desc.name))
        if value is None:
            continue
        dotted = f"{path}.{desc.name}" if path else desc.name
        if desc.kind is FieldKind.RECORD:
            nested = getattr(target, desc.name)
            if nested is None:
                nested = desc.annotation()
            setattr(target, desc.name, decode(value, nested, path=dotted))
        else:
            setattr(target, desc.name, coerce(desc.annotation, value, key=dotted))
    return target


def _restore(target: Any, snapshot: Any, explicit: Collection[str] | None) -> None:
    for desc in describe(snapshot):
        kept = getattr(snapshot, desc.name)
        if explicit is not None:
            if desc.name in explicit:
                setattr(target, desc.name, kept)
        elif desc.kind is FieldKind.RECORD and kept is not None and getattr(target, desc.name) is not None:
            _restore(getattr(target, desc.name), kept, None)
        elif not is_zero(kept):
            setattr(target, desc.name, kept)


def merge(
    target: Any,
    data: Mapping[str, Any] | None,
    *,
    explicit: Collection[str] | None = None,
) -> Any:
    """Merge config *data* onto the flag-mutated *target* in place.

    Args:
        target: Record as flag parsing left it
        data: Open mapping decoded from the config store
        explicit: Names of fields set on the command line. ``None`` selects
            the non-zero rule (see module docstring).

    Returns:
        *target*, for chaining.
    """
    snapshot = copy.deepcopy(target)
    decode(data, target)
    _restore(target, snapshot, explicit)
    return target


__all__ = [
    "Precedence",
    "coerce",
    "decode",
    "is_zero",
    "merge",
]
