"""
Field introspection for bindable records.

A bindable record is a dataclass whose fields are primitives (bool, str,
int, float) or nested dataclasses. :func:`describe` walks a record's fields
in declaration order and yields one :class:`FieldDescriptor` per public
field, carrying the canonical flag name, the primitive kind and the usage
text. Nested records are reported but never recursed into: each binding
call handles one flat record.

The per-type part of the walk (names, kinds, annotations, usage) is built
once per record type and cached by type identity; only the current values
are read per call.

Example::

    @dataclass
    class ServerConfig:
        listen_port: int = field(default=8080, metadata={"help": "Port to bind"})
        DebugMode: bool = False

    [d.flag_name for d in describe(ServerConfig())]
    # ['listen-port', 'debug-mode']
"""

from __future__ import annotations

import dataclasses
import re
import typing
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import Any

from cfgbind.errors import InvalidTargetKindError

_CASE_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")
_SEPARATORS = re.compile(r"[\s_\-]+")


class FieldKind(str, Enum):
    """Primitive kinds a field can be bound as."""

    BOOL = "bool"
    STRING = "string"
    INT = "int"
    FLOAT = "float"
    RECORD = "record"
    UNSUPPORTED = "unsupported"

    @property
    def is_primitive(self) -> bool:
        return self not in (FieldKind.RECORD, FieldKind.UNSUPPORTED)


@dataclass(frozen=True)
class FieldDescriptor:
    """Read-only view of one record field.

    Attributes:
        name: Python attribute name
        flag_name: Canonical external name (``first-param``)
        kind: Primitive kind
        annotation: Resolved type annotation
        default: Current value of the field at describe time
        usage: Help text for the flag
    """

    name: str
    flag_name: str
    kind: FieldKind
    annotation: Any
    default: Any
    usage: str = ""


def canonical_name(identifier: str) -> str:
    """Convert an identifier to its hyphen-delimited lower-case flag name.

    ``FirstParam`` -> ``first-param``, ``first_param`` -> ``first-param``,
    ``HTTPServer`` -> ``http-server``. Applying it twice yields the same
    string.
    """
    hyphenated = _CASE_BOUNDARY.sub("-", identifier)
    return _SEPARATORS.sub("-", hyphenated).strip("-").lower()


def normalize_key(key: str) -> str:
    """Matching form of a config key segment: lower case, no ``-``/``_``.

    ``firstparam``, ``FirstParam``, ``first_param`` and ``first-param`` all
    normalize to ``firstparam``.
    """
    return _SEPARATORS.sub("", str(key)).lower()


def is_record(target: Any) -> bool:
    """True for dataclass instances and dataclass types."""
    return dataclasses.is_dataclass(target)


def kind_of(annotation: Any) -> FieldKind:
    # bool before int: bool is an int subclass
    if annotation is bool:
        return FieldKind.BOOL
    if annotation is str:
        return FieldKind.STRING
    if annotation is int:
        return FieldKind.INT
    if annotation is float:
        return FieldKind.FLOAT
    if isinstance(annotation, type) and dataclasses.is_dataclass(annotation):
        return FieldKind.RECORD
    return FieldKind.UNSUPPORTED


@dataclass(frozen=True)
class _FieldSpec:
    name: str
    flag_name: str
    kind: FieldKind
    annotation: Any
    usage: str
    declared_default: Any


def _declared_default(f: dataclasses.Field) -> Any:
    if f.default is not dataclasses.MISSING:
        return f.default
    if f.default_factory is not dataclasses.MISSING:
        return f.default_factory()
    return None


@lru_cache(maxsize=None)
def _field_table(record_type: type) -> tuple[_FieldSpec, ...]:
    try:
        hints = typing.get_type_hints(record_type)
    except NameError as e:
        raise InvalidTargetKindError(
            record_type, f"Cannot resolve annotations of {record_type.__name__}: {e}"
        ) from e

    specs: list[_FieldSpec] = []
    seen: dict[str, str] = {}
    for f in dataclasses.fields(record_type):
        if f.name.startswith("_"):
            continue
        flag_name = canonical_name(f.name)
        if flag_name in seen:
            raise InvalidTargetKindError(
                record_type,
                f"Fields {seen[flag_name]!r} and {f.name!r} of {record_type.__name__} "
                f"share the flag name {flag_name!r}",
            )
        seen[flag_name] = f.name
        annotation = hints.get(f.name, f.type)
        specs.append(
            _FieldSpec(
                name=f.name,
                flag_name=flag_name,
                kind=kind_of(annotation),
                annotation=annotation,
                usage=str(f.metadata.get("help", f.metadata.get("usage", ""))),
                declared_default=_declared_default(f),
            )
        )
    return tuple(specs)


def record_type_of(target: Any) -> type:
    """Return the dataclass type of *target* or raise InvalidTargetKindError."""
    if not is_record(target):
        raise InvalidTargetKindError(target)
    return target if isinstance(target, type) else type(target)


def describe(target: Any) -> tuple[FieldDescriptor, ...]:
    """Describe the public fields of a record instance or record type.

    Raises:
        InvalidTargetKindError: *target* is not a dataclass, or two fields
            derive the same flag name.
    """
    record_type = record_type_of(target)
    instance = None if isinstance(target, type) else target
    return tuple(
        FieldDescriptor(
            name=spec.name,
            flag_name=spec.flag_name,
            kind=spec.kind,
            annotation=spec.annotation,
            default=spec.declared_default if instance is None else getattr(instance, spec.name),
            usage=spec.usage,
        )
        for spec in _field_table(record_type)
    )


def describe_sequence(items: Any, item_type: type) -> tuple[FieldDescriptor, ...]:
    """Describe the element shape of a sequence of records.

    *items* must be a list (it is filled by the caller or by
    :func:`cfgbind.collection.load_collection`); *item_type* must be a
    dataclass type.
    """
    if not isinstance(items, list):
        raise InvalidTargetKindError(items, f"Expected a list of records, got {type(items).__name__}")
    if not isinstance(item_type, type) or not is_record(item_type):
        raise InvalidTargetKindError(item_type)
    return describe(item_type)


__all__ = [
    "FieldKind",
    "FieldDescriptor",
    "canonical_name",
    "describe",
    "describe_sequence",
    "is_record",
    "kind_of",
    "normalize_key",
    "record_type_of",
]
