"""
Binding records to click command trees.

Manifesto:
    A command's options should come from a plain dataclass, and by the time
    the command body runs every field should hold its final value: the
    flag if one was given, else the config file or environment, else the
    compiled-in default. Help output should show those same resolved
    values.

:meth:`Binder.bind` registers a record's fields as options on a command and
attaches a resolve operation to it. The first bind on a command wraps its
``invoke`` and ``get_help``; later binds on the same command add operations
to the same node.

When a wrapped command is invoked (or renders help), the binder walks the
``click.Context`` chain from the root down to that command and runs the
operations of every bound node on the way, root first, each node once per
dispatch. Click invokes groups before their subcommands, so ancestors'
records are resolved (and their explicitly-set flags published to the
store) before a descendant resolves, which is what lets a descendant's
collection selector see a value chosen on the root command. Published
flags and the explicit-field sets are dropped when the root context closes.

Each resolve operation:
    1. loads the config once per process (:mod:`cfgbind.loader`) and
       publishes the record's compiled-in values as store defaults
    2. merges the store section (or the selected collection element) onto
       the record with the binder's :class:`~cfgbind.merge.Precedence`
    3. refreshes the defaults of every option bound to the record

Example::

    @dataclass
    class RootConfig:
        region: str = "eu-west-1"
        verbose: bool = False

    root_config = RootConfig()

    @click.group()
    def cli(): ...

    bind(cli, root_config, persistent=True)
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from functools import partial
from typing import Any

import click

from cfgbind import loader as loader_mod
from cfgbind.collection import select_and_bind
from cfgbind.errors import DecodeError, InvalidTargetKindError
from cfgbind.fields import FieldDescriptor, describe, is_record
from cfgbind.flags import FlagBinding, register
from cfgbind.loader import ConfigLoader
from cfgbind.logging import LogContext, get_logger
from cfgbind.merge import Precedence, decode, merge
from cfgbind.store import ConfigStore

logger = get_logger(__name__)

_VISITED = "cfgbind.visited"
_DISPATCH = "cfgbind.dispatch"


@dataclass(eq=False)
class Binding:
    """One record bound to one command node."""

    record: Any
    key: str | None = None
    collection: str | None = None
    selector: str | None = None
    id_key: str = "name"
    items: Sequence[Mapping[str, Any]] | None = None
    flags: list[FlagBinding] = field(default_factory=list)
    explicit: set[str] = field(default_factory=set)
    defaults: dict[str, Any] = field(default_factory=dict)

    @property
    def selected(self) -> bool:
        return self.collection is not None

    def store_key(self, name: str) -> str | None:
        """Store key a flag value is published under (None: not published)."""
        if self.selected:
            return None
        return f"{self.key}.{name}" if self.key else name


@dataclass(eq=False)
class HookNode:
    """A bound command and the resolve operations attached to it."""

    command: click.Command
    operations: list[Callable[[], None]] = field(default_factory=list)
    bindings: list[Binding] = field(default_factory=list)

    def run(self) -> None:
        for operation in self.operations:
            operation()


def _descendants(command: click.Command) -> Iterator[click.Command]:
    seen: set[int] = {id(command)}
    pending = [command]
    while pending:
        current = pending.pop(0)
        if not isinstance(current, click.Group):
            continue
        for sub in current.commands.values():
            if id(sub) in seen:
                continue
            seen.add(id(sub))
            pending.append(sub)
            yield sub


def _context_path(ctx: click.Context) -> list[click.Context]:
    """Contexts from the root down to *ctx*."""
    path = []
    current: click.Context | None = ctx
    while current is not None:
        path.append(current)
        current = current.parent
    path.reverse()
    return path


class Binder:
    """Attaches resolve operations to click commands.

    Parameters
    ----------
    store:
        Store to resolve from. Defaults to the process-wide store. A store
        given without a loader is assumed to be filled by the caller.
    loader:
        Loader run before every resolution (a no-op after its first run).
        Defaults to the process-wide loader when no store is given.
    precedence:
        ``Precedence.EXPLICIT`` (flags set on the command line win, even
        when set to a zero value) or ``Precedence.NONZERO`` (non-zero
        snapshot values win).
    """

    def __init__(
        self,
        store: ConfigStore | None = None,
        loader: ConfigLoader | None = None,
        precedence: Precedence | str = Precedence.EXPLICIT,
    ):
        if loader is not None and store is None:
            store = loader.store
        self._store = store
        self._loader = loader
        self.precedence = Precedence(precedence)
        self._nodes: dict[click.Command, HookNode] = {}

    @property
    def store(self) -> ConfigStore:
        return self._store if self._store is not None else loader_mod.get_store()

    def ensure_loaded(self) -> None:
        if self._loader is not None:
            self._loader.ensure_loaded()
        elif self._store is None:
            loader_mod.ensure_loaded()

    def node(self, command: click.Command) -> HookNode | None:
        """The node bound to *command*, or None while it is unbound."""
        return self._nodes.get(command)

    # ── Binding ──────────────────────────────────────────────────

    def bind(
        self,
        command: click.Command,
        record: Any,
        *,
        key: str | None = None,
        persistent: bool = False,
    ) -> Binding:
        """Bind *record* to *command*, resolved from the store section *key*
        (the whole store when None).

        With ``persistent=True`` the options are also registered on every
        descendant command present at bind time, so they can be given after
        a subcommand name.

        Raises:
            InvalidTargetKindError: *record* is not a dataclass instance.
        """
        binding = Binding(record=record, key=key)
        self._register(command, binding, persistent)
        binding.defaults = {
            desc.name: desc.default for desc in describe(record) if desc.kind.is_primitive and desc.default is not None
        }
        self._publish_defaults(binding)
        self._attach(command, binding, partial(self._resolve, binding))
        return binding

    def bind_selected(
        self,
        command: click.Command,
        record: Any,
        *,
        collection: str,
        selector: str,
        id_key: str = "name",
        items: Sequence[Mapping[str, Any]] | None = None,
        persistent: bool = False,
    ) -> Binding:
        """Bind *record* to the element of *collection* whose *id_key*
        equals the resolved value of *selector*.

        *items* supplies the collection in memory instead of reading it from
        the store.
        """
        binding = Binding(
            record=record,
            collection=collection,
            selector=selector,
            id_key=id_key,
            items=items,
        )
        self._register(command, binding, persistent)
        self._attach(command, binding, partial(self._resolve, binding))
        return binding

    def _register(self, command: click.Command, binding: Binding, persistent: bool) -> None:
        if isinstance(binding.record, type) or not is_record(binding.record):
            raise InvalidTargetKindError(binding.record)
        on_set = partial(self._flag_set, binding)
        targets = [command, *_descendants(command)] if persistent else [command]
        for target in targets:
            binding.flags.extend(register(target, binding.record, on_set=on_set))

    def _attach(self, command: click.Command, binding: Binding, operation: Callable[[], None]) -> None:
        node = self._nodes.get(command)
        if node is None:
            node = HookNode(command)
            self._nodes[command] = node
            self._wrap(command)
        node.bindings.append(binding)
        node.operations.append(operation)

    def _wrap(self, command: click.Command) -> None:
        """Run the hook chain before *command* invokes or renders help.

        Click has no pre-invoke hook on a command, so the bound instance's
        ``invoke`` and ``get_help`` are replaced by versions that call
        :meth:`run_chain` first and then the originals.
        """
        original_invoke = command.invoke
        original_get_help = command.get_help

        def invoke(ctx: click.Context) -> Any:
            self.run_chain(ctx)
            return original_invoke(ctx)

        def get_help(ctx: click.Context) -> str:
            self.run_chain(ctx)
            return original_get_help(ctx)

        command.invoke = invoke  # type: ignore[method-assign]
        command.get_help = get_help  # type: ignore[method-assign]

    # ── Dispatch ─────────────────────────────────────────────────

    def run_chain(self, ctx: click.Context) -> None:
        """Run every bound node from the root down to *ctx*, each once per
        dispatch."""
        self._begin_dispatch(ctx)
        visited: set[HookNode] = ctx.meta.setdefault(_VISITED, set())
        for current in _context_path(ctx):
            node = self._nodes.get(current.command)
            if node is None or node in visited:
                continue
            visited.add(node)
            with LogContext(command=current.info_name):
                node.run()

    def _begin_dispatch(self, ctx: click.Context) -> None:
        """Start a dispatch on the first call within *ctx*'s chain.

        Flag values and explicit-field sets live for one dispatch: they are
        dropped when the root context closes, and any left over from a
        dispatch that never closed (``--help`` exits while parsing) are
        dropped here.
        """
        started: set[Binder] = ctx.meta.setdefault(_DISPATCH, set())
        if self in started:
            return
        started.add(self)
        self._end_dispatch()
        ctx.find_root().call_on_close(self._end_dispatch)

    def _end_dispatch(self) -> None:
        self.store.clear_flags()
        for node in self._nodes.values():
            for binding in node.bindings:
                binding.explicit.clear()

    def _flag_set(self, binding: Binding, desc: FieldDescriptor, value: Any) -> None:
        ctx = click.get_current_context(silent=True)
        if ctx is not None:
            self._begin_dispatch(ctx)
        binding.explicit.add(desc.name)
        store_key = binding.store_key(desc.name)
        if store_key is not None:
            self.store.set_flag(store_key, value)

    def _publish_defaults(self, binding: Binding) -> None:
        """Write the record's compiled-in values to the store's defaults layer."""
        for name, value in binding.defaults.items():
            self.store.set_default(binding.store_key(name), value)

    def _resolve(self, binding: Binding) -> None:
        self.ensure_loaded()
        self._publish_defaults(binding)
        record = binding.record
        explicit = binding.explicit if self.precedence is Precedence.EXPLICIT else None

        if binding.selected:
            select_and_bind(
                self.store,
                binding.collection,
                binding.selector,
                record,
                id_key=binding.id_key,
                items=binding.items,
                explicit=explicit,
            )
        else:
            names = [desc.name for desc in describe(record)]
            try:
                merge(record, self.store.section(binding.key, names), explicit=explicit)
            except DecodeError as e:
                raise e.with_context(record=type(record).__name__)

        for flag in binding.flags:
            flag.refresh_default()

        logger.debug(
            "record_resolved",
            record=type(record).__name__,
            key=binding.key,
            collection=binding.collection,
            explicit=sorted(binding.explicit),
        )

    # ── Without a command ────────────────────────────────────────

    def resolve(self, record: Any, key: str | None = None) -> Any:
        """Merge the store section *key* onto *record* with the binder's
        precedence policy, as a bound command would, but with no flags."""
        if isinstance(record, type) or not is_record(record):
            raise InvalidTargetKindError(record)
        self.ensure_loaded()
        names = [desc.name for desc in describe(record)]
        explicit: set[str] | None = set() if self.precedence is Precedence.EXPLICIT else None
        return merge(record, self.store.section(key, names), explicit=explicit)

    def unmarshal(self, record: Any) -> Any:
        """Decode the whole store onto *record*."""
        return self.unmarshal_key(None, record)

    def unmarshal_key(self, key: str | None, record: Any) -> Any:
        """Decode the store section *key* onto *record*."""
        if isinstance(record, type) or not is_record(record):
            raise InvalidTargetKindError(record)
        self.ensure_loaded()
        names = [desc.name for desc in describe(record)]
        return decode(self.store.section(key, names), record)


# ── Process-wide binder ──────────────────────────────────────────────────

_binder: Binder | None = None


def get_binder() -> Binder:
    """Get (or create) the binder backed by the process-wide store."""
    global _binder
    if _binder is None:
        _binder = Binder()
    return _binder


def bind(
    command: click.Command,
    record: Any,
    *,
    key: str | None = None,
    persistent: bool = False,
) -> Binding:
    return get_binder().bind(command, record, key=key, persistent=persistent)


def bind_persistent(command: click.Command, record: Any, *, key: str | None = None) -> Binding:
    return get_binder().bind(command, record, key=key, persistent=True)


def bind_key(command: click.Command, record: Any, key: str) -> Binding:
    return get_binder().bind(command, record, key=key)


def bind_persistent_key(command: click.Command, record: Any, key: str) -> Binding:
    return get_binder().bind(command, record, key=key, persistent=True)


def bind_selected(
    command: click.Command,
    record: Any,
    *,
    collection: str,
    selector: str,
    id_key: str = "name",
    items: Sequence[Mapping[str, Any]] | None = None,
    persistent: bool = False,
) -> Binding:
    return get_binder().bind_selected(
        command,
        record,
        collection=collection,
        selector=selector,
        id_key=id_key,
        items=items,
        persistent=persistent,
    )


def unmarshal(record: Any) -> Any:
    return get_binder().unmarshal(record)


def unmarshal_key(key: str | None, record: Any) -> Any:
    return get_binder().unmarshal_key(key, record)


__all__ = [
    "Binder",
    "Binding",
    "HookNode",
    "bind",
    "bind_key",
    "bind_persistent",
    "bind_persistent_key",
    "bind_selected",
    "get_binder",
    "unmarshal",
    "unmarshal_key",
]
