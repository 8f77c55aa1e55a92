"""
Binding a record to one selected element of a config collection.

Given a config such as::

    environment: staging
    environments:
      - name: production
        region: eu-west-1
      - name: staging
        region: us-east-1

``select_and_bind(store, "environments", "environment", target)`` resolves
``environment`` (flag, override, environment variable, file, default: the
usual precedence), picks the first element whose ``name`` equals it and
merges that element onto ``target``. No matching element is a valid, empty
selection: the target keeps what flag parsing gave it.
"""

from __future__ import annotations

from collections.abc import Collection, Mapping, Sequence
from typing import Any

from cfgbind.errors import DecodeError
from cfgbind.fields import describe_sequence, normalize_key, record_type_of
from cfgbind.logging import get_logger
from cfgbind.merge import decode, merge
from cfgbind.store import ConfigStore

logger = get_logger(__name__)


def _elements(items: Any, collection_key: str) -> Sequence[Mapping[str, Any]]:
    if items is None:
        return []
    if isinstance(items, (str, bytes, Mapping)) or not isinstance(items, Sequence):
        raise DecodeError(
            f"Config key {collection_key!r} is not a list of tables",
            key=collection_key,
            value=items,
        )
    for item in items:
        if not isinstance(item, Mapping):
            raise DecodeError(
                f"Element of {collection_key!r} is not a table",
                key=collection_key,
                value=item,
            )
    return items


def select_element(
    items: Sequence[Mapping[str, Any]],
    id_key: str,
    selected: Any,
) -> Mapping[str, Any] | None:
    """First element whose *id_key* field, as a string, equals *selected*."""
    if selected is None:
        return None
    wanted_key = normalize_key(id_key)
    wanted = str(selected)
    for item in items:
        for key, value in item.items():
            if normalize_key(key) == wanted_key and value is not None and str(value) == wanted:
                return item
    return None


def select_and_bind(
    store: ConfigStore,
    collection_key: str,
    selector_key: str,
    target: Any,
    *,
    id_key: str = "name",
    items: Sequence[Mapping[str, Any]] | None = None,
    explicit: Collection[str] | None = None,
) -> Mapping[str, Any] | None:
    """Merge the selected element of a collection onto *target*.

    Args:
        store: Store resolving the selector and holding the collection
        collection_key: Key of the list of tables
        selector_key: Key whose value names the wanted element
        target: Record to fill
        id_key: Identifying field of each element
        items: In-memory collection; bypasses the store fetch
        explicit: Fields set on the command line (see :func:`merge`)

    Returns:
        The matched element, or None for an empty selection.

    Raises:
        DecodeError: the collection is not a list of tables, or the matched
            element does not fit the target's fields.
    """
    record_type_of(target)
    selected = store.get(selector_key)
    elements = _elements(store.get_raw(collection_key) if items is None else items, collection_key)

    element = select_element(elements, id_key, selected)
    if element is None:
        logger.debug(
            "collection_no_match",
            collection=collection_key,
            selector=selector_key,
            selected=selected,
        )
        return None

    try:
        merge(target, element, explicit=explicit)
    except DecodeError as e:
        raise e.with_context(record=type(target).__name__, collection=collection_key)
    logger.debug(
        "collection_element_bound",
        collection=collection_key,
        selected=selected,
        record=type(target).__name__,
    )
    return element


def load_collection(store: ConfigStore, collection_key: str, item_type: type) -> list[Any]:
    """Decode every element of a collection into a fresh *item_type* record."""
    result: list[Any] = []
    describe_sequence(result, item_type)
    for element in _elements(store.get_raw(collection_key), collection_key):
        result.append(decode(element, item_type()))
    return result


__all__ = [
    "load_collection",
    "select_and_bind",
    "select_element",
]
