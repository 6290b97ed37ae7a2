"""Projection of resolved descriptors into a nested attribute tree."""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Iterator, List, Tuple, Union

from .descriptor import FLAGS_KEY, PropertyDescriptor, path_with_indices
from .errors import HierarchyConflictError
from .values import UNSET

logger = logging.getLogger(__name__)

_MISSING = object()

Key = Union[str, int]


class _Hole:
    """Placeholder for an index that was never assigned."""

    _instance = None

    def __new__(cls) -> "_Hole":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "HOLE"

    def __reduce__(self):
        return (_Hole, ())


HOLE = _Hole()


class SparseSequence:
    """Index-addressed container; unassigned indices stay holes.

    Flags addressed by index are kept in ``flags`` so they never change the
    shape of the items.
    """

    __slots__ = ("_items", "flags")

    def __init__(self) -> None:
        self._items: Dict[int, Any] = {}
        self.flags: Dict[str, Any] = {}

    def __len__(self) -> int:
        return max(self._items) + 1 if self._items else 0

    def __contains__(self, index: object) -> bool:
        return index in self._items

    def __getitem__(self, index: int) -> Any:
        return self._items[index]

    def __setitem__(self, index: int, value: Any) -> None:
        if isinstance(index, bool) or not isinstance(index, int) or index < 0:
            raise TypeError(f"sparse sequence index must be a non-negative int, got {index!r}")
        self._items[index] = value

    def get(self, index: int, default: Any = None) -> Any:
        return self._items.get(index, default)

    def items(self) -> Iterator[Tuple[int, Any]]:
        return iter(sorted(self._items.items()))

    @property
    def hole_count(self) -> int:
        return len(self) - len(self._items)

    def to_list(self, fill: Any = HOLE) -> List[Any]:
        return [self._items.get(index, fill) for index in range(len(self))]

    def __repr__(self) -> str:
        if self.flags:
            return f"SparseSequence({dict(self.items())!r}, flags={self.flags!r})"
        return f"SparseSequence({dict(self.items())!r})"


def build_hierarchy(
    resolved: Iterable[PropertyDescriptor], strict: bool = False
) -> Dict[str, Any]:
    """Build the nested attribute tree for ``resolved`` descriptors.

    Index segments become lists whose unassigned slots are ``HOLE``. Flag
    descriptors land in a ``__flags`` mapping beside their siblings. A
    sequence that carries index flags is emitted as a mapping with string
    index keys plus ``__flags``, whatever order the declarations came in. A
    descriptor whose path disagrees with the shape already built is skipped,
    or raises ``HierarchyConflictError`` when ``strict`` is set.
    """
    root: Dict[str, Any] = {}
    for descriptor in resolved:
        if descriptor.value is UNSET:
            logger.debug("skipping %s: no declared value", descriptor.to_key())
            continue
        try:
            _assign(root, descriptor)
        except HierarchyConflictError as exc:
            if strict:
                raise
            logger.debug("skipping %s: %s", descriptor.to_key(), exc)
    return _materialize(root)


def _assign(root: Dict[str, Any], descriptor: PropertyDescriptor) -> None:
    keys: List[Key] = list(descriptor.group_path_array)
    keys.extend(path_with_indices(descriptor))
    container: Union[Dict[str, Any], SparseSequence] = root
    for depth, key in enumerate(keys[:-1]):
        wants_sequence = isinstance(keys[depth + 1], int)
        container = _child_container(container, key, wants_sequence, descriptor)
    if descriptor.is_flag:
        _check_key(container, keys[-1], descriptor)
        if isinstance(container, SparseSequence):
            container.flags[str(keys[-1])] = descriptor.value
            return
        container = _child_container(container, FLAGS_KEY, False, descriptor)
        container[keys[-1]] = descriptor.value
        return
    _store(container, keys[-1], descriptor.value, descriptor)


def _child_container(container, key: Key, wants_sequence: bool, descriptor: PropertyDescriptor):
    _check_key(container, key, descriptor)
    existing = container.get(key, _MISSING)
    if existing is _MISSING:
        created = SparseSequence() if wants_sequence else {}
        container[key] = created
        return created
    if wants_sequence and isinstance(existing, SparseSequence):
        return existing
    if not wants_sequence and isinstance(existing, dict):
        return existing
    expected = "sequence" if wants_sequence else "mapping"
    raise HierarchyConflictError(
        descriptor.to_key(),
        f"{descriptor.to_key()}: {key!r} holds {_shape(existing)}, expected a {expected}",
    )


def _store(container, key: Key, value: Any, descriptor: PropertyDescriptor) -> None:
    _check_key(container, key, descriptor)
    existing = container.get(key, _MISSING)
    if isinstance(existing, (dict, SparseSequence)):
        raise HierarchyConflictError(
            descriptor.to_key(),
            f"{descriptor.to_key()}: {key!r} holds {_shape(existing)}, cannot replace it with a value",
        )
    container[key] = value


def _check_key(container, key: Key, descriptor: PropertyDescriptor) -> None:
    if isinstance(container, SparseSequence) and not isinstance(key, int):
        raise HierarchyConflictError(
            descriptor.to_key(),
            f"{descriptor.to_key()}: name {key!r} cannot address a sequence",
        )
    if isinstance(container, dict) and not isinstance(key, str):
        raise HierarchyConflictError(
            descriptor.to_key(),
            f"{descriptor.to_key()}: index {key!r} cannot address a mapping",
        )


def _shape(value: Any) -> str:
    if isinstance(value, SparseSequence):
        return "a sequence"
    if isinstance(value, dict):
        return "a mapping"
    return f"the value {value!r}"


def _materialize(node: Any) -> Any:
    if isinstance(node, SparseSequence):
        if node.flags:
            flagged: Dict[str, Any] = {str(index): _materialize(item) for index, item in node.items()}
            flagged[FLAGS_KEY] = dict(node.flags)
            return flagged
        return [_materialize(item) for item in node.to_list()]
    if isinstance(node, dict):
        return {key: _materialize(value) for key, value in node.items()}
    return node
