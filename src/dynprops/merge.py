"""Chronological merge of property descriptors."""
from __future__ import annotations

import logging
from typing import Collection, Iterable, List, Sequence, Tuple

from .descriptor import PropertyDescriptor

logger = logging.getLogger(__name__)


def merge(
    descriptors: Iterable[PropertyDescriptor],
    compatible_renderers: Collection[str],
    merged: Sequence[PropertyDescriptor] = (),
) -> Tuple[PropertyDescriptor, ...]:
    """Filter ``descriptors`` by renderer and fold them onto ``merged``.

    The renderer collection is a membership filter only; it does not rank
    renderers against each other. On an exact path collision the later
    declaration wins.
    """
    allowed = frozenset(compatible_renderers)
    kept: List[PropertyDescriptor] = []
    for descriptor in descriptors:
        if descriptor.renderer in allowed:
            kept.append(descriptor)
        elif logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "dropping %s: renderer %r is not compatible", descriptor.to_key(), descriptor.renderer
            )
    return merge_resolved(kept, merged)


def merge_resolved(
    descriptors: Iterable[PropertyDescriptor],
    merged: Sequence[PropertyDescriptor] = (),
) -> Tuple[PropertyDescriptor, ...]:
    result: List[PropertyDescriptor] = list(merged)
    for descriptor in descriptors:
        if descriptor.clear_children:
            result = [
                existing for existing in result if not _is_descendant_or_self(existing, descriptor)
            ]
            result.append(descriptor)
            continue
        position = _find_exact(result, descriptor)
        if position is None:
            result.append(descriptor)
        else:
            result[position] = descriptor
    return tuple(result)


def _find_exact(result: Sequence[PropertyDescriptor], descriptor: PropertyDescriptor):
    for position, existing in enumerate(result):
        if existing.group == descriptor.group and existing.name_path == descriptor.name_path:
            return position
    return None


def _is_descendant_or_self(candidate: PropertyDescriptor, ancestor: PropertyDescriptor) -> bool:
    if candidate.group != ancestor.group:
        return False
    prefix = ancestor.name_path_array
    return candidate.name_path_array[: len(prefix)] == prefix
