"""Named style stacks, page defaults and element overrides."""
from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from .descriptor import PropertyDescriptor, parse_declarations
from .errors import DynpropsError
from .hierarchy import build_hierarchy
from .merge import merge
from .values import DataType

logger = logging.getLogger(__name__)

BASE_STYLE = "base"

_STYLE_NAME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9 ]*$")
_STYLE_DELIMITERS_RE = re.compile(r"[,|&]+")

PAGE_DEFAULTS: Tuple[Tuple[str, float], ...] = (
    ("scale.position.x", 1),
    ("scale.position.y", 1),
    ("scale.size.w", 1),
    ("scale.size.h", 1),
    ("margin.w", 1),
    ("margin.h", 1),
)

StyleNames = Union[None, str, Sequence[str]]


def split_style_names(text: str) -> List[str]:
    if not text or not isinstance(text, str):
        return []
    return [part.strip() for part in _STYLE_DELIMITERS_RE.split(text) if part.strip()]


def normalize_style_names(style_names: StyleNames) -> List[str]:
    """Turn a style reference into a stack that always starts with ``base``.

    Accepts ``"a, b | c & d"`` strings or lists of such strings. Names that
    are not a letter followed by letters, digits or spaces are dropped.
    """
    if isinstance(style_names, str):
        raw_items: Iterable[Any] = [style_names]
    elif style_names:
        raw_items = style_names
    else:
        raw_items = []
    names: List[str] = []
    for item in raw_items:
        if not isinstance(item, str):
            continue
        for name in split_style_names(item):
            if _STYLE_NAME_RE.match(name):
                names.append(name)
            else:
                logger.debug("ignoring invalid style name %r", name)
    if not names or names[0] != BASE_STYLE:
        names.insert(0, BASE_STYLE)
    return names


def page_defaults() -> List[PropertyDescriptor]:
    return [
        PropertyDescriptor.create(name_path, value, DataType.NUMBER)
        for name_path, value in PAGE_DEFAULTS
    ]


class StyleSheet:
    """Collects declarations per named style and resolves style stacks.

    Declarations are kept unmerged per style. Resolving a stack merges each
    style on top of the previous ones, in stack order, and caches every
    prefix of the stack.
    """

    def __init__(self, compatible_renderers: Iterable[str] = ("common",)) -> None:
        self.compatible_renderers: Tuple[str, ...] = tuple(compatible_renderers)
        self._styles: Dict[str, List[PropertyDescriptor]] = {}
        self._stack_cache: Dict[str, Tuple[PropertyDescriptor, ...]] = {}
        self._page: Tuple[PropertyDescriptor, ...] = merge(page_defaults(), self.compatible_renderers)

    @property
    def style_names(self) -> List[str]:
        return list(self._styles)

    def declarations(self, style_name: str) -> List[PropertyDescriptor]:
        return list(self._styles.get(style_name, ()))

    def add_style_properties(
        self, descriptors: Iterable[PropertyDescriptor], style_name: Optional[str] = None
    ) -> int:
        """Append descriptors to a style, dropping incompatible renderers."""
        style_name = style_name or BASE_STYLE
        if not _STYLE_NAME_RE.match(style_name):
            raise DynpropsError(f"invalid style name: {style_name!r}", code="E_STYLE_NAME")
        compatible = set(self.compatible_renderers)
        accepted = []
        for descriptor in descriptors:
            if descriptor.renderer in compatible:
                accepted.append(descriptor)
            else:
                logger.debug(
                    "style %r: ignoring %s for renderer %r",
                    style_name,
                    descriptor.to_key(),
                    descriptor.renderer,
                )
        self._styles.setdefault(style_name, []).extend(accepted)
        self._invalidate(style_name)
        return len(accepted)

    def add_style_declarations(
        self, declarations: Mapping[str, Any], style_name: Optional[str] = None
    ) -> int:
        descriptors, plain = parse_declarations(declarations)
        if plain:
            logger.warning(
                "style %r: ignoring non-declaration keys %s",
                style_name or BASE_STYLE,
                ", ".join(sorted(map(str, plain))),
            )
        return self.add_style_properties(descriptors, style_name)

    def resolve(
        self, style_names: StyleNames = None, rebuild_cache: bool = False
    ) -> Tuple[PropertyDescriptor, ...]:
        stack = normalize_style_names(style_names)
        merged: Tuple[PropertyDescriptor, ...] = ()
        for depth in range(1, len(stack) + 1):
            key = _stack_key(stack[:depth])
            cached = None if rebuild_cache else self._stack_cache.get(key)
            if cached is not None:
                merged = cached
                continue
            name = stack[depth - 1]
            if name not in self._styles:
                logger.debug("style %r is not defined", name)
            merged = merge(self._styles.get(name, ()), self.compatible_renderers, merged)
            self._stack_cache[key] = merged
        return merged

    def style(self, style_names: StyleNames = None, strict: bool = False) -> Dict[str, Any]:
        return build_hierarchy(self.resolve(style_names), strict=strict)

    def resolve_element(
        self,
        style_names: StyleNames = None,
        overrides: Union[Iterable[PropertyDescriptor], Mapping[str, Any]] = (),
    ) -> Tuple[PropertyDescriptor, ...]:
        """Resolve a style stack and then apply one element's own overrides."""
        if isinstance(overrides, Mapping):
            overrides, _plain = parse_declarations(overrides)
        return merge(overrides, self.compatible_renderers, self.resolve(style_names))

    def element(
        self,
        style_names: StyleNames = None,
        overrides: Union[Iterable[PropertyDescriptor], Mapping[str, Any]] = (),
        strict: bool = False,
    ) -> Dict[str, Any]:
        return build_hierarchy(self.resolve_element(style_names, overrides), strict=strict)

    def add_page_properties(self, descriptors: Iterable[PropertyDescriptor]) -> None:
        self._page = merge(descriptors, self.compatible_renderers, self._page)

    def page_properties(self) -> Tuple[PropertyDescriptor, ...]:
        return self._page

    def page(self, strict: bool = False) -> Dict[str, Any]:
        return build_hierarchy(self._page, strict=strict)

    def _invalidate(self, style_name: str) -> None:
        stale = [key for key in self._stack_cache if style_name in json.loads(key)]
        for key in stale:
            del self._stack_cache[key]
        if stale:
            logger.debug("dropped %d cached stacks using style %r", len(stale), style_name)


def _stack_key(stack: Sequence[str]) -> str:
    return json.dumps(list(stack))
