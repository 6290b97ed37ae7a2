"""Property declaration grammar and the typed descriptor it produces.

A declaration key has the canonical (version 1) form::

    _<renderer>?:<group>?:<type>:<name>(:<tags...>)?

``renderer`` defaults to ``common``. ``group`` and ``name`` are dotted paths;
an all-digit ``name`` segment addresses a sequence index. Tags are space
separated and ``!clear`` marks a declaration that resets its subtree.
"""
from __future__ import annotations

import dataclasses
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from .errors import DescriptorError, ParseError
from .values import UNSET, DataType, coerce

GRAMMAR_VERSION = 1
DEFAULT_RENDERER = "common"
CLEAR_TAG = "!clear"
FLAGS_KEY = "__flags"

SEGMENT_NAME = "name"
SEGMENT_INDEX = "index"

_PATH = r"[A-Za-z][A-Za-z0-9]*(?:[_.][A-Za-z0-9]+)*"
_DECLARATION_RE = re.compile(
    rf"^_([A-Za-z][A-Za-z0-9]*)?:({_PATH})?:([A-Za-z]+):({_PATH})(?::(.*))?$"
)
_RENDERER_RE = re.compile(r"^[A-Za-z][A-Za-z0-9]*$")
_INDEX_RE = re.compile(r"^[0-9]+$")
# Direct construction also admits TikZ style keys such as "minimum width".
# A leading underscore is reserved for containers like __flags.
_NAME_SEGMENT_RE = re.compile(r"^[A-Za-z][A-Za-z\d\s_\-]*$")


@dataclass(frozen=True)
class PropertyDescriptor:
    name_path: str
    renderer: str = DEFAULT_RENDERER
    group: str = ""
    data_type: DataType = DataType.STRING
    value: Any = UNSET
    clear_children: bool = False
    tags: Tuple[str, ...] = ()
    name_path_array: Tuple[str, ...] = field(init=False, repr=False, compare=False)
    name_path_types: Tuple[str, ...] = field(init=False, repr=False, compare=False)
    group_path_array: Tuple[str, ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        errors: List[str] = []
        renderer = self.renderer
        if renderer is None:
            renderer = DEFAULT_RENDERER
        elif not isinstance(renderer, str) or not _RENDERER_RE.match(renderer):
            errors.append(f"renderer must be an identifier string, got {renderer!r}")

        try:
            data_type = DataType.from_token(self.data_type)
        except ValueError:
            errors.append(f"unknown data type: {self.data_type!r}")
            data_type = DataType.STRING

        group = self.group or ""
        name_segments = _validate_path(self.name_path, "name_path", errors, required=True)
        group_segments = _validate_path(group, "group", errors, required=False)
        if name_segments and _INDEX_RE.match(name_segments[0]):
            errors.append(f"name_path must start with a name segment: {self.name_path!r}")
        if errors:
            raise DescriptorError(errors)

        tags = tuple(self.tags or ())
        clear_children = bool(self.clear_children) or CLEAR_TAG in tags
        if clear_children and CLEAR_TAG not in tags:
            tags = tags + (CLEAR_TAG,)

        object.__setattr__(self, "renderer", renderer)
        object.__setattr__(self, "group", group)
        object.__setattr__(self, "data_type", data_type)
        object.__setattr__(self, "clear_children", clear_children)
        object.__setattr__(self, "tags", tags)
        object.__setattr__(self, "name_path_array", tuple(name_segments))
        object.__setattr__(
            self,
            "name_path_types",
            tuple(SEGMENT_INDEX if _INDEX_RE.match(s) else SEGMENT_NAME for s in name_segments),
        )
        object.__setattr__(self, "group_path_array", tuple(group_segments))

    @property
    def is_flag(self) -> bool:
        return self.data_type is DataType.FLAG

    @classmethod
    def create(
        cls,
        name_path: str,
        value: Any = UNSET,
        data_type: Optional[Union[str, DataType]] = None,
        renderer: str = DEFAULT_RENDERER,
        group: str = "",
        clear_children: bool = False,
    ) -> "PropertyDescriptor":
        """Build a validated descriptor for an ad-hoc override.

        When ``data_type`` is omitted it is inferred from the Python type of
        ``value``. Mappings and sequences are rejected: structure belongs in
        the path, not in the value.
        """
        if data_type is None:
            data_type = _infer_data_type(value)
        try:
            resolved_type = DataType.from_token(data_type)
        except ValueError:
            raise DescriptorError([f"unknown data type: {data_type!r}"]) from None
        return cls(
            name_path=name_path,
            renderer=renderer,
            group=group,
            data_type=resolved_type,
            value=coerce(value, resolved_type),
            clear_children=clear_children,
        )

    def with_value(self, raw_value: Any) -> "PropertyDescriptor":
        return dataclasses.replace(self, value=coerce(raw_value, self.data_type))

    def to_key(self) -> str:
        """Render the canonical declaration string.

        Parses back to an equal descriptor only when every segment fits the
        declaration grammar; names built by ``create`` with spaces or hyphens
        render for display but do not parse.
        """
        key = f"_{self.renderer}:{self.group}:{self.data_type.value}:{self.name_path}"
        if self.tags:
            key += ":" + " ".join(self.tags)
        return key


def _validate_path(path: Any, label: str, errors: List[str], *, required: bool) -> List[str]:
    if not path:
        if required:
            errors.append(f"{label} is required and cannot be empty")
        return []
    if not isinstance(path, str):
        errors.append(f"{label} must be a string")
        return []
    if path.startswith(".") or path.endswith(".") or ".." in path:
        errors.append(f"{label} has an empty segment: {path!r}")
        return []
    segments = path.split(".")
    for position, segment in enumerate(segments):
        if segment != segment.strip():
            errors.append(
                f"{label} segment {segment!r} at position {position} has surrounding whitespace"
            )
        elif not (_INDEX_RE.match(segment) or _NAME_SEGMENT_RE.match(segment)):
            errors.append(
                f"{label} segment {segment!r} at position {position} must be digits only "
                "or start with a letter"
            )
    return segments


def _infer_data_type(value: Any) -> DataType:
    if value is UNSET or value is None or isinstance(value, str):
        return DataType.STRING
    if isinstance(value, bool):
        return DataType.BOOLEAN
    if isinstance(value, int):
        return DataType.INTEGER
    if isinstance(value, float):
        return DataType.FLOAT
    if isinstance(value, (Mapping, list, tuple, set)):
        raise DescriptorError([f"value cannot be a {type(value).__name__}"])
    raise DescriptorError([f"unsupported value type: {type(value).__name__}"])


def is_declaration(text: Any) -> bool:
    return isinstance(text, str) and _DECLARATION_RE.match(text) is not None


def parse_description(text: str) -> PropertyDescriptor:
    match = _DECLARATION_RE.match(text) if isinstance(text, str) else None
    if match is None:
        raise ParseError(text, _describe_mismatch(text))
    renderer, group, type_token, name, tags_text = match.groups()
    try:
        data_type = DataType(type_token)
    except ValueError:
        raise ParseError(
            text,
            f"unknown data type {type_token!r} in property declaration: {text!r}",
            code="E_PARSE_TYPE",
        ) from None
    tags = tuple(tag for tag in (tags_text or "").split(" ") if tag)
    try:
        return PropertyDescriptor(
            name_path=name,
            renderer=renderer or DEFAULT_RENDERER,
            group=group or "",
            data_type=data_type,
            clear_children=CLEAR_TAG in tags,
            tags=tags,
        )
    except DescriptorError as exc:
        raise ParseError(text, f"invalid property declaration {text!r}: {exc}") from exc


def parse_with_value(text: str, raw_value: Any) -> PropertyDescriptor:
    return parse_description(text).with_value(raw_value)


def path_with_indices(descriptor: PropertyDescriptor) -> Tuple[Union[str, int], ...]:
    return tuple(
        int(segment) if kind == SEGMENT_INDEX else segment
        for segment, kind in zip(descriptor.name_path_array, descriptor.name_path_types)
    )


def parse_declarations(
    mapping: Union[Mapping[str, Any], Iterable[Tuple[str, Any]]],
) -> Tuple[List[PropertyDescriptor], Dict[str, Any]]:
    """Split a mapping into parsed declarations and plain fields.

    Keys that look like declarations (leading underscore and a colon) but do
    not parse raise ``ParseError``; every other key is returned untouched.
    """
    items = mapping.items() if isinstance(mapping, Mapping) else mapping
    descriptors: List[PropertyDescriptor] = []
    plain: Dict[str, Any] = {}
    for key, value in items:
        if isinstance(key, str) and key.startswith("_") and ":" in key:
            descriptors.append(parse_with_value(key, value))
        else:
            plain[key] = value
    return descriptors, plain


def find_descriptor(
    descriptors: Sequence[PropertyDescriptor],
    name_path: str,
    default: Any = None,
) -> Any:
    """Return the first descriptor addressing ``name_path``.

    A mapping ``default`` is turned into a validated descriptor; ``None`` is
    returned as is.
    """
    if name_path:
        for descriptor in descriptors:
            if descriptor.name_path == name_path:
                return descriptor
    if isinstance(default, Mapping):
        return PropertyDescriptor.create(**default)
    return default


def _describe_mismatch(text: Any) -> str:
    if not isinstance(text, str):
        return f"property declaration must be a string, got {type(text).__name__}"
    if text.startswith("_") and ":" not in text:
        return (
            f"unsupported legacy underscore-delimited declaration: {text!r} "
            f"(grammar v{GRAMMAR_VERSION} expects _renderer:group:type:name)"
        )
    if not text.startswith("_") and "." in text:
        return (
            f"unsupported legacy dotted declaration: {text!r} "
            f"(grammar v{GRAMMAR_VERSION} expects _renderer:group:type:name)"
        )
    return f"invalid property declaration: {text!r}"
