"""Public API for dynprops."""
import logging

from .descriptor import (
    GRAMMAR_VERSION,
    PropertyDescriptor,
    find_descriptor,
    is_declaration,
    parse_declarations,
    parse_description,
    parse_with_value,
    path_with_indices,
)
from .errors import DescriptorError, DynpropsError, HierarchyConflictError, ParseError
from .hierarchy import HOLE, SparseSequence, build_hierarchy
from .merge import merge, merge_resolved
from .styles import BASE_STYLE, StyleSheet, normalize_style_names, page_defaults
from .values import UNSET, DataType, coerce

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "BASE_STYLE",
    "GRAMMAR_VERSION",
    "HOLE",
    "UNSET",
    "DataType",
    "DescriptorError",
    "DynpropsError",
    "HierarchyConflictError",
    "ParseError",
    "PropertyDescriptor",
    "SparseSequence",
    "StyleSheet",
    "build_hierarchy",
    "coerce",
    "find_descriptor",
    "is_declaration",
    "merge",
    "merge_resolved",
    "normalize_style_names",
    "page_defaults",
    "parse_declarations",
    "parse_description",
    "parse_with_value",
    "path_with_indices",
]
