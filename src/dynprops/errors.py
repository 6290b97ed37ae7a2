"""Exception types raised by the property engine."""
from __future__ import annotations

from typing import Optional


class DynpropsError(ValueError):
    """Structured error with a stable code for CLI mapping."""

    code = "E_DYNPROPS"

    def __init__(self, message: str, code: Optional[str] = None) -> None:
        super().__init__(message)
        if code is not None:
            self.code = code
        self.message = message

    def __str__(self) -> str:
        return self.message


class ParseError(DynpropsError):
    """Raised when a declaration string does not match the grammar."""

    code = "E_PARSE_DECLARATION"

    def __init__(self, text: str, message: str, code: Optional[str] = None) -> None:
        super().__init__(message, code)
        self.text = text


class DescriptorError(DynpropsError):
    """Raised when a descriptor is constructed from invalid parts."""

    code = "E_DESCRIPTOR"

    def __init__(self, errors: list[str]) -> None:
        super().__init__("; ".join(errors))
        self.errors = list(errors)


class HierarchyConflictError(DynpropsError):
    """Raised by strict hierarchy builds when a path changes shape."""

    code = "E_HIERARCHY_CONFLICT"

    def __init__(self, key: str, message: str) -> None:
        super().__init__(message)
        self.key = key
