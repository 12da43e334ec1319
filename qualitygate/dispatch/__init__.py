"""Input classification and injection-safe dispatch.

validate -> classify -> build_invocation, in that order, always.
"""

from .classifier import (
    CategoryScope,
    Classification,
    ComponentScope,
    FreeTextFilter,
    classify,
    discover_components,
    known_components,
)
from .invocation import DispatchRequest, build_invocation, dispatch
from .validation import FORBIDDEN_CHARACTERS, validate

__all__ = [
    "CategoryScope",
    "Classification",
    "ComponentScope",
    "DispatchRequest",
    "FORBIDDEN_CHARACTERS",
    "FreeTextFilter",
    "build_invocation",
    "classify",
    "discover_components",
    "dispatch",
    "known_components",
    "validate",
]
