"""Classify a validated pattern into a targeting scope."""

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from qualitygate.utils.logging import logger

from .validation import DEFAULT_MAX_PATTERN_LENGTH, validate


@dataclass(frozen=True)
class ComponentScope:
    """Restrict checks to one known component."""

    component: str

    @property
    def tag(self) -> str:
        return "component"

    @property
    def value(self) -> str:
        return self.component


@dataclass(frozen=True)
class CategoryScope:
    """Select a predefined subset of checks by category keyword."""

    category: str

    @property
    def tag(self) -> str:
        return "category"

    @property
    def value(self) -> str:
        return self.category


@dataclass(frozen=True)
class FreeTextFilter:
    """Pass the literal pattern to the test runner as a name matcher."""

    pattern: str

    @property
    def tag(self) -> str:
        return "filter"

    @property
    def value(self) -> str:
        return self.pattern


Classification = ComponentScope | CategoryScope | FreeTextFilter


def discover_components(components_dir: Path) -> list[str]:
    """List workspace member names under components_dir (one Cargo.toml each).

    Directory names are used rather than parsing package names, so the result
    only depends on the filesystem layout.
    """
    if not components_dir.is_dir():
        return []
    return sorted(
        child.name
        for child in components_dir.iterdir()
        if child.is_dir() and (child / "Cargo.toml").is_file()
    )


def known_components(config: dict[str, Any], root: str | Path = ".") -> tuple[str, ...]:
    """Known component identifiers from config, falling back to discovery."""
    configured = config.get("components") or []
    if configured:
        return tuple(configured)
    discovered = discover_components(Path(root) / config["paths"]["components_dir"])
    if discovered:
        logger.debug(f"Discovered {len(discovered)} workspace components: {discovered}")
    return tuple(discovered)


def classify(
    pattern: str,
    components: tuple[str, ...] | list[str],
    categories: dict[str, list[str]] | tuple[str, ...],
    max_length: int = DEFAULT_MAX_PATTERN_LENGTH,
) -> Classification:
    """Classify a pattern.

    Precedence: exact component identifier, then exact category keyword,
    then free-text filter. The pattern is validated first, so a rejected
    pattern never reaches classification.

    Args:
        pattern: Raw developer input
        components: Known component identifiers
        categories: Known category keywords (a mapping's keys are used)
        max_length: Upper bound on pattern length

    Returns:
        ComponentScope, CategoryScope or FreeTextFilter

    Raises:
        InputValidationError: If the pattern fails validation
    """
    validate(pattern, max_length)

    if pattern in components:
        return ComponentScope(pattern)
    if pattern in categories:
        return CategoryScope(pattern)
    return FreeTextFilter(pattern)
