"""Build injection-safe argument vectors from a classification."""

from dataclasses import dataclass
from typing import Any

from .classifier import (
    CategoryScope,
    Classification,
    ComponentScope,
    FreeTextFilter,
    classify,
)
from .validation import validate


@dataclass(frozen=True)
class DispatchRequest:
    """One validated targeting request, ready to hand to a tool."""

    pattern: str
    classification: Classification
    argv: tuple[str, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "pattern": self.pattern,
            "classification": self.classification.tag,
            "target": self.classification.value,
            "argv": list(self.argv),
        }


def build_invocation(
    classification: Classification,
    base_argv: list[str] | tuple[str, ...],
    categories: dict[str, list[str]],
) -> tuple[str, ...]:
    """Produce the test-runner argv for a classification.

    Every element is a discrete token. The classification value is never
    concatenated into another token.

    Args:
        classification: Output of classify()
        base_argv: Test command without targeting (e.g. cargo test --workspace)
        categories: Category keyword -> extra argv tokens

    Returns:
        Argument vector as a tuple
    """
    argv = list(base_argv)

    if isinstance(classification, ComponentScope):
        # -p replaces the workspace-wide selection
        argv = [token for token in argv if token != "--workspace"]
        argv.extend(["-p", classification.component])
    elif isinstance(classification, CategoryScope):
        argv.extend(categories[classification.category])
    elif isinstance(classification, FreeTextFilter):
        # Everything after "--" goes to the test harness as a name filter
        argv.extend(["--", classification.pattern])
    else:
        raise TypeError(f"Unsupported classification: {classification!r}")

    return tuple(argv)


def dispatch(pattern: str, config: dict[str, Any], components: tuple[str, ...]) -> DispatchRequest:
    """Validate, classify and build the invocation for one pattern.

    Pure in (pattern, config, components): identical inputs give identical
    requests.

    Raises:
        InputValidationError: If the pattern fails validation; no argv is built
    """
    max_length = config["limits"]["max_pattern_length"]
    validate(pattern, max_length)

    categories = config["categories"]
    classification = classify(pattern, components, categories, max_length)
    argv = build_invocation(classification, config["tools"]["test"], categories)
    return DispatchRequest(pattern=pattern, classification=classification, argv=argv)
