"""Pattern validation - the only gate between free-form input and argv construction.

Rejection is absolute. There is no sanitize-and-continue path: a pattern either
passes untouched or raises InputValidationError.
"""

from qualitygate.errors import InputValidationError

DEFAULT_MAX_PATTERN_LENGTH = 200

# Shell separators, redirection, substitution, chaining, quoting and globbing
FORBIDDEN_CHARACTERS = frozenset(";&|$`<>(){}[]!*?'\"\\#~")


def _describe(char: str) -> str:
    if char.isspace():
        return f"whitespace ({char!r})"
    if not char.isprintable():
        return f"control character ({char!r})"
    return repr(char)


def validate(pattern: str | None, max_length: int = DEFAULT_MAX_PATTERN_LENGTH) -> str:
    """Validate a targeting pattern.

    Args:
        pattern: Raw developer input
        max_length: Upper bound on pattern length

    Returns:
        The pattern, unchanged

    Raises:
        InputValidationError: If the pattern is empty, too long, looks like an
            option, or contains a forbidden character
    """
    if pattern is None or pattern == "":
        raise InputValidationError("" if pattern is None else pattern, "pattern is empty")

    if len(pattern) > max_length:
        raise InputValidationError(pattern, f"pattern longer than {max_length} characters")

    if pattern.startswith("-"):
        raise InputValidationError(pattern, "pattern may not start with '-'")

    for char in pattern:
        if char in FORBIDDEN_CHARACTERS or char.isspace() or not char.isprintable():
            raise InputValidationError(pattern, f"forbidden character {_describe(char)}")

    return pattern
