"""General-purpose helpers shared by the analyzers."""

import math


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives.

    Scores and percentages use this instead of :func:`round`, which
    rounds halves to even.

    Examples:
        >>> round_half_up(40.5)
        41
        >>> round_half_up(2.5)
        3
        >>> round_half_up(29.49)
        29
    """
    return int(math.floor(value + 0.5))


def truncate_text(text: str, max_length: int = 160, suffix: str = "...") -> str:
    """Truncate text to a maximum length, breaking at word boundaries.

    Args:
        text: Input text.
        max_length: Maximum allowed length including suffix.
        suffix: String appended when truncation occurs.

    Returns:
        Truncated text with suffix if it was shortened.
    """
    if len(text) <= max_length:
        return text
    truncated = text[: max_length - len(suffix)]
    last_space = truncated.rfind(" ")
    if last_space > 0:
        truncated = truncated[:last_space]
    return truncated.rstrip(".,;:!? ") + suffix
