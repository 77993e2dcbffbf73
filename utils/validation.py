"""
Input validation utilities for booking and administration inputs.
"""

import re
from typing import Optional


def validate_duration(duration: int, max_slots: int) -> bool:
    """Durations are counted in base slots, 1..max_slots."""
    return isinstance(duration, int) and not isinstance(duration, bool) and 1 <= duration <= max_slots


def sanitize_text(text: str, max_length: Optional[int] = None) -> str:
    """
    Sanitize user input text (names, coach, group labels).

    Args:
        text: Input text
        max_length: Optional maximum length

    Returns:
        Sanitized text
    """
    if not text:
        return ""

    # Remove control characters except newlines and tabs
    sanitized = re.sub(r"[\x00-\x08\x0B-\x0C\x0E-\x1F\x7F]", "", str(text))
    sanitized = sanitized.strip()

    if max_length and len(sanitized) > max_length:
        sanitized = sanitized[:max_length]

    return sanitized
