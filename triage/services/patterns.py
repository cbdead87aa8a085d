"""Rule pattern parsing.

Rule files write regular expressions either bare (``crash``) or in
delimited form (``/\\bcrash\\b/i``).  Delimiters and trailing flags are
stripped; every pattern is matched case-insensitively.
"""

import re
from functools import lru_cache

_DELIMITERS = re.compile(r"^/|/[gimuy]*$")


class InvalidPatternError(ValueError):
    """A rule pattern could not be compiled."""

    def __init__(self, pattern: str, reason: str) -> None:
        super().__init__(f"Invalid regex pattern {pattern!r}: {reason}")
        self.pattern = pattern
        self.reason = reason


def strip_delimiters(pattern: str) -> str:
    """Remove a leading ``/`` and a trailing ``/flags`` suffix."""
    return _DELIMITERS.sub("", pattern)


@lru_cache(maxsize=512)
def compile_rule_pattern(pattern: str) -> re.Pattern[str]:
    """Compile a rule pattern, raising InvalidPatternError on bad syntax."""
    try:
        return re.compile(strip_delimiters(pattern), re.IGNORECASE)
    except re.error as e:
        raise InvalidPatternError(pattern, str(e)) from e
