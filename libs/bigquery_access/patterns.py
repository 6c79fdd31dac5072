"""
SQL LIKE style wildcard matching for catalog names.

``%`` matches any run of characters, ``_`` matches exactly one character and
``\\%``, ``\\_`` and ``\\\\`` stand for a literal percent, underscore and
backslash. Matching is case-sensitive and anchored at both ends.
"""

import re
from functools import lru_cache

# Escape sequences come first in the alternation so that an escaped wildcard
# is consumed as a literal before the bare wildcard branches can see it.
_TOKEN = re.compile(r"\\[\\%_]|%|_|.", re.DOTALL)


@lru_cache(maxsize=512)
def compile_pattern(pattern: str | None) -> re.Pattern[str] | None:
    """
    Translate a LIKE pattern into a compiled regular expression.

    Args:
        pattern: The LIKE pattern, or None

    Returns:
        The compiled regex, or None when every value should match
    """
    if pattern is None:
        return None

    parts: list[str] = []
    for token in _TOKEN.findall(pattern):
        if len(token) == 2:
            parts.append(re.escape(token[1]))
        elif token == "%":
            parts.append(".*")
        elif token == "_":
            parts.append(".")
        else:
            # Includes a dangling trailing backslash, kept as a literal
            parts.append(re.escape(token))

    return re.compile("".join(parts), re.DOTALL)


def matches(value: str, pattern: str | None) -> bool:
    """Return True if ``value`` matches the LIKE ``pattern`` (None matches all)."""
    compiled = compile_pattern(pattern)
    if compiled is None:
        return True
    return compiled.fullmatch(value) is not None
