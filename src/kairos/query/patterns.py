"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Key matchers used by query-cache invalidation.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from typing import TypeAlias

KeyPredicate: TypeAlias = Callable[[str], bool]
KeyPattern: TypeAlias = str | re.Pattern[str] | KeyPredicate


def compile_key_pattern(pattern: KeyPattern) -> KeyPredicate:
    """
    Turn an invalidation pattern into a key predicate.

    Precedence is decided by type alone:
    - ``str``: substring containment, never interpreted as a regex.
    - ``re.Pattern``: ``pattern.search(key)``.
    - any other callable: used as the predicate itself.
    """
    if isinstance(pattern, str):
        needle = pattern
        return lambda key: needle in key
    if isinstance(pattern, re.Pattern):
        compiled = pattern
        return lambda key: compiled.search(key) is not None
    if callable(pattern):
        return lambda key: bool(pattern(key))
    raise TypeError(
        f"Unsupported invalidation pattern type: {type(pattern).__name__}"
    )
