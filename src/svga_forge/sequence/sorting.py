"""
Natural Sequence Sorter
=======================

Orders frame names so that embedded digit runs compare by numeric value.

    frame2.png  <  frame10.png     (natural)
    frame10.png <  frame2.png      (lexical, what we avoid)

Key Layout:
    re.split with a capturing group always yields text at even indices and
    digit runs at odd indices, so two keys never compare int against str.
    Text runs are case-folded and stripped of combining accents.
"""

import re
import unicodedata
from typing import Callable, Iterable, List, Tuple, TypeVar, Union


T = TypeVar("T")

_DIGIT_RUN = re.compile(r"(\d+)")

NaturalKey = Tuple[Union[str, int], ...]


def _fold(text: str) -> str:
    decomposed = unicodedata.normalize("NFKD", text)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return stripped.casefold()


def natural_key(name: str) -> NaturalKey:
    """
    Build a sort key for `name`.

    Args:
        name: Frame name, usually a filename

    Returns:
        Tuple alternating folded text and integer digit runs
    """
    parts = _DIGIT_RUN.split(name)
    return tuple(
        int(part) if i % 2 else _fold(part)
        for i, part in enumerate(parts)
    )


def compare_names(a: str, b: str) -> int:
    """Three-way comparison of two names in natural order."""
    ka, kb = natural_key(a), natural_key(b)
    if ka < kb:
        return -1
    if ka > kb:
        return 1
    return 0


def natural_sorted(
    items: Iterable[T],
    key: Callable[[T], str] = str,
) -> List[T]:
    """
    Stable natural sort.

    Items whose names compare equal keep their relative input order.
    """
    return sorted(items, key=lambda item: natural_key(key(item)))
