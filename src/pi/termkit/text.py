"""Cell-width measurement of text.

Text is written to layers one grapheme cluster at a time; each cluster
occupies zero, one or two cells.  Widths come from :mod:`wcwidth`, with
emoji sequences that ``wcwidth`` measures per codepoint forced to two cells.
"""

from __future__ import annotations

import unicodedata
from typing import Iterator

import grapheme
import wcwidth as _wcwidth

_width_cache: dict[str, int] = {}
_WIDTH_CACHE_MAX = 512


def graphemes(text: str) -> Iterator[str]:
    """Iterate over the user-perceived characters of *text*."""
    return grapheme.graphemes(text)


def grapheme_width(cluster: str) -> int:
    """Return the number of terminal cells a single grapheme cluster occupies."""
    if not cluster:
        return 0

    if len(cluster) == 1:
        cp = ord(cluster)
        if cp < 0x20 or 0x7F <= cp <= 0x9F:
            return 0
        return max(_wcwidth.wcwidth(cluster), 0)

    cached = _width_cache.get(cluster)
    if cached is not None:
        return cached

    width = _cluster_width(cluster)
    if len(_width_cache) >= _WIDTH_CACHE_MAX:
        _width_cache.clear()
    _width_cache[cluster] = width
    return width


def _cluster_width(cluster: str) -> int:
    for ch in cluster:
        cp = ord(ch)
        # VS16, ZWJ, skin tone modifiers, regional indicators
        if cp in (0xFE0F, 0x200D) or 0x1F3FB <= cp <= 0x1F3FF or 0x1F1E6 <= cp <= 0x1F1FF:
            return 2

    first = cluster[0]
    if ord(first) >= 0x1F000:
        return 2
    if unicodedata.category(first) in ("Mn", "Me", "Mc", "Cf"):
        return 0
    return max(_wcwidth.wcwidth(first), 0)


def text_width(text: str) -> int:
    """Total cell width of *text* (control characters count as zero)."""
    if text.isascii() and text.isprintable():
        return len(text)
    return sum(grapheme_width(g) for g in graphemes(text))
