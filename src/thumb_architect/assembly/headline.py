from __future__ import annotations

from typing import NamedTuple


class HeadlineParts(NamedTuple):
    prefix: str
    highlight: str
    suffix: str


def split_headline(headline: str, highlight_word: str) -> HeadlineParts:
    """
    Split on the first occurrence of the highlight word only.

    An empty or absent highlight word yields the whole headline as the prefix
    and no highlighted segment.
    """
    headline = headline or ""
    if not highlight_word:
        return HeadlineParts(headline, "", "")
    idx = headline.find(highlight_word)
    if idx < 0:
        return HeadlineParts(headline, "", "")
    end = idx + len(highlight_word)
    return HeadlineParts(headline[:idx], headline[idx:end], headline[end:])
