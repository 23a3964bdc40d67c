"""Tokenization and blacklist filtering of candidate descriptions."""

from __future__ import annotations

import re
from collections.abc import Iterable


def tokenize(text: str) -> list[str]:
    """Tokenizes the input text into a list of lower-case terms."""
    return re.findall(r"\w+", text.lower())


def _compile(patterns: Iterable[str]) -> list[re.Pattern[str]]:
    return [re.compile(pattern, re.IGNORECASE) for pattern in patterns]


class TokenFilter:
    """
    Drops uninformative tokens.

    Args:
        blacklist: Regular expressions; a token fully matching any of them is removed.
    """

    def __init__(self, blacklist: Iterable[str] = ()):
        self.blacklist = _compile(blacklist)

    def is_blacklisted(self, token: str) -> bool:
        return any(pattern.fullmatch(token) for pattern in self.blacklist)

    def filter(self, tokens: Iterable[str]) -> tuple[str, ...]:
        """Keeps first-seen order and drops duplicates and blacklisted tokens."""
        seen: dict[str, None] = {}
        for token in tokens:
            if token not in seen and not self.is_blacklisted(token):
                seen[token] = None
        return tuple(seen)

    def __call__(self, text: str) -> tuple[str, ...]:
        return self.filter(tokenize(text))


class DescriptionFilter:
    """
    Cleans raw candidate descriptions before tokenization.

    Args:
        blacklist: A description matching any of these is discarded.
        filters: Matching substrings are cut out of the description.
    """

    def __init__(self, blacklist: Iterable[str] = (), filters: Iterable[str] = ()):
        self.blacklist = _compile(blacklist)
        self.filters = _compile(filters)

    def clean(self, description: str) -> str | None:
        """Returns the filtered description, or None if it is blacklisted."""
        if any(pattern.search(description) for pattern in self.blacklist):
            return None
        for pattern in self.filters:
            description = pattern.sub(" ", description)
        description = " ".join(description.split())
        return description or None
