"""URL detection in free-form chat text.

Detection is regex-only and never raises: text without a URL is a normal
outcome and yields ``None`` / ``False``.
"""

from __future__ import annotations

import re

#: Strict grammar used for extraction: http(s) scheme, optional ``www.``, a
#: dotted host and an optional path / query / fragment.
URL_PATTERN: re.Pattern[str] = re.compile(
    r"https?://(?:www\.)?[-a-zA-Z0-9@:%._+~#=]{1,256}\.[a-zA-Z0-9()]{1,6}\b"
    r"[-a-zA-Z0-9()@:%_+.~#?&/=]*",
    re.IGNORECASE,
)

#: Looser grammar for classification only; also accepts ``www.`` without a
#: scheme and the ``ftp`` / ``file`` schemes.
LOOSE_URL_PATTERN: re.Pattern[str] = re.compile(
    r"\b(?:(?:https?|ftp|file)://|www\.)[-a-zA-Z0-9+&@#/%=~_|!:,.;]*[-a-zA-Z0-9+&@#/%=~_|]",
    re.IGNORECASE,
)


def find_urls(text: str) -> list[str]:
    """Return every URL in *text*, in order of appearance."""
    if not isinstance(text, str):
        return []
    return URL_PATTERN.findall(text)


def find_url(text: str) -> str | None:
    """Return the first URL in *text*, or ``None`` if there is none.

    Example::

        >>> find_url("summarise https://example.com/a?b=1 extra words")
        'https://example.com/a?b=1'
    """
    if not isinstance(text, str):
        return None
    match = URL_PATTERN.search(text)
    return match.group(0) if match else None


def looks_like_url(text: str) -> bool:
    """Return ``True`` if *text* contains something URL-shaped.

    Cheaper and looser than :func:`find_url`; does not extract anything.
    """
    if not isinstance(text, str):
        return False
    return LOOSE_URL_PATTERN.search(text) is not None


def strip_url(text: str, url: str | None) -> str:
    """Remove the first occurrence of *url* from *text* and trim the result.

    Used to turn a chat message into the bare user query once its URL has
    been resolved separately.
    """
    if not url:
        return text.strip()
    return text.replace(url, "", 1).strip()
