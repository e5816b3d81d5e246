"""Text helpers: slugs, HTML stripping, reading time and sanitising."""

from __future__ import annotations

import html
import math
import re

import bleach

WORDS_PER_MINUTE = 200
EXCERPT_LENGTH = 160

_NON_ALNUM = re.compile(r"[^a-z0-9]+")
_TAGS = re.compile(r"<[^>]*>")
_WHITESPACE = re.compile(r"\s+")

# Markup allowed in comments; everything else is stripped.
COMMENT_TAGS = {"b", "i", "em", "strong", "a", "p", "br"}
COMMENT_ATTRIBUTES = {"a": ["href", "target"]}


def slugify(value: str) -> str:
    """Lower-case ``value`` and collapse every non-alphanumeric run into ``-``."""
    return _NON_ALNUM.sub("-", value.lower()).strip("-")


def strip_html(value: str) -> str:
    """Return the plain text of an HTML fragment with whitespace collapsed."""
    text = html.unescape(_TAGS.sub(" ", value))
    return _WHITESPACE.sub(" ", text).strip()


def count_words(value: str) -> int:
    text = strip_html(value)
    return len(text.split(" ")) if text else 0


def reading_time(word_count: int) -> int:
    """Minutes needed to read ``word_count`` words, never less than one."""
    return max(1, math.ceil(word_count / WORDS_PER_MINUTE))


def make_excerpt(content: str, length: int = EXCERPT_LENGTH) -> str:
    text = strip_html(content)
    if len(text) <= length:
        return text
    return text[:length].rstrip() + "..."


def title_case(value: str) -> str:
    """Normalise a category name: trimmed, single-spaced, each word capitalised."""
    words = _WHITESPACE.sub(" ", value).strip().split(" ")
    return " ".join(word[:1].upper() + word[1:].lower() for word in words if word)


def sanitize_comment(value: str) -> str:
    """Strip any markup outside :data:`COMMENT_TAGS`, keeping its text."""
    return bleach.clean(value, tags=COMMENT_TAGS, attributes=COMMENT_ATTRIBUTES, strip=True).strip()
