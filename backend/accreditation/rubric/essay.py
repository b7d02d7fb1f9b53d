"""Word counting for essay answers."""

from __future__ import annotations

import html
import re
from typing import Protocol

_TAG_PATTERN = re.compile(r"<[^>]*>")


class WordLimited(Protocol):
    max_words: int


def strip_markup(text: str) -> str:
    """Drop HTML tags and decode entities, keeping tag boundaries as spaces."""
    return html.unescape(_TAG_PATTERN.sub(" ", text))


def count_words(answer_text: str) -> int:
    return len(strip_markup(answer_text).split())


def validate_word_count(essay: WordLimited, answer_text: str) -> bool:
    """True when the answer fits within the essay question's word limit."""
    return count_words(answer_text) <= essay.max_words
