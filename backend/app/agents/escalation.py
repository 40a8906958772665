"""Keyword-based escalation detection for guest messages."""
from typing import Sequence


def matched_keywords(text: str, keywords: Sequence[str]) -> list[str]:
    """Return the keywords (as configured) found in ``text``, case-insensitively."""
    text_lower = (text or "").lower()
    matches = []
    for keyword in keywords:
        keyword_clean = keyword.strip().lower()
        if keyword_clean and keyword_clean in text_lower:
            matches.append(keyword.strip())
    return matches


def is_escalated(text: str, keywords: Sequence[str]) -> bool:
    """True if any keyword is a substring of the lower-cased text."""
    return bool(matched_keywords(text, keywords))
