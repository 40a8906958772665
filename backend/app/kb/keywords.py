"""Keyword extraction for literal knowledge-base matching."""
import re

STOP_WORDS = frozenset({
    # articles
    "the", "a", "an",
    # conjunctions
    "and", "or", "but",
    # prepositions
    "in", "on", "at", "to", "for", "of", "with",
    # auxiliaries / modals
    "is", "are", "was", "were", "be", "been", "have", "has", "had",
    "do", "does", "did", "will", "would", "could", "should", "may", "might", "can",
    # pronouns / determiners
    "i", "you", "we", "they", "he", "she", "it",
    "this", "that", "these", "those",
})

MIN_KEYWORD_LENGTH = 4

_PUNCTUATION = re.compile(r"[^\w\s]")


def extract_keywords(text: str, max_keywords: int = 5) -> list[str]:
    """
    Extract salient terms from free text.

    Lower-cases, strips punctuation and splits on whitespace, then keeps
    tokens longer than three characters that are not stop words.

    Args:
        text: Input text (usually the latest guest message)
        max_keywords: Maximum number of keywords to return

    Returns:
        First ``max_keywords`` unique keywords in order of first appearance
    """
    if not text or max_keywords <= 0:
        return []

    words = _PUNCTUATION.sub("", text.lower()).split()

    keywords: list[str] = []
    for word in words:
        if len(word) < MIN_KEYWORD_LENGTH or word in STOP_WORDS or word in keywords:
            continue
        keywords.append(word)
        if len(keywords) == max_keywords:
            break

    return keywords
