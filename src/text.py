"""Shared text helpers for tokenizing queries and documents."""

import re

STOP_WORDS = frozenset({
    "the", "a", "an", "is", "are", "was", "were", "be", "been",
    "being", "have", "has", "had", "do", "does", "did", "will",
    "would", "could", "should", "may", "might", "must", "shall",
    "can", "need", "to", "of", "in", "for", "on", "with", "at", "by",
    "from", "as", "into", "through", "during", "before", "after",
    "above", "below", "between", "under", "again", "further", "then",
    "once", "here", "there", "when", "where", "why", "how", "all",
    "each", "few", "more", "most", "other", "some", "such", "no",
    "nor", "not", "only", "own", "same", "so", "than", "too", "very",
    "just", "and", "but", "if", "or", "because", "until", "while",
    "what", "which", "who", "whom", "this", "that", "these", "those",
    "am", "about", "any", "its", "it", "their", "them", "they", "our",
    "we", "you", "your", "his", "her", "she", "he", "i", "me", "my",
})

_TOKEN_RE = re.compile(r"[a-z0-9]+(?:[&.-][a-z0-9]+)*")
_WORD_STRIP = "?.,!\"'()[]{}:;"


def tokenize(text: str) -> list[str]:
    """Lowercase alphanumeric tokens in reading order."""
    return _TOKEN_RE.findall(text.lower())


def content_terms(text: str) -> list[str]:
    """Tokens with stop words removed, deduplicated in order.

    Falls back to every token when the text is made only of stop words.
    """
    tokens = tokenize(text)
    terms = [t for t in tokens if t not in STOP_WORDS]
    if not terms:
        terms = tokens
    return list(dict.fromkeys(terms))


def strip_word(word: str) -> str:
    """Strip surrounding punctuation from a whitespace-delimited word."""
    return word.strip(_WORD_STRIP)


def normalize_whitespace(text: str) -> str:
    """Collapse runs of whitespace and trim."""
    return " ".join(text.split())


def truncate(text: str, limit: int = 200) -> str:
    """Truncate text to ``limit`` characters with an ellipsis."""
    if len(text) <= limit:
        return text
    return text[: limit - 3].rstrip() + "..."


def content_tokens(text: str) -> list[str]:
    """Tokens with stop words removed, repeats kept."""
    return [t for t in tokenize(text) if t not in STOP_WORDS]
