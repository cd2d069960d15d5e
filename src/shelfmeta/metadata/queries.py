# ABOUTME: Builds progressively relaxed search queries from a book's title and authors.
# ABOUTME: Repairs mangled titles (CamelCase, underscores, concatenated words) before querying.

import re
from dataclasses import dataclass

import wordninja

# Minimum length for a spaceless string to be considered "concatenated" and worth splitting.
# Shorter strings (e.g. "Dune", "1984") are left alone.
_MIN_CONCAT_LENGTH = 8

# Single-token fallbacks shorter than this are too generic to search on.
MIN_TOKEN_LENGTH = 4

_CAMEL_CASE_RE = re.compile(r"[a-z][A-Z]")
_CAMEL_LOWER_UPPER_RE = re.compile(r"([a-z\d])([A-Z])")
_CAMEL_UPPER_SEQUENCE_RE = re.compile(r"([A-Z]+)([A-Z][a-z])")
_LETTER_DIGIT_RE = re.compile(r"([a-zA-Z])(\d)")
_DIGIT_LETTER_RE = re.compile(r"(\d)([a-zA-Z])")
_SEPARATOR_RE = re.compile(r"[-_]")
_NON_QUERY_CHARS_RE = re.compile(r"[^A-Za-z0-9\s]")
_WHITESPACE_RE = re.compile(r"\s+")
_ISBN_CHARS_RE = re.compile(r"[^0-9Xx]")

STOP_WORDS = frozenset(
    {
        "the",
        "a",
        "an",
        "of",
        "and",
        "in",
        "on",
        "at",
        "to",
        "for",
        "by",
        "with",
        "from",
        "is",
        "was",
        "are",
        "were",
        "be",
        "been",
        "book",
        "novel",
        "volume",
        "edition",
    }
)


@dataclass(frozen=True)
class QueryAttempt:
    """One search query plus the label used for it in notes."""

    query: str
    label: str


def normalize_isbn(value: str | None) -> str | None:
    """Strip everything but digits and X; None when nothing is left."""
    if not value:
        return None
    cleaned = _ISBN_CHARS_RE.sub("", value).upper()
    return cleaned or None


def _needs_normalization(text: str) -> bool:
    """Check whether a title string looks mangled and needs normalization."""
    text = text.strip()
    if not text:
        return False

    if "_" in text:
        return True

    if _CAMEL_CASE_RE.search(text):
        return True

    segments = text.split("-") if "-" in text else [text]
    return any(" " not in seg and len(seg) >= _MIN_CONCAT_LENGTH for seg in segments)


def _split_camel_case(text: str) -> list[str]:
    """Split "TheWayOfKings" or "Fahrenheit451" into words."""
    result = _CAMEL_LOWER_UPPER_RE.sub(r"\1_SPLIT_\2", text)
    result = _CAMEL_UPPER_SEQUENCE_RE.sub(r"\1_SPLIT_\2", result)
    result = _LETTER_DIGIT_RE.sub(r"\1_SPLIT_\2", result)
    result = _DIGIT_LETTER_RE.sub(r"\1_SPLIT_\2", result)

    parts = [p for p in result.split("_SPLIT_") if p]
    return parts if parts else [text]


def split_concatenated(text: str) -> str:
    """Split a concatenated/mangled title into space-separated words.

    Well-formed titles are returned unchanged. Otherwise the text is split on
    hyphens and underscores, then on CamelCase boundaries, and any remaining
    long all-lowercase run is split with wordninja's unigram model.
    """
    if not _needs_normalization(text):
        return text

    words: list[str] = []
    for segment in _SEPARATOR_RE.split(text):
        segment = segment.strip()
        if not segment:
            continue
        for part in _split_camel_case(segment):
            if part.islower() and len(part) >= _MIN_CONCAT_LENGTH:
                words.append(" ".join(wordninja.split(part)) or part)
            else:
                words.append(part)

    return " ".join(words)


def clean_title(title: str | None) -> str:
    """Title reduced to plain words suitable for a keyword search."""
    if not title:
        return ""
    repaired = split_concatenated(title.strip())
    stripped = _NON_QUERY_CHARS_RE.sub(" ", repaired)
    return _WHITESPACE_RE.sub(" ", stripped).strip()


def significant_tokens(title: str) -> list[str]:
    """Title words that are not stop words and are long enough to search on."""
    tokens: list[str] = []
    for word in clean_title(title).split():
        if word.lower() in STOP_WORDS or len(word) < MIN_TOKEN_LENGTH:
            continue
        if word.lower() not in (t.lower() for t in tokens):
            tokens.append(word)
    return tokens


def build_title_attempts(title: str | None, authors: list[str] | None = None) -> list[QueryAttempt]:
    """Ordered title queries, most specific first.

    Order: title with the first two authors, title alone, the leading two
    significant words, then each significant word on its own. Duplicate
    query strings are dropped, keeping the first occurrence.
    """
    cleaned = clean_title(title)
    if not cleaned:
        return []

    candidates: list[QueryAttempt] = []
    author_bits = " ".join(a.strip() for a in (authors or [])[:2] if a and a.strip())
    if author_bits:
        candidates.append(QueryAttempt(f"{cleaned} {author_bits}", "title+author lookup"))
    candidates.append(QueryAttempt(cleaned, "title lookup"))

    tokens = significant_tokens(cleaned)
    if len(tokens) >= 2:
        candidates.append(QueryAttempt(" ".join(tokens[:2]), "title bigram fallback"))
    for token in tokens:
        candidates.append(QueryAttempt(token, f"title token fallback ({token})"))

    seen: set[str] = set()
    attempts: list[QueryAttempt] = []
    for attempt in candidates:
        key = attempt.query.lower()
        if key in seen:
            continue
        seen.add(key)
        attempts.append(attempt)
    return attempts
