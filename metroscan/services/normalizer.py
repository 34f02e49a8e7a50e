"""
Value normalization and similarity helpers.

Two similarity metrics live here and they are not interchangeable:
- similarity(): token overlap for comparing free text
- edit_similarity(): Levenshtein ratio, used by the transfer detector when
  two stations share a label

canonical_value() defines when two stations are the same fact; station keys
are built from it.
"""

import re
from urllib.parse import urlparse


_NON_WORD = re.compile(r"[^\w\s]")
_WHITESPACE = re.compile(r"\s+")
_NON_DIGIT = re.compile(r"\D")


def normalize_value(value: str) -> str:
    """Lowercase, drop punctuation, collapse whitespace."""
    value = _NON_WORD.sub("", value.lower())
    return _WHITESPACE.sub(" ", value).strip()


def normalize_phone(phone: str) -> str:
    """Digits only, last 10 (drops country prefixes)."""
    return _NON_DIGIT.sub("", phone)[-10:]


def normalize_email(email: str) -> str:
    return email.lower().strip()


def canonical_value(label: str, value: str) -> str:
    """Comparison form of a station value.

    Phones compare by their last ten digits and emails case-insensitively;
    everything else by normalize_value (raw lowercase when that is empty).
    """
    kind = label.strip().lower()
    if kind == "phone":
        digits = normalize_phone(value)
        if digits:
            return digits
    elif kind == "email":
        return normalize_email(value)
    return normalize_value(value) or value.strip().lower()


def normalize_url(url: str) -> str:
    """Reduce a URL to its lowercase path without trailing slashes.

    Strings that are not absolute URLs are lowercased and trimmed.
    """
    try:
        parsed = urlparse(url.strip())
    except ValueError:
        return url.lower().strip()
    if not parsed.scheme or not parsed.netloc:
        return url.lower().strip()
    return parsed.path.rstrip("/").lower()


def tokenize(text: str) -> list[str]:
    """Split normalized text into tokens longer than two characters."""
    return [t for t in normalize_value(text).split(" ") if len(t) > 2]


def similarity(a: str, b: str) -> float:
    """Token overlap score in [0, 1].

    Counts tokens of ``b`` present in ``a`` relative to the longer token list.
    """
    tokens_a = tokenize(a)
    tokens_b = tokenize(b)
    if not tokens_a or not tokens_b:
        return 0.0
    set_a = set(tokens_a)
    shared = [t for t in tokens_b if t in set_a]
    return len(shared) / max(len(tokens_a), len(tokens_b))


def levenshtein_distance(a: str, b: str) -> int:
    """Classic edit distance (insert, delete, substitute)."""
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            cost = 0 if char_a == char_b else 1
            current.append(min(
                current[j - 1] + 1,
                previous[j] + 1,
                previous[j - 1] + cost,
            ))
        previous = current
    return previous[-1]


def edit_similarity(a: str, b: str) -> float:
    """Levenshtein ratio: (len(longer) - distance) / len(longer)."""
    longer, shorter = (a, b) if len(a) > len(b) else (b, a)
    if not longer:
        return 1.0
    return (len(longer) - levenshtein_distance(longer, shorter)) / len(longer)
