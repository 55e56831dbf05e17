"""Fuzzy string matching used to compare extracted and retrieved metadata.

Every function here is total: an empty input scores 0 rather than raising,
and strings equal after normalization score 1.
"""

import re

from rapidfuzz.distance import Levenshtein

_NON_WORD = re.compile(r"[^\w\s]")
_WHITESPACE = re.compile(r"\s+")
_LEADING_ARTICLE = re.compile(r"^(the|a|an)\s+")
_ET_AL = re.compile(r"^et\s*al\.?$", re.IGNORECASE)
_AUTHOR_SEPARATORS = ["; ", ", and ", " and ", ", ", ";"]

FUZZY_TOKEN_THRESHOLD = 0.8


def normalize(text: str) -> str:
    """Lowercase, turn punctuation into spaces and collapse whitespace."""
    if not text:
        return ""
    text = _NON_WORD.sub(" ", text.lower())
    return _WHITESPACE.sub(" ", text).strip()


def title_normalize(text: str) -> str:
    """Like normalize(), additionally dropping one leading article."""
    if not text:
        return ""
    text = _LEADING_ARTICLE.sub("", text.lower().strip())
    return normalize(text)


def edit_similarity(a: str, b: str) -> float:
    """1 - Levenshtein distance / longer length, on normalized strings."""
    if not a or not b:
        return 0.0
    na, nb = normalize(a), normalize(b)
    if na == nb:
        return 1.0
    if not na or not nb:
        return 0.0
    distance = Levenshtein.distance(na, nb)
    return 1.0 - distance / max(len(na), len(nb))


def _tokens(text: str) -> list[str]:
    return [t for t in normalize(text).split() if len(t) > 2]


def _matched_weight(source: set[str], target: set[str]) -> float:
    total = 0.0
    for token in source:
        if token in target:
            total += 1.0
            continue
        if len(token) <= 4:
            continue
        best = 0.0
        for other in target:
            if len(other) > 4:
                sim = edit_similarity(token, other)
                if sim > FUZZY_TOKEN_THRESHOLD and sim > best:
                    best = sim
        total += best
    return total


def token_similarity(a: str, b: str) -> float:
    """Share of the token union that is matched exactly or fuzzily."""
    ta, tb = set(_tokens(a)), set(_tokens(b))
    if not ta or not tb:
        return 0.0
    union = len(ta | tb)
    matched = max(_matched_weight(ta, tb), _matched_weight(tb, ta))
    return min(matched / union, 1.0)


def combined_similarity(a: str, b: str) -> float:
    return max(edit_similarity(a, b), token_similarity(a, b))


def title_similarity(a: str, b: str) -> float:
    """Title comparison tolerant of articles, punctuation and truncation."""
    if not a or not b:
        return 0.0
    na, nb = title_normalize(a), title_normalize(b)
    if na == nb:
        return 1.0
    if not na or not nb:
        return 0.0
    if na in nb or nb in na:
        shorter, longer = sorted((na, nb), key=len)
        return len(shorter) / len(longer)
    return combined_similarity(a, b)


# ---------------------------------------------------------------------------
# Author names
# ---------------------------------------------------------------------------


def _is_initial(token: str) -> bool:
    letters = token.replace(".", "")
    return 0 < len(letters) <= 2 and letters.isalpha()


def extract_last_name(name: str) -> str:
    """Guess the surname in "Last, First", "Last I." or "I. Last" forms."""
    tokens = name.strip().split()
    if not tokens:
        return ""
    if len(tokens) == 1:
        return tokens[0].strip(",.").lower()
    if tokens[0].endswith(","):
        return tokens[0].rstrip(",").lower()
    if _is_initial(tokens[-1]):
        return tokens[0].strip(",.").lower()
    return tokens[-1].strip(",.").lower()


def _last_names(authors: list[str]) -> set[str]:
    return {n for n in (extract_last_name(a) for a in authors if a) if n}


def author_list_overlap(a: list[str], b: list[str]) -> float:
    """|common surnames| / size of the smaller surname set."""
    la, lb = _last_names(a or []), _last_names(b or [])
    if not la or not lb:
        return 0.0
    return len(la & lb) / min(len(la), len(lb))


def parse_authors(text: str) -> list[str]:
    """Split an author string on comma, semicolon and "and" separators."""
    if not text:
        return []
    parts = [text]
    for separator in _AUTHOR_SEPARATORS:
        split: list[str] = []
        for part in parts:
            split.extend(part.split(separator))
        parts = split
    return [p.strip() for p in parts if p.strip() and not _ET_AL.match(p.strip())]
