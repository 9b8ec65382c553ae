"""Text utility functions for scripts and stock queries."""

import re
from collections import Counter
from typing import Optional

STOP_WORDS = frozenset(
    """
    a an the and or but if while of to in on at from by with for about into over after before
    between during under above across around through this that these those is are was were be been
    being have has had do does did can could should would may might will shall your you yours we our
    ours they their them he she it its as than then so very more most many much just also only even
    still yet not no nor all any each every some such own same too out up down off again once here
    there when where why how what which who whom get got make makes made let lets us me my i am
    new best great good top now today get right want need like one two
    """.split()
)

_WORD_RE = re.compile(r"[a-z0-9][a-z0-9'-]*")


def tokenize(text: str) -> list[str]:
    """Lower-case word tokens with surrounding punctuation stripped."""
    return [token.strip("'-") for token in _WORD_RE.findall((text or "").lower())]


def extract_keywords(text: str, limit: int = 5, min_length: int = 3) -> list[str]:
    """
    Extract the most frequent non-stop-word terms from text.

    Ties keep first-occurrence order so the result is deterministic.

    Args:
        text: Source text
        limit: Maximum number of terms to return
        min_length: Shortest term considered

    Returns:
        Up to ``limit`` keywords, most frequent first
    """
    terms = [t for t in tokenize(text) if len(t) >= min_length and t not in STOP_WORDS and not t.isdigit()]
    if not terms:
        return []
    counts = Counter(terms)
    first_seen = {}
    for position, term in enumerate(terms):
        first_seen.setdefault(term, position)
    ranked = sorted(counts, key=lambda term: (-counts[term], first_seen[term]))
    return ranked[:limit]


def normalize_category(category: Optional[str], default: str = "business") -> str:
    """Convert a free-form category into a slug such as ``coffee_shop``."""
    slug = str(category or "").lower().strip()
    slug = re.sub(r"\s+", "_", slug)
    slug = re.sub(r"[^a-z0-9_]", "", slug)
    return slug or default


def collapse_whitespace(text: Optional[str]) -> str:
    return re.sub(r"\s+", " ", str(text or "")).strip()
