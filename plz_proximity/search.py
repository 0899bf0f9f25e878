#!/usr/bin/env python3
"""
PLZ Geosearch — Name Search Ranking

Ranks postal-code records by how well their place name matches a free-text
query.  Used by the in-memory and JSON-lines stores; the PostgreSQL store
ranks with its own full-text index instead.

Dependencies:
    pip install rapidfuzz
"""

from __future__ import annotations

import re
import unicodedata
from typing import Any, Iterable

from rapidfuzz import fuzz

DEFAULT_SEARCH_LIMIT = 5
DEFAULT_MIN_SCORE = 60.0

# German umlauts are commonly typed as digraphs ("Muenchen")
_UMLAUTS = str.maketrans({"ä": "ae", "ö": "oe", "ü": "ue", "ß": "ss"})

_MULTI_SPACE = re.compile(r"\s+")
_NON_ALNUM = re.compile(r"[^a-z0-9\s]")


def normalize_place_name(name: str) -> str:
    """
    Normalize a place name for comparison.

    Steps:
        1. Lowercase, expand umlauts
        2. Unicode NFKD normalisation (strip remaining accents)
        3. Replace punctuation with spaces, collapse whitespace
    """
    if not name:
        return ""

    text = name.lower().translate(_UMLAUTS)
    text = unicodedata.normalize("NFKD", text)
    text = "".join(c for c in text if not unicodedata.combining(c))
    text = _NON_ALNUM.sub(" ", text)
    return _MULTI_SPACE.sub(" ", text).strip()


def name_match_score(query: str, name: str) -> float:
    """
    Relevance of ``name`` for ``query`` in [0, 100].

    Exact normalized matches score 100.  Otherwise the better of token-set
    ratio (word order / extra words) and partial ratio (prefix typing,
    "Frankf" → "Frankfurt am Main").
    """
    norm_q = normalize_place_name(query)
    norm_n = normalize_place_name(name)
    if not norm_q or not norm_n:
        return 0.0
    if norm_q == norm_n:
        return 100.0
    return max(fuzz.token_set_ratio(norm_q, norm_n), fuzz.partial_ratio(norm_q, norm_n))


def rank_by_name(
    query: str,
    documents: Iterable[dict[str, Any]],
    limit: int = DEFAULT_SEARCH_LIMIT,
    *,
    min_score: float = DEFAULT_MIN_SCORE,
) -> list[dict[str, Any]]:
    """
    Return up to ``limit`` documents ranked by name relevance.

    Each result is a copy without ``nearest`` and with a ``score`` key.
    Ties keep the input order.
    """
    scored = []
    for doc in documents:
        score = name_match_score(query, doc.get("name") or "")
        if score >= min_score:
            hit = {k: v for k, v in doc.items() if k != "nearest"}
            hit["score"] = round(score, 2)
            scored.append(hit)

    scored.sort(key=lambda d: d["score"], reverse=True)
    return scored[:limit]
