"""
Local product scorer.

Cheap, transparent, deterministic literal matching. It is the strategy that
is always available when the AI matchers are not, so it must never do I/O
and must give identical output for identical input.

Scoring (additive, per product):
- +100 product id occurs in the transcript
- +50  full product name occurs
- +5   first two characters of a name longer than two characters occur
- +10  name and transcript are prefixes of one another, or the name's base
       segment (before a trailing variant/size marker) occurs
"""

from __future__ import annotations

import re
from typing import Optional

from ..schemas.catalog import Catalog, Product
from ..schemas.match_result import MatchResult, ScoredCandidate, normalize_result
from .quantity import extract_quantity

ID_SCORE = 100
NAME_SCORE = 50
PARTIAL_SCORE = 5
BASE_SCORE = 10

CONFIDENT_SCORE = 40
LOCAL_SUGGESTION_LIMIT = 5

# Chinese-style names put the size/variant in ASCII after the base: 狗套S, 贴皮裙甲A黑
_LEADING_NON_ASCII = re.compile(r"[^a-z0-9]+")
# Space-separated names end with a size token: "dog collar xl", "tee 2xl", "bowl 500ml"
_SIZE_TOKEN = re.compile(r"^(?:x{0,3}[sml]|\d*xl|\d+[a-z]*)$")


def base_segment(name: str) -> str:
    """
    The part of a case-folded product name before its variant marker.

    >>> base_segment("狗套s")
    '狗套'
    >>> base_segment("dog collar xl")
    'dog collar'
    >>> base_segment("护膝")
    '护膝'
    """
    match = _LEADING_NON_ASCII.match(name)
    if match and 0 < match.end() < len(name):
        base = match.group().strip()
        if base:
            return base

    parts = name.rsplit(None, 1)
    if len(parts) == 2 and _SIZE_TOKEN.match(parts[1]):
        return parts[0]

    return name


def score_product(text: str, product: Product) -> int:
    """Score one product against an already case-folded transcript."""
    if not text:
        return 0

    name = product.name.casefold()
    product_id = product.id.casefold()
    score = 0

    if product_id and product_id in text:
        score += ID_SCORE

    if name in text:
        score += NAME_SCORE

    if len(name) > 2 and name[:2] in text:
        score += PARTIAL_SCORE

    base = base_segment(name)
    if name.startswith(text) or text.startswith(name) or (base and base in text):
        score += BASE_SCORE

    return score


class ProductScorer:
    """
    Ranks catalog products against a transcript.

    Usage:
        scorer = ProductScorer(suggestion_limit=5)
        result = scorer.match("两个狗套", catalog)
        result.suggestions  # ['D001S', 'D001M']
    """

    def __init__(
        self,
        suggestion_limit: int = LOCAL_SUGGESTION_LIMIT,
        confident_score: int = CONFIDENT_SCORE,
    ):
        self.suggestion_limit = suggestion_limit
        self.confident_score = confident_score

    def score(self, transcript: str, catalog: Catalog) -> list[ScoredCandidate]:
        """All products, best first; ties keep catalog order."""
        text = (transcript or "").casefold().strip()
        candidates = [
            ScoredCandidate(product=product, score=score_product(text, product))
            for product in catalog
        ]
        # sorted() is stable, so equal scores stay in catalog order
        return sorted(candidates, key=lambda c: c.score, reverse=True)

    def match(
        self,
        transcript: str,
        catalog: Catalog,
        limit: Optional[int] = None,
    ) -> MatchResult:
        """Score, then reduce to a MatchResult with a quantity guess."""
        ranked = self.score(transcript, catalog)
        cap = limit if limit is not None else self.suggestion_limit

        best = ranked[0] if ranked else None
        matched = best.product.id if best and best.score >= self.confident_score else None
        suggestions = [c.product.id for c in ranked if c.score > 0]

        return normalize_result(
            matched_product_id=matched,
            detected_quantity=extract_quantity(transcript or ""),
            suggestions=suggestions,
            limit=cap,
        )


def match_locally(transcript: str, catalog: Catalog, limit: int = LOCAL_SUGGESTION_LIMIT) -> MatchResult:
    """Convenience wrapper around ProductScorer with default thresholds."""
    return ProductScorer(suggestion_limit=limit).match(transcript, catalog)
