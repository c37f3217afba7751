"""
Match result schema shared by every strategy in the fallback chain.

Whatever produced it (remote AI or local scorer), a MatchResult obeys:
- suggestions contain no duplicates
- matched_product_id, when set, is suggestions[0]
- detected_quantity is a positive integer or None
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

from .catalog import Product


@dataclass
class ScoredCandidate:
    """A product with its local score. Only used to rank."""
    product: Product
    score: int = 0


@dataclass
class MatchResult:
    """Outcome of resolving one transcript."""
    matched_product_id: Optional[str] = None
    detected_quantity: Optional[int] = None
    suggestions: list[str] = field(default_factory=list)

    @property
    def is_confident(self) -> bool:
        return self.matched_product_id is not None

    @property
    def quantity_or_default(self) -> int:
        return self.detected_quantity or 1

    def to_dict(self) -> dict[str, Any]:
        """Wire shape used by the remote matchers' JSON contract."""
        return {
            "matchedProductId": self.matched_product_id,
            "detectedQuantity": self.detected_quantity,
            "suggestions": list(self.suggestions),
        }

    @classmethod
    def empty(cls) -> "MatchResult":
        return cls()


def coerce_quantity(value: Any) -> Optional[int]:
    """Accept ints, integral floats and numeric strings; anything else is None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
        try:
            value = float(value)
        except ValueError:
            return None
    if isinstance(value, float):
        if not value.is_integer():
            return None
        value = int(value)
    if isinstance(value, int) and value > 0:
        return value
    return None


def normalize_result(
    matched_product_id: Optional[str],
    detected_quantity: Any,
    suggestions: Iterable[Any],
    known_ids: Optional[set[str]] = None,
    limit: Optional[int] = None,
) -> MatchResult:
    """
    Build a MatchResult that satisfies the ordering invariants.

    Args:
        matched_product_id: Confident match, if any
        detected_quantity: Raw quantity (coerced to a positive int)
        suggestions: Ranked ids, may contain duplicates or junk
        known_ids: When given, ids outside this set are dropped
        limit: Maximum number of suggestions (matched id included)

    Returns:
        Normalized MatchResult
    """
    matched = str(matched_product_id).strip() if matched_product_id else None
    if matched and known_ids is not None and matched not in known_ids:
        matched = None

    ordered: list[str] = []
    seen: set[str] = set()
    if matched:
        ordered.append(matched)
        seen.add(matched)

    for item in suggestions:
        if item is None:
            continue
        product_id = str(item).strip()
        if not product_id or product_id in seen:
            continue
        if known_ids is not None and product_id not in known_ids:
            continue
        seen.add(product_id)
        ordered.append(product_id)

    if limit is not None and limit > 0:
        ordered = ordered[:limit]

    return MatchResult(
        matched_product_id=matched,
        detected_quantity=coerce_quantity(detected_quantity),
        suggestions=ordered,
    )
