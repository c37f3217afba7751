"""
Transcript-to-product matching.

Components:
- ProductScorer: deterministic local scoring, always available
- RemoteMatcher: one AI backend call, categorized failures
- MatchResolver: the fallback chain across both
"""

from .quantity import extract_quantity, parse_chinese_numeral
from .scorer import ProductScorer, match_locally, CONFIDENT_SCORE, LOCAL_SUGGESTION_LIMIT
from .sanitize import clean_json_text, parse_json_object
from .remote import RemoteMatcher, REMOTE_SUGGESTION_LIMIT
from .resolver import MatchResolver, Resolution

__all__ = [
    "extract_quantity",
    "parse_chinese_numeral",
    "ProductScorer",
    "match_locally",
    "CONFIDENT_SCORE",
    "LOCAL_SUGGESTION_LIMIT",
    "clean_json_text",
    "parse_json_object",
    "RemoteMatcher",
    "REMOTE_SUGGESTION_LIMIT",
    "MatchResolver",
    "Resolution"
]
