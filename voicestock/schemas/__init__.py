"""
Schema definitions shared by capture and matching.
"""

from .catalog import (
    Product,
    Catalog,
    build_catalog,
    load_catalog,
    project_catalog,
    categories,
    filter_by_category
)
from .match_result import MatchResult, ScoredCandidate, normalize_result, coerce_quantity

__all__ = [
    "Product",
    "Catalog",
    "build_catalog",
    "load_catalog",
    "project_catalog",
    "categories",
    "filter_by_category",
    "MatchResult",
    "ScoredCandidate",
    "normalize_result",
    "coerce_quantity"
]
