"""
Transformers Package

Declarative field rules and the listing normalizer.
"""
from .field_rules import FIELD_RULES, build_array, title_case
from .listing_normalizer import ListingNormalizer, normalize

__all__ = [
    "FIELD_RULES",
    "ListingNormalizer",
    "build_array",
    "normalize",
    "title_case",
]
