"""
Normalization package.

Reconciles the differently shaped records returned by the admin APIs into
one canonical model per resource.
"""

from .entities import CanonicalEntity, normalize, normalize_many
from .pagination import PaginationMeta, normalize_pagination

__all__ = [
    "CanonicalEntity",
    "normalize",
    "normalize_many",
    "PaginationMeta",
    "normalize_pagination",
]
