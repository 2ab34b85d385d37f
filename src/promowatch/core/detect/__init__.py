"""Change detection: diffing, similarity, and materiality."""

from .models import (
    ChangeResult,
    Promotion,
    PromotionChange,
    initial_result,
    to_promotions,
)
from .diff import (
    NO_CHANGES,
    build_result,
    detect_changes,
    generate_summary,
    promotions_equal,
)
from .similarity import (
    SimilarityComparators,
    is_date_similar,
    is_price_similar,
    is_text_similar,
    text_similarity,
)
from .materiality import (
    NO_MATERIAL_CHANGES,
    MaterialityFilter,
    filter_material_changes,
    is_material_change,
    is_material_promotion,
)

__all__ = [
    # Models
    "ChangeResult",
    "Promotion",
    "PromotionChange",
    "initial_result",
    "to_promotions",
    # Diff
    "NO_CHANGES",
    "build_result",
    "detect_changes",
    "generate_summary",
    "promotions_equal",
    # Similarity
    "SimilarityComparators",
    "is_date_similar",
    "is_price_similar",
    "is_text_similar",
    "text_similarity",
    # Materiality
    "NO_MATERIAL_CHANGES",
    "MaterialityFilter",
    "filter_material_changes",
    "is_material_change",
    "is_material_promotion",
]
