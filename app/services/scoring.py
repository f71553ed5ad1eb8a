"""
Weighted total score and validation status for an analysis
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Mapping

from app.schemas.analysis import (
    MAJOR_CONCERNS,
    NEEDS_REFINEMENT,
    READY_TO_VALIDATE,
)


# Core factors carry 60% of the total, supporting factors 40%
CATEGORY_WEIGHTS = {
    "market_opportunity": Decimal("0.25"),
    "competitive_advantage": Decimal("0.20"),
    "feasibility": Decimal("0.15"),
    "revenue_potential": Decimal("0.15"),
    "market_timing": Decimal("0.15"),
    "scalability": Decimal("0.10"),
}

READY_THRESHOLD = 70
REFINEMENT_THRESHOLD = 50


def compute_total_score(category_scores: Mapping[str, float]) -> int:
    """
    Weighted sum of the six category scores, rounded half up

    Args:
        category_scores: Score (0-100) per category name

    Returns:
        Integer total in [0, 100]

    Raises:
        KeyError: If a category is missing
    """
    weighted = sum(
        Decimal(str(category_scores[name])) * weight
        for name, weight in CATEGORY_WEIGHTS.items()
    )
    total = int(weighted.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    return max(0, min(100, total))


def validation_status_for(total_score: int) -> str:
    if total_score >= READY_THRESHOLD:
        return READY_TO_VALIDATE
    if total_score >= REFINEMENT_THRESHOLD:
        return NEEDS_REFINEMENT
    return MAJOR_CONCERNS
