"""Shared category arithmetic for the two assessment tracks."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from types import MappingProxyType


def category_averages(
    weighted_scores: Mapping[str, Sequence[tuple[float, float]]],
) -> MappingProxyType[str, float]:
    """Reduce (score, weight) pairs per category to a weighted mean per category.

    Categories are visited in sorted order so repeated runs sum identically.
    """
    averages: dict[str, float] = {}
    for category in sorted(weighted_scores):
        pairs = weighted_scores[category]
        total_weight = sum(weight for _, weight in pairs)
        if total_weight <= 0.0:
            continue
        averages[category] = sum(score * weight for score, weight in pairs) / total_weight
    return MappingProxyType(averages)


def combine_categories(
    category_scores: Mapping[str, float],
    category_weights: Mapping[str, float],
) -> float | None:
    """Weighted track score over present categories only.

    Weights of absent categories are redistributed proportionally by dividing
    by the weight actually present, so a missing category never counts as zero.
    """
    present = [
        category
        for category in sorted(category_scores)
        if category_weights.get(category, 0.0) > 0.0
    ]
    present_weight = sum(category_weights[category] for category in present)
    if present_weight <= 0.0:
        return None
    weighted = sum(category_weights[category] * category_scores[category] for category in present)
    return max(0.0, min(100.0, weighted / present_weight))


def completeness(present: Sequence[str], required: Sequence[str]) -> float:
    """Fraction of required categories with at least one assessment, capped at 1."""
    if not required:
        return 1.0 if present else 0.0
    found = len(set(required) & set(present))
    return min(1.0, found / len(set(required)))


def sample_sufficiency(sample_count: int, minimum: int) -> float:
    if minimum <= 0:
        return 1.0
    return min(1.0, sample_count / minimum)
