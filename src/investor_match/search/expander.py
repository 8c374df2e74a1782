"""Candidate expansion — every (vertical, stage) pair at the mapped country."""

from __future__ import annotations

from src.investor_match.models import Combination, VocabularyMapping


def expand(mapping: VocabularyMapping) -> list[Combination]:
    """Cartesian product, verticals outer and stages inner, in mapping order."""
    return [
        Combination(vertical=vertical, stage=stage, country=mapping.mapped_country)
        for vertical in mapping.mapped_verticals
        for stage in mapping.mapped_stage
    ]
