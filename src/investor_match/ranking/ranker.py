"""Investor ranker — join counts with profiles, score, sort and bound."""

from __future__ import annotations

import logging

from src.investor_match.config import settings
from src.investor_match.dataset import InvestmentDataset
from src.investor_match.models import InvestorMatch, RankedInvestors
from src.investor_match.search.aggregator import InvestorCounts

logger = logging.getLogger(__name__)


def total_score(investment_counts: dict[str, int]) -> int:
    return sum(investment_counts.values())


def _valid_reference(ref: object) -> bool:
    return isinstance(ref, str) and bool(ref.strip())


def rank(
    counts: InvestorCounts,
    dataset: InvestmentDataset,
    limit: int | None = None,
) -> RankedInvestors:
    """Ranked matches, highest total investments first.

    Ties keep discovery order (the order of ``counts``).  Malformed or
    unknown investor references are dropped with a warning.
    """
    limit = settings.max_results if limit is None else limit

    refs = [ref for ref in counts if _valid_reference(ref)]
    malformed = len(counts) - len(refs)
    if malformed:
        logger.warning("Dropped %d malformed investor references", malformed)

    profiles = {p.id: p for p in dataset.find_by_ids(refs)}
    missing = [ref for ref in refs if ref not in profiles]
    if missing:
        logger.warning(
            "Dropped %d investor references with no profile: %s",
            len(missing), ", ".join(missing[:10]),
        )

    matches = [
        InvestorMatch(
            **profiles[ref].model_dump(),
            investment_counts=dict(counts[ref]),
            total_score=total_score(counts[ref]),
        )
        for ref in refs
        if ref in profiles
    ]
    matches.sort(key=lambda m: m.total_score, reverse=True)

    total = len(matches)
    truncated = total > limit
    if truncated:
        logger.info("Truncating %d matched investors to top %d", total, limit)
        matches = matches[:limit]

    return RankedInvestors(matches=matches, total_found=total, truncated=truncated)
