"""Investment aggregation — per-investor counts keyed by combination label.

Each distinct combination is queried once.  Rows for the same investor under
the same combination are summed.  Queries are independent and may be fanned
out over a thread pool; results are always merged in combination order, so
investors keep the order in which they were first discovered.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor

from src.investor_match.dataset import InvestmentDataset
from src.investor_match.models import Combination, InvestmentHit

logger = logging.getLogger(__name__)

InvestorCounts = dict[str, dict[str, int]]


def _unique(combinations: list[Combination]) -> list[Combination]:
    seen: dict[str, Combination] = {}
    for combo in combinations:
        seen.setdefault(combo.label, combo)
    return list(seen.values())


def _query(dataset: InvestmentDataset, combo: Combination) -> list[InvestmentHit]:
    hits = dataset.find(combo.vertical, combo.stage, combo.country)
    logger.debug("%s: %d rows", combo.label, len(hits))
    return hits


def merge_hits(
    counts: InvestorCounts,
    combo: Combination,
    hits: list[InvestmentHit],
) -> InvestorCounts:
    for hit in hits:
        per_combo = counts.setdefault(hit.investor_id, {})
        per_combo[combo.label] = per_combo.get(combo.label, 0) + hit.investments
    return counts


def aggregate(
    combinations: list[Combination],
    dataset: InvestmentDataset,
    max_workers: int = 1,
) -> InvestorCounts:
    """Query every combination and accumulate investor -> {label: count}.

    An empty result means no investor matched; it is not an error.
    """
    unique = _unique(combinations)
    if max_workers > 1 and len(unique) > 1:
        with ThreadPoolExecutor(max_workers=min(max_workers, len(unique))) as pool:
            results = list(pool.map(lambda c: _query(dataset, c), unique))
    else:
        results = [_query(dataset, c) for c in unique]

    counts: InvestorCounts = {}
    for combo, hits in zip(unique, results):
        merge_hits(counts, combo, hits)

    logger.info(
        "Aggregated %d combinations: %d investors, %d rows",
        len(unique), len(counts), sum(len(h) for h in results),
    )
    return counts
