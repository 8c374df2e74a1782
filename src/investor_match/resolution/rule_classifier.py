"""Deterministic classifier — domain-model lookups, optional embedding fallback.

Verticals are matched lexically (exact, synonym, token overlap), then from
industries, then from sectors named in the intro.  With semantic matching on,
sentence-transformer similarity picks the closest entry when all of that
fails.  Stages come straight from the stage decision function.
"""

from __future__ import annotations

import logging
from typing import Any

from src.investor_match import embeddings
from src.investor_match.config import StageAskThresholds, settings
from src.investor_match.domain_model import (
    match_country,
    match_sectors,
    required_stages,
    sectors_mentioned,
)
from src.investor_match.errors import ResolutionFailed
from src.investor_match.models import StartupProfile, Vocabulary

logger = logging.getLogger(__name__)

MIN_SEMANTIC_SIMILARITY = 0.25


def _semantic_best(query: str, candidates: list[str]) -> str | None:
    if not query.strip() or not candidates:
        return None
    embeddings.fit(candidates)
    best, sim = embeddings.rank_by_similarity(query, candidates)[0]
    logger.debug("Semantic match %r -> %r (%.3f)", query[:60], best, sim)
    return best if sim >= MIN_SEMANTIC_SIMILARITY else None


class RuleClassifier:
    def __init__(
        self,
        *,
        semantic: bool | None = None,
        seed_threshold: float | None = None,
        thresholds: StageAskThresholds | None = None,
    ) -> None:
        self.semantic = settings.semantic_matching if semantic is None else semantic
        self.seed_threshold = (
            settings.seed_ask_threshold if seed_threshold is None else seed_threshold
        )
        self.thresholds = thresholds or settings.stage_ask_thresholds

    def _verticals(self, profile: StartupProfile, sectors: list[str]) -> list[str]:
        matched = match_sectors(list(profile.verticals), sectors)
        if not matched:
            matched = match_sectors(list(profile.industries), sectors)
        if not matched:
            matched = sectors_mentioned(profile.startup_intro, sectors)
        if not matched and self.semantic:
            query = ". ".join([*profile.verticals, profile.startup_intro])
            best = _semantic_best(query, sectors)
            matched = [best] if best else []
        return matched

    def _country(self, profile: StartupProfile, countries: list[str]) -> str | None:
        country = match_country(profile.startup_location, countries)
        if country is None and self.semantic:
            country = _semantic_best(profile.startup_location, countries)
        return country

    def classify(self, profile: StartupProfile, vocabulary: Vocabulary) -> dict[str, Any]:
        verticals = self._verticals(profile, vocabulary.sectors)
        if not verticals:
            raise ResolutionFailed(
                f"No sector matches verticals {list(profile.verticals)} of {profile.company_name}"
            )

        stages = required_stages(
            profile.fund_ask,
            profile.funding_stage,
            vocabulary.stages,
            seed_threshold=self.seed_threshold,
            thresholds=self.thresholds,
        )
        if not stages:
            raise ResolutionFailed(
                f"No recognisable stage among {vocabulary.stages}"
            )

        country = self._country(profile, vocabulary.countries)
        if country is None:
            raise ResolutionFailed(
                f"No country matches location {profile.startup_location!r}"
            )

        return {
            "mapped_verticals": verticals,
            "mapped_stage": stages,
            "mapped_country": country,
        }
