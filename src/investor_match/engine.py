"""Top-level orchestrator — ties all components together.

Pipeline:
  0. (optional) Extract the profile from research text (LLM)
  1. Load the vocabulary (distinct sector / stage / country values)
  2. Resolve the startup profile onto it           (LLM or rule-based classifier)
  3. Expand verticals x stages into combinations   (deterministic)
  4. Query and aggregate investments per investor  (dataset, optional fan-out)
  5. Join investor profiles, rank and bound        (dataset)
  6. Return the response envelope

Any failure aborts the request; no partial results are returned.
"""

from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from typing import Callable, Generator

from anthropic import Anthropic

from src.investor_match.config import Settings, settings as default_settings
from src.investor_match.dataset import DATA_DIR, InvestmentDataset
from src.investor_match.errors import MatchingError
from src.investor_match.extraction.profile_extractor import extract_startup_profile
from src.investor_match.models import MatchResponse, StartupProfile
from src.investor_match.ranking.ranker import rank
from src.investor_match.resolution.llm_classifier import LLMClassifier
from src.investor_match.resolution.resolver import (
    Classifier,
    VocabularyResolver,
    load_vocabulary,
)
from src.investor_match.resolution.rule_classifier import RuleClassifier
from src.investor_match.search.aggregator import aggregate
from src.investor_match.search.expander import expand

logger = logging.getLogger(__name__)


@contextmanager
def _stage(name: str) -> Generator[None, None, None]:
    """Tag any pipeline error raised inside the block with the stage name."""
    try:
        yield
    except MatchingError as exc:
        exc.stage = name
        raise


def load_sample_profile() -> StartupProfile:
    path = DATA_DIR / "sample_startup.json"
    with open(path) as f:
        return StartupProfile(**json.load(f))


def load_profile_from_json(data: dict) -> StartupProfile:
    return StartupProfile(**data)


def build_classifier(config: Settings | None = None) -> Classifier:
    config = config or default_settings
    if config.classifier == "rules":
        return RuleClassifier(
            semantic=config.semantic_matching,
            seed_threshold=config.seed_ask_threshold,
            thresholds=config.stage_ask_thresholds,
        )
    return LLMClassifier()


class InvestorMatcher:
    def __init__(
        self,
        dataset: InvestmentDataset,
        classifier: Classifier | None = None,
        config: Settings | None = None,
        client: Anthropic | None = None,
    ) -> None:
        self.config = config or default_settings
        self.dataset = dataset
        self._client = client
        self.resolver = VocabularyResolver(
            classifier or build_classifier(self.config),
            seed_threshold=self.config.seed_ask_threshold,
            thresholds=self.config.stage_ask_thresholds,
        )

    @property
    def client(self) -> Anthropic:
        if self._client is None:
            self._client = Anthropic(api_key=self.config.anthropic_api_key)
        return self._client

    def extract_profile(self, general_info: str, website_content: str = "") -> StartupProfile:
        """Turn upstream research text into a ``StartupProfile``."""
        with _stage("extract"):
            return extract_startup_profile(self.client, general_info, website_content)

    def match_from_research(
        self,
        general_info: str,
        website_content: str = "",
        progress_callback: Callable[[str, float], None] | None = None,
    ) -> tuple[StartupProfile, MatchResponse]:
        """Extract a profile from research text, then match it.

        Extraction failures abort the request before any dataset access.
        """
        if progress_callback:
            progress_callback("Extracting startup profile...", 0.0)
        profile = self.extract_profile(general_info, website_content)
        return profile, self.match_investors(profile, progress_callback)

    def match_investors(
        self,
        profile: StartupProfile,
        progress_callback: Callable[[str, float], None] | None = None,
    ) -> MatchResponse:
        def _progress(label: str, frac: float) -> None:
            if progress_callback:
                progress_callback(label, frac)

        # Step 1: Vocabulary + resolution
        _progress("Resolving startup profile...", 0.0)
        with _stage("vocabulary"):
            vocabulary = load_vocabulary(self.dataset)
        with _stage("resolve"):
            mapping = self.resolver.resolve(profile, vocabulary)

        # Step 2: Candidate combinations
        _progress("Expanding combinations...", 0.3)
        combinations = expand(mapping)

        # Step 3: Aggregate investments
        _progress("Querying investments...", 0.4)
        with _stage("aggregate"):
            counts = aggregate(
                combinations, self.dataset, max_workers=self.config.aggregation_workers,
            )

        # Step 4: Rank
        _progress("Ranking investors...", 0.8)
        with _stage("rank"):
            ranked = rank(counts, self.dataset, limit=self.config.max_results)

        _progress("Complete", 1.0)
        logger.info(
            "Match complete for %s: %d combinations, %d investors found, "
            "%d returned (truncated=%s)",
            profile.company_name, len(combinations), ranked.total_found,
            len(ranked.matches), ranked.truncated,
        )
        return MatchResponse(
            company_name=profile.company_name,
            mapping=mapping,
            combinations=len(combinations),
            matches=ranked.matches,
            total_found=ranked.total_found,
            truncated=ranked.truncated,
        )


def match_investors(
    profile: StartupProfile,
    dataset: InvestmentDataset,
    classifier: Classifier | None = None,
) -> MatchResponse:
    return InvestorMatcher(dataset, classifier).match_investors(profile)
