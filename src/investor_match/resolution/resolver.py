"""Vocabulary resolution — map a startup profile onto the dataset's vocabulary.

The classifier (LLM or rule-based) only proposes a mapping.  This module
decodes the proposal into the strict ``VocabularyMapping`` schema, checks
every value against the vocabulary, and enforces the stage policy from the
domain model, so the contract holds whichever classifier is plugged in.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

from pydantic import ValidationError

from src.investor_match.config import StageAskThresholds, settings
from src.investor_match.dataset import InvestmentDataset
from src.investor_match.domain_model import order_stages, required_stages
from src.investor_match.errors import EmptyVocabulary, InvalidMapping, ResolutionFailed
from src.investor_match.models import StartupProfile, Vocabulary, VocabularyMapping

logger = logging.getLogger(__name__)


class Classifier(Protocol):
    def classify(self, profile: StartupProfile, vocabulary: Vocabulary) -> dict[str, Any]:
        ...


def load_vocabulary(dataset: InvestmentDataset) -> Vocabulary:
    return Vocabulary(
        sectors=dataset.distinct_values("sector"),
        stages=dataset.distinct_values("stage"),
        countries=dataset.distinct_values("country"),
    )


def check_vocabulary(vocabulary: Vocabulary) -> None:
    empty = [
        name for name, values in (
            ("sector", vocabulary.sectors),
            ("stage", vocabulary.stages),
            ("country", vocabulary.countries),
        )
        if not values
    ]
    if empty:
        raise EmptyVocabulary(f"No distinct values for: {', '.join(empty)}")


def decode_mapping(raw: Any) -> VocabularyMapping:
    """Strictly decode classifier output; anything malformed is rejected."""
    if isinstance(raw, VocabularyMapping):
        return raw
    if not isinstance(raw, dict):
        raise InvalidMapping(f"Classifier returned {type(raw).__name__}, expected an object")
    try:
        return VocabularyMapping.model_validate(raw)
    except ValidationError as exc:
        fields = ", ".join(".".join(str(p) for p in e["loc"]) for e in exc.errors())
        raise InvalidMapping(f"Malformed vocabulary mapping ({fields})") from exc


def validate_mapping(mapping: VocabularyMapping, vocabulary: Vocabulary) -> VocabularyMapping:
    """Non-empty and contained-in-vocabulary checks.  Duplicates are dropped."""
    verticals = list(dict.fromkeys(mapping.mapped_verticals))
    stages = list(dict.fromkeys(mapping.mapped_stage))

    if not verticals:
        raise ResolutionFailed("Classifier mapped no verticals")
    if not stages:
        raise ResolutionFailed("Classifier mapped no stages")

    unknown = (
        [v for v in verticals if v not in vocabulary.sectors]
        + [s for s in stages if s not in vocabulary.stages]
    )
    if mapping.mapped_country not in vocabulary.countries:
        unknown.append(mapping.mapped_country)
    if unknown:
        raise ResolutionFailed(f"Classifier returned out-of-vocabulary values: {unknown}")

    return VocabularyMapping(
        mapped_verticals=verticals,
        mapped_stage=stages,
        mapped_country=mapping.mapped_country,
    )


def enforce_stage_policy(
    mapping: VocabularyMapping,
    profile: StartupProfile,
    vocabulary: Vocabulary,
    *,
    seed_threshold: float,
    thresholds: StageAskThresholds,
) -> VocabularyMapping:
    """Apply the fund-ask stage rule on top of whatever the classifier chose."""
    required = required_stages(
        profile.fund_ask,
        profile.funding_stage,
        vocabulary.stages,
        seed_threshold=seed_threshold,
        thresholds=thresholds,
    )
    if not required:
        return mapping

    proposed = list(mapping.mapped_stage)
    if profile.fund_ask <= seed_threshold:
        stages = required
    else:
        stages = order_stages(proposed + [s for s in required if s not in proposed])

    if set(stages) != set(proposed):
        logger.warning(
            "Stage policy adjusted %s (ask=%.2fM, stage=%s): %s -> %s",
            profile.company_name, profile.fund_ask, profile.funding_stage,
            proposed, stages,
        )
    return mapping.model_copy(update={"mapped_stage": stages})


class VocabularyResolver:
    def __init__(
        self,
        classifier: Classifier,
        *,
        seed_threshold: float | None = None,
        thresholds: StageAskThresholds | None = None,
    ) -> None:
        self.classifier = classifier
        self.seed_threshold = (
            settings.seed_ask_threshold if seed_threshold is None else seed_threshold
        )
        self.thresholds = thresholds or settings.stage_ask_thresholds

    def resolve(self, profile: StartupProfile, vocabulary: Vocabulary) -> VocabularyMapping:
        check_vocabulary(vocabulary)

        raw = self.classifier.classify(profile, vocabulary)
        mapping = validate_mapping(decode_mapping(raw), vocabulary)
        mapping = enforce_stage_policy(
            mapping, profile, vocabulary,
            seed_threshold=self.seed_threshold,
            thresholds=self.thresholds,
        )

        logger.info(
            "Resolved %s: verticals=%s, stages=%s, country=%s",
            profile.company_name,
            mapping.mapped_verticals,
            mapping.mapped_stage,
            mapping.mapped_country,
        )
        return mapping
