"""Integration-level tests — full pipeline over an in-memory dataset."""

from __future__ import annotations

import json

import pytest
from sqlalchemy.exc import OperationalError

from src.investor_match import engine
from src.investor_match.config import Settings
from src.investor_match.dataset import DATA_DIR, InvestmentDataset, load_sample_dataset
from src.investor_match.engine import InvestorMatcher, load_sample_profile, match_investors
from src.investor_match.errors import (
    DatasetUnavailable,
    InvalidMapping,
    ProfileExtractionFailed,
    ResolutionFailed,
)
from src.investor_match.extraction.profile_extractor import clear_cache
from src.investor_match.models import StartupProfile
from src.investor_match.resolution.llm_classifier import LLMClassifier
from src.investor_match.resolution.rule_classifier import RuleClassifier

RULES = Settings(classifier="rules", semantic_matching=False)

# Vocabulary: sectors {Fintech, Healthtech}, stages {Seed, Series A, Series B},
# countries {USA, India}.
ROWS = [
    ("X", "Fintech", "Series A", "USA", 5),
    ("X", "Fintech", "Seed", "USA", 3),
    ("Y", "Healthtech", "Series B", "India", 2),
]

# Bridge rounds next to the plain labels, all in India.
BRIDGE_ROWS = [
    ("X", "Fintech", "Seed", "India", 3),
    ("X", "Fintech", "Series A", "India", 5),
    ("Z", "Fintech", "Post-Seed", "India", 4),
    ("Z", "Fintech", "Pre-Series A", "India", 6),
]

RESEARCH_REPLY = {
    "companyName": "Acme Pay",
    "industries": ["Financial Services"],
    "verticals": ["Fintech"],
    "startupLocation": "New York, USA",
    "startupIntro": "Card issuing for marketplaces.",
    "fundAsk": 2.0,
    "fundingStage": "Series A",
    "lastFundingRound": {"amount": 1.0, "stage": "Seed"},
}


def _profile(**overrides) -> StartupProfile:
    data = {
        "companyName": "Acme Pay",
        "verticals": ["Fintech"],
        "startupLocation": "New York, USA",
        "fundAsk": 2,
        "fundingStage": "Series A",
    }
    data.update(overrides)
    return StartupProfile(**data)


class TestEndToEnd:
    def test_fintech_scenario(self, seed):
        dataset = seed(ROWS)
        response = InvestorMatcher(dataset, config=RULES).match_investors(_profile())

        assert "Seed" in response.mapping.mapped_stage
        assert "Series A" in response.mapping.mapped_stage
        assert response.combinations == 2

        [x] = response.matches
        assert x.id == "X"
        assert x.investment_counts == {"Fintech-Seed-USA": 3, "Fintech-Series A-USA": 5}
        assert x.total_score == 8
        assert response.total_found == 1
        assert not response.truncated

    def test_llm_classifier_is_held_to_the_stage_rule(self, seed, fake_anthropic):
        dataset = seed(ROWS)
        client = fake_anthropic(json.dumps({
            "mapped_verticals": ["Fintech"],
            "mapped_stage": ["Series A"],
            "mapped_country": "USA",
        }))
        response = match_investors(_profile(), dataset, LLMClassifier(client))
        assert response.mapping.mapped_stage == ["Seed", "Series A"]
        assert response.matches[0].total_score == 8

    def test_no_matches_is_empty_success(self, seed):
        dataset = seed(ROWS)
        response = InvestorMatcher(dataset, config=RULES).match_investors(
            _profile(startupLocation="Pune, India", fundAsk=0.5),
        )
        assert response.mapping.mapped_stage == ["Seed"]
        assert response.mapping.mapped_country == "India"
        assert response.matches == []
        assert response.total_found == 0
        assert not response.truncated

    def test_truncated_flag(self, seed):
        rows = [(f"inv-{i:03d}", "Fintech", "Seed", "USA", i + 1) for i in range(150)]
        dataset = seed(rows + [("w", "Fintech", "Series A", "India", 1)])
        response = InvestorMatcher(dataset, config=RULES).match_investors(_profile())
        assert len(response.matches) == 100
        assert response.total_found == 150
        assert response.truncated
        assert response.matches[0].id == "inv-149"

    def test_progress_callback(self, seed):
        dataset = seed(ROWS)
        seen = []
        InvestorMatcher(dataset, config=RULES).match_investors(
            _profile(), progress_callback=lambda label, frac: seen.append(frac),
        )
        assert seen[0] == 0.0
        assert seen[-1] == 1.0
        assert seen == sorted(seen)


class TestBridgeRounds:
    def test_rules_pick_plain_labels(self, seed):
        dataset = seed(BRIDGE_ROWS)
        response = InvestorMatcher(dataset, config=RULES).match_investors(
            _profile(startupLocation="Bengaluru, India"),
        )
        assert response.mapping.mapped_stage == ["Seed", "Series A"]
        [x] = response.matches
        assert x.id == "X"
        assert x.total_score == 8

    def test_llm_seed_answer_kept_for_small_ask(self, seed, fake_anthropic):
        dataset = seed(BRIDGE_ROWS)
        client = fake_anthropic(json.dumps({
            "mapped_verticals": ["Fintech"],
            "mapped_stage": ["Seed"],
            "mapped_country": "India",
        }))
        response = match_investors(
            _profile(startupLocation="Bengaluru, India", fundAsk=0.5),
            dataset, LLMClassifier(client),
        )
        assert response.mapping.mapped_stage == ["Seed"]
        assert [(m.id, m.total_score) for m in response.matches] == [("X", 3)]


@pytest.fixture
def fresh_extraction_cache():
    clear_cache()
    yield
    clear_cache()


@pytest.mark.usefixtures("fresh_extraction_cache")
class TestMatchFromResearch:
    def test_extracted_profile_is_matched(self, seed, fake_anthropic):
        dataset = seed(ROWS)
        client = fake_anthropic(json.dumps(RESEARCH_REPLY))
        matcher = InvestorMatcher(dataset, config=RULES, client=client)
        seen = []
        profile, response = matcher.match_from_research(
            "Acme Pay, New York. Raising a Series A.", "<h1>Acme Pay</h1>",
            progress_callback=lambda label, frac: seen.append(label),
        )
        assert profile.company_name == "Acme Pay"
        assert response.company_name == "Acme Pay"
        assert response.mapping.mapped_stage == ["Seed", "Series A"]
        assert [(m.id, m.total_score) for m in response.matches] == [("X", 8)]
        assert seen[0] == "Extracting startup profile..."
        assert len(client.calls) == 1

    def test_extraction_failure_aborts(self, seed, fake_anthropic, monkeypatch):
        dataset = seed(ROWS)
        client = fake_anthropic(json.dumps({**RESEARCH_REPLY, "verticals": ["Neo-ledgers"]}))

        def _unreachable(*args, **kwargs):
            raise AssertionError("matching ran without an extracted profile")

        monkeypatch.setattr(engine, "load_vocabulary", _unreachable)
        matcher = InvestorMatcher(dataset, config=RULES, client=client)
        with pytest.raises(ProfileExtractionFailed) as exc:
            matcher.match_from_research("Acme Pay")
        assert exc.value.stage == "extract"
        assert str(exc.value).startswith("[extract]")

    def test_unparseable_reply(self, dataset, fake_anthropic):
        matcher = InvestorMatcher(dataset, config=RULES, client=fake_anthropic("sorry, no"))
        with pytest.raises(ProfileExtractionFailed):
            matcher.extract_profile("Acme Pay")


class TestFailures:
    def test_malformed_mapping_aborts_before_search(self, seed, monkeypatch):
        dataset = seed(ROWS)

        class MissingStage:
            def classify(self, profile, vocabulary):
                return {"mapped_verticals": ["Fintech"], "mapped_country": "USA"}

        def _unreachable(*args, **kwargs):
            raise AssertionError("pipeline continued after a resolution failure")

        monkeypatch.setattr(engine, "aggregate", _unreachable)
        monkeypatch.setattr(engine, "rank", _unreachable)

        with pytest.raises(InvalidMapping) as exc:
            InvestorMatcher(dataset, MissingStage()).match_investors(_profile())
        assert exc.value.stage == "resolve"

    def test_unresolvable_profile(self, seed):
        dataset = seed(ROWS)
        with pytest.raises(ResolutionFailed):
            InvestorMatcher(dataset, RuleClassifier(semantic=False)).match_investors(
                _profile(verticals=["Gaming"]),
            )

    def test_dataset_unavailable(self):
        dataset = InvestmentDataset.from_url("sqlite://")  # no tables
        try:
            with pytest.raises(DatasetUnavailable) as exc:
                InvestorMatcher(dataset, config=RULES).match_investors(_profile())
        finally:
            dataset.dispose()
        assert exc.value.stage == "vocabulary"
        assert str(exc.value).startswith("[vocabulary]")

    def test_dataset_lost_during_aggregation(self, seed, monkeypatch):
        dataset = seed(ROWS)

        def _locked(sector, stage, country):
            with dataset.session():
                raise OperationalError("SELECT investments", {}, Exception("database is locked"))

        def _unreachable(*args, **kwargs):
            raise AssertionError("ranking ran after the dataset failed")

        monkeypatch.setattr(dataset, "find", _locked)
        monkeypatch.setattr(engine, "rank", _unreachable)
        with pytest.raises(DatasetUnavailable) as exc:
            InvestorMatcher(dataset, config=RULES).match_investors(_profile())
        assert exc.value.stage == "aggregate"
        assert str(exc.value).startswith("[aggregate]")


class TestSampleData:
    def test_sample_profile_loads(self):
        assert (DATA_DIR / "sample_startup.json").exists()
        profile = load_sample_profile()
        assert profile.company_name
        assert profile.verticals

    def test_sample_dataset_matches(self, dataset):
        n_investors, n_rows = load_sample_dataset(dataset)
        assert n_investors == 8
        assert n_rows > 0

        response = InvestorMatcher(dataset, config=RULES).match_investors(load_sample_profile())
        assert response.mapping.mapped_country == "India"
        assert {"Seed", "Series A"} <= set(response.mapping.mapped_stage)
        assert response.matches
        scores = [m.total_score for m in response.matches]
        assert scores == sorted(scores, reverse=True)
