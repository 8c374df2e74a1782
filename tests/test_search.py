"""Candidate expansion and investment aggregation."""

from __future__ import annotations

from itertools import permutations

from src.investor_match.dataset import InvestmentDataset
from src.investor_match.models import Combination, VocabularyMapping
from src.investor_match.search.aggregator import aggregate
from src.investor_match.search.expander import expand

ROWS = [
    ("x", "Fintech", "Series A", "USA", 5),
    ("x", "Fintech", "Seed", "USA", 3),
    ("y", "Fintech", "Seed", "USA", 2),
    ("y", "Healthtech", "Seed", "USA", 4),
    ("z", "Healthtech", "Series A", "USA", 1),
    ("z", "Fintech", "Seed", "India", 9),
]


def _combo(vertical: str, stage: str, country: str = "USA") -> Combination:
    return Combination(vertical=vertical, stage=stage, country=country)


class TestExpand:
    def test_cartesian_product(self):
        mapping = VocabularyMapping(
            mapped_verticals=["Fintech", "Healthtech", "SaaS"],
            mapped_stage=["Seed", "Series A"],
            mapped_country="USA",
        )
        combos = expand(mapping)
        assert len(combos) == 3 * 2
        assert all(c.country == "USA" for c in combos)
        assert [c.label for c in combos[:3]] == [
            "Fintech-Seed-USA",
            "Fintech-Series A-USA",
            "Healthtech-Seed-USA",
        ]

    def test_no_dedup(self):
        mapping = VocabularyMapping(
            mapped_verticals=["Fintech", "Fintech"],
            mapped_stage=["Seed"],
            mapped_country="USA",
        )
        assert len(expand(mapping)) == 2


class TestAggregate:
    def test_counts_keyed_by_label(self, seed):
        dataset = seed(ROWS)
        counts = aggregate([_combo("Fintech", "Seed"), _combo("Fintech", "Series A")], dataset)
        assert counts == {
            "x": {"Fintech-Seed-USA": 3, "Fintech-Series A-USA": 5},
            "y": {"Fintech-Seed-USA": 2},
        }

    def test_discovery_order(self, seed):
        dataset = seed(ROWS)
        counts = aggregate([_combo("Healthtech", "Seed"), _combo("Fintech", "Seed")], dataset)
        assert list(counts) == ["y", "x"]

    def test_duplicate_rows_are_summed(self, seed):
        dataset = seed(ROWS + [("x", "Fintech", "Seed", "USA", 4)])
        counts = aggregate([_combo("Fintech", "Seed")], dataset)
        assert counts["x"] == {"Fintech-Seed-USA": 7}

    def test_duplicate_combinations_are_idempotent(self, seed):
        dataset = seed(ROWS)
        once = aggregate([_combo("Fintech", "Seed")], dataset)
        twice = aggregate([_combo("Fintech", "Seed"), _combo("Fintech", "Seed")], dataset)
        assert once == twice

    def test_order_independent(self, seed):
        dataset = seed(ROWS)
        combos = [
            _combo("Fintech", "Seed"),
            _combo("Fintech", "Series A"),
            _combo("Healthtech", "Seed"),
            _combo("Healthtech", "Series A"),
        ]
        expected = aggregate(combos, dataset)
        for perm in permutations(combos):
            assert aggregate(list(perm), dataset) == expected

    def test_exact_match_only(self, seed):
        dataset = seed(ROWS)
        counts = aggregate([_combo("Fintech", "Seed", "India")], dataset)
        assert counts == {"z": {"Fintech-Seed-India": 9}}

    def test_no_rows_is_empty(self, seed):
        dataset = seed(ROWS)
        assert aggregate([_combo("SaaS", "Series C")], dataset) == {}
        assert aggregate([], dataset) == {}

    def test_fan_out_matches_sequential(self, tmp_path):
        dataset = InvestmentDataset.from_url(f"sqlite:///{tmp_path / 'investments.db'}")
        dataset.create_tables()
        dataset.load_records(
            [{"id": i, "name": i} for i in ("x", "y", "z")],
            [
                {
                    "investor_id": r[0], "investment_sector": r[1],
                    "investment_stage": r[2], "investment_country": r[3],
                    "investments": r[4],
                }
                for r in ROWS
            ],
        )
        combos = [
            _combo(v, s) for v in ("Fintech", "Healthtech") for s in ("Seed", "Series A")
        ]
        try:
            sequential = aggregate(combos, dataset, max_workers=1)
            fanned = aggregate(combos, dataset, max_workers=4)
        finally:
            dataset.dispose()
        assert fanned == sequential
        assert list(fanned) == list(sequential)
