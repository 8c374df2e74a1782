"""Shared fixtures — in-memory dataset and a fake Anthropic client."""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from src.investor_match.dataset import InvestmentDataset


class FakeAnthropic:
    """Stands in for ``anthropic.Anthropic``; replies with canned text."""

    def __init__(self, reply: str = "{}", error: Exception | None = None) -> None:
        self.reply = reply
        self.error = error
        self.calls: list[dict] = []
        self.messages = self

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(content=[SimpleNamespace(text=self.reply)])


@pytest.fixture
def dataset():
    ds = InvestmentDataset.from_url("sqlite://")
    ds.create_tables()
    yield ds
    ds.dispose()


def _row(investor_id: str, sector: str, stage: str, country: str, n: int) -> dict:
    return {
        "investor_id": investor_id,
        "investment_sector": sector,
        "investment_stage": stage,
        "investment_country": country,
        "investments": n,
    }


@pytest.fixture
def seed(dataset):
    """Seed ``dataset`` from (investor, sector, stage, country, count) tuples.

    Investor profiles are created for every referenced id unless listed in
    ``without_profile``.
    """
    def _seed(rows, without_profile=()):
        ids = list(dict.fromkeys(r[0] for r in rows))
        investors = [
            {"id": i, "name": f"Investor {i}", "investor_type": "VC"}
            for i in ids if i not in without_profile
        ]
        dataset.load_records(investors, [_row(*r) for r in rows])
        return dataset
    return _seed


@pytest.fixture
def fake_anthropic():
    return FakeAnthropic
