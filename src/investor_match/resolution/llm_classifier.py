"""LLM classifier — one Claude call proposes the vocabulary mapping.

The reply is returned as raw JSON; validation happens in the resolver.
"""

from __future__ import annotations

import logging
from typing import Any

import anthropic
from anthropic import Anthropic

from src.investor_match.config import settings
from src.investor_match.errors import ResolutionFailed
from src.investor_match.llm import call_llm_json
from src.investor_match.models import StartupProfile, Vocabulary

logger = logging.getLogger(__name__)

_SYSTEM_PROMPT = """\
You map startup data onto the fields of an investment database so the startup
can be matched with investors. Only values listed under "Database values" are
valid answers; copy them exactly.

Return a single JSON object with these keys:

{
  "mapped_verticals": ["sector value", ...],
  "mapped_stage": ["stage value", ...],
  "mapped_country": "country value"
}

RULES:
- mapped_verticals: one or more sectors closest to the startup's verticals and intro.
- mapped_stage: fund ask is in $ millions. If the ask is above 1, include both the
  Seed and the Series A values; for larger asks and later funding stages add the
  later stages that fit. If the ask is 1 or less, return only the Seed value.
- mapped_country: exactly one country, the best match for the startup's location.
- Return ONLY valid JSON, no markdown fences.
"""


def _build_user_message(profile: StartupProfile, vocabulary: Vocabulary) -> str:
    parts = [
        "Startup data:",
        f"  Company: {profile.company_name}",
        f"  Intro: {profile.startup_intro}",
        f"  Verticals: {', '.join(profile.verticals)}",
        f"  Industries: {', '.join(profile.industries)}",
        f"  Funding stage: {profile.funding_stage}",
        f"  Location: {profile.startup_location}",
        f"  Fund ask: {profile.fund_ask}",
        "",
        "Database values:",
        f"  Sectors: {', '.join(vocabulary.sectors)}",
        f"  Stages: {', '.join(vocabulary.stages)}",
        f"  Countries: {', '.join(vocabulary.countries)}",
    ]
    return "\n".join(parts)


class LLMClassifier:
    def __init__(self, client: Anthropic | None = None, *, fast: bool = True) -> None:
        self._client = client
        self.fast = fast

    @property
    def client(self) -> Anthropic:
        if self._client is None:
            self._client = Anthropic(api_key=settings.anthropic_api_key)
        return self._client

    def classify(self, profile: StartupProfile, vocabulary: Vocabulary) -> dict[str, Any]:
        user_msg = _build_user_message(profile, vocabulary)
        try:
            return call_llm_json(self.client, _SYSTEM_PROMPT, user_msg, fast=self.fast)
        except anthropic.APIError as exc:
            logger.error("Classification backend failed for %s: %s", profile.company_name, exc)
            raise ResolutionFailed(f"Classification backend unavailable: {exc}") from exc
