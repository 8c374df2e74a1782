"""Startup profile extraction — one LLM call turns research text into a profile.

Input is whatever the upstream research step produced (general info about the
company and its website content).  The reply is decoded into the strict
``StartupProfile`` schema; results are cached by content hash.
"""

from __future__ import annotations

import hashlib
import logging
from typing import Any

import anthropic
from anthropic import Anthropic
from pydantic import ValidationError

from src.investor_match.domain_model import INDUSTRIES, VERTICALS
from src.investor_match.errors import ProfileExtractionFailed
from src.investor_match.llm import call_llm_json
from src.investor_match.models import StartupProfile

logger = logging.getLogger(__name__)

_cache: dict[str, dict[str, Any]] = {}

_SYSTEM_PROMPT = f"""\
You are a researcher at a digital investment bank that helps startups raise
capital. From the data you receive, extract a structured startup profile.

Return a single JSON object with these keys:

{{
  "companyName": "name",
  "industries": ["industry", ...],
  "verticals": ["vertical", ...],
  "startupLocation": "city, country",
  "startupIntro": "2-3 sentence overview of what the startup does",
  "fundAsk": 2.5,
  "fundingStage": "Seed|Series A|Series B|Series C|Series D+",
  "lastFundingRound": {{"amount": 1.0, "stage": "Bootstrapped|Pre-seed|Seed|Series A|Series B|Series C|Series D+"}}
}}

RULES:
- industries: at least one of: {", ".join(INDUSTRIES)}
- verticals: at least one of: {", ".join(VERTICALS)}
- All amounts in $ millions (3.5, not 3500000).
- fundingStage is the next round after the last one (Pre-seed or Seed -> Series A,
  Series A -> Series B, ...). fundAsk is always above the last round amount.
  With no previous round, fundAsk is between 0.5 and 2 and fundingStage is Seed or Series A.
- lastFundingRound: facts only; use 0 and "Bootstrapped" when unknown.
- Return ONLY valid JSON, no markdown fences.
"""


def _content_hash(general_info: str, website_content: str) -> str:
    key = f"{general_info}|{website_content}"
    return hashlib.sha256(key.encode()).hexdigest()[:16]


def _build_user_message(general_info: str, website_content: str) -> str:
    return "\n".join([
        "General info:",
        general_info.strip() or "(none)",
        "",
        "Website content:",
        website_content.strip() or "(none)",
    ])


def _decode(data: dict[str, Any]) -> StartupProfile:
    known_industries = set(INDUSTRIES)
    known_verticals = set(VERTICALS)
    cleaned = dict(data)
    # Unknown categories are dropped; at least one vertical must survive.
    if isinstance(cleaned.get("industries"), list):
        cleaned["industries"] = [i for i in cleaned["industries"] if i in known_industries]
    if isinstance(cleaned.get("verticals"), list):
        cleaned["verticals"] = [v for v in cleaned["verticals"] if v in known_verticals]
    try:
        profile = StartupProfile.model_validate(cleaned)
    except ValidationError as exc:
        raise ProfileExtractionFailed(f"Extracted profile is malformed: {exc}") from exc
    if not profile.verticals:
        raise ProfileExtractionFailed(
            f"No known vertical extracted for {profile.company_name}"
        )
    return profile


def extract_startup_profile(
    client: Anthropic,
    general_info: str,
    website_content: str = "",
) -> StartupProfile:
    h = _content_hash(general_info, website_content)
    if h in _cache:
        return _decode(_cache[h])

    user_msg = _build_user_message(general_info, website_content)
    try:
        result = call_llm_json(client, _SYSTEM_PROMPT, user_msg, fast=False)
    except anthropic.APIError as exc:
        raise ProfileExtractionFailed(f"Extraction backend unavailable: {exc}") from exc

    if not result:
        raise ProfileExtractionFailed("Empty LLM response for startup profile")

    profile = _decode(result)
    _cache[h] = result
    logger.info(
        "Extracted %s: verticals=%s, stage=%s, ask=%.2fM, location=%s",
        profile.company_name,
        list(profile.verticals),
        profile.funding_stage,
        profile.fund_ask,
        profile.startup_location,
    )
    return profile


def clear_cache() -> None:
    _cache.clear()
