"""Deterministic domain model — stage ladder, country and vertical vocabularies.

No LLM calls.  Fully unit-testable.  These rules are the contract every
classifier's output is checked against: the stage policy in particular is
enforced here rather than left to a prompt.
"""

from __future__ import annotations

import re
from typing import get_args

from src.investor_match.config import StageAskThresholds
from src.investor_match.models import Industry, Vertical

INDUSTRIES: tuple[str, ...] = get_args(Industry)
VERTICALS: tuple[str, ...] = get_args(Vertical)


def normalize(text: str) -> str:
    text = text.lower().replace("&", " and ")
    text = re.sub(r"[^a-z0-9+]+", " ", text)
    return re.sub(r"\s+", " ", text).strip()


# ---------------------------------------------------------------------------
# Layer 1 — Stage ladder
# ---------------------------------------------------------------------------

STAGE_LADDER: list[str] = [
    "pre_seed",
    "seed",
    "series_a",
    "series_b",
    "series_c",
    "series_d",
]

_LADDER_INDEX: dict[str, int] = {rung: i for i, rung in enumerate(STAGE_LADDER)}

_SERIES_RE = re.compile(r"\bseries ?([a-j])\b")
_SERIES_RUNG = {"a": "series_a", "b": "series_b", "c": "series_c"}

# "Pre-Series A", "Post-Seed", "Pre Series B" ... are stages of their own.
_BRIDGE_RE = re.compile(r"^(pre|post) ?(series|seed)")

# Plain label of each rung, after normalize().
_CANONICAL_LABELS: dict[str, set[str]] = {
    "pre_seed": {"pre seed", "preseed"},
    "seed": {"seed"},
    "series_a": {"series a"},
    "series_b": {"series b"},
    "series_c": {"series c"},
    "series_d": {"series d", "series d+"},
}


def stage_rung(text: str | None) -> str | None:
    """Place a free-text stage label on the ladder, or None if unrecognised.

    Bridge rounds ("Pre-Series A", "Post-Seed") are not placed on the rung
    they name. "Pre-Seed" is its own rung.
    """
    if not text:
        return None
    norm = normalize(text).strip()
    compact = norm.replace(" ", "")
    if compact.startswith("preseed") or "angel" in compact:
        return "pre_seed"
    if _BRIDGE_RE.match(norm):
        return None
    m = _SERIES_RE.search(norm)
    if m:
        return _SERIES_RUNG.get(m.group(1), "series_d")
    if "seed" in compact:
        return "seed"
    if "growth" in compact or "latestage" in compact:
        return "series_d"
    return None


def is_canonical_stage(entry: str, rung: str) -> bool:
    """True when *entry* is the plain label of *rung* ("Seed", "Series A")."""
    return normalize(entry).strip() in _CANONICAL_LABELS.get(rung, set())


def stages_by_rung(stage_vocabulary: list[str]) -> dict[str, str]:
    """Vocabulary entry for each recognised rung.

    The plain label wins ("Seed" over "Seed+"); otherwise the first entry in
    vocabulary order.
    """
    by_rung: dict[str, str] = {}
    for entry in stage_vocabulary:
        rung = stage_rung(entry)
        if rung is None:
            continue
        current = by_rung.get(rung)
        if current is None or (
            is_canonical_stage(entry, rung) and not is_canonical_stage(current, rung)
        ):
            by_rung[rung] = entry
    return by_rung


# ---------------------------------------------------------------------------
# Layer 2 — Stage decision function
# ---------------------------------------------------------------------------

def relevant_rungs(
    fund_ask: float,
    funding_stage: str | None,
    *,
    seed_threshold: float = 1.0,
    thresholds: StageAskThresholds | None = None,
) -> set[str]:
    """Rungs a raise of ``fund_ask`` ($M) at ``funding_stage`` should target.

    Asks at or below ``seed_threshold`` target Seed only.  Larger asks always
    target Seed and Series A, plus the startup's own stage and any later
    rungs the ask magnitude reaches.
    """
    if fund_ask <= seed_threshold:
        return {"seed"}

    t = thresholds or StageAskThresholds()
    rungs = {"seed", "series_a"}
    own = stage_rung(funding_stage)
    if own is not None and own != "pre_seed":
        rungs.add(own)
    if fund_ask > t.series_b:
        rungs.add("series_b")
    if fund_ask > t.series_c:
        rungs.add("series_c")
    if fund_ask > t.series_d:
        rungs.add("series_d")
    return rungs


def _nearest_present(anchor: str, by_rung: dict[str, str]) -> str | None:
    if not by_rung:
        return None
    target = _LADDER_INDEX[anchor]
    best = min(by_rung, key=lambda r: (abs(_LADDER_INDEX[r] - target), _LADDER_INDEX[r]))
    return by_rung[best]


def required_stages(
    fund_ask: float,
    funding_stage: str | None,
    stage_vocabulary: list[str],
    *,
    seed_threshold: float = 1.0,
    thresholds: StageAskThresholds | None = None,
) -> list[str]:
    """Stage vocabulary entries a startup must be matched against.

    Returned in ladder order.  When none of the relevant rungs exist in the
    vocabulary the entry nearest to the anchor rung (Seed for small asks, the
    startup's own stage otherwise) is used.  Empty only when no vocabulary
    entry is recognisable as a stage.
    """
    by_rung = stages_by_rung(stage_vocabulary)
    wanted = relevant_rungs(
        fund_ask, funding_stage,
        seed_threshold=seed_threshold, thresholds=thresholds,
    )
    result = [by_rung[r] for r in STAGE_LADDER if r in wanted and r in by_rung]
    if result:
        return result

    anchor = "seed"
    if fund_ask > seed_threshold:
        anchor = stage_rung(funding_stage) or "series_a"
    nearest = _nearest_present(anchor, by_rung)
    return [nearest] if nearest is not None else []


def order_stages(stages: list[str]) -> list[str]:
    """Sort stage entries by ladder position; unrecognised entries go last."""
    def _key(entry: str) -> int:
        rung = stage_rung(entry)
        return _LADDER_INDEX[rung] if rung is not None else len(STAGE_LADDER)
    return sorted(dict.fromkeys(stages), key=_key)


# ---------------------------------------------------------------------------
# Layer 3 — Geography
# ---------------------------------------------------------------------------

COUNTRY_ALIASES: dict[str, set[str]] = {
    "usa": {"united states", "united states of america", "us", "u s", "america"},
    "uk": {"united kingdom", "great britain", "britain", "england", "scotland"},
    "uae": {"united arab emirates", "emirates"},
    "india": {"bharat"},
    "germany": {"deutschland"},
    "netherlands": {"holland", "the netherlands"},
    "south korea": {"korea", "republic of korea"},
    "china": {"prc", "people s republic of china"},
}

CITY_COUNTRY: dict[str, str] = {
    "san francisco": "usa",
    "new york": "usa",
    "boston": "usa",
    "austin": "usa",
    "seattle": "usa",
    "los angeles": "usa",
    "palo alto": "usa",
    "bangalore": "india",
    "bengaluru": "india",
    "mumbai": "india",
    "delhi": "india",
    "new delhi": "india",
    "gurgaon": "india",
    "hyderabad": "india",
    "london": "uk",
    "manchester": "uk",
    "dubai": "uae",
    "abu dhabi": "uae",
    "berlin": "germany",
    "munich": "germany",
    "paris": "france",
    "amsterdam": "netherlands",
    "toronto": "canada",
    "vancouver": "canada",
    "singapore": "singapore",
    "tel aviv": "israel",
    "seoul": "south korea",
    "tokyo": "japan",
    "sydney": "australia",
    "melbourne": "australia",
}


def country_key(text: str) -> str:
    norm = normalize(text)
    for key, aliases in COUNTRY_ALIASES.items():
        if norm == key or norm in aliases:
            return key
    return norm


def location_country_keys(location: str) -> list[str]:
    """Country keys mentioned in a free-text location, most specific first.

    Comma-separated parts are read from the end, so for "San Francisco, CA,
    USA" the trailing "usa" comes first and the city hint for San Francisco
    follows.
    """
    keys: list[str] = []
    parts = [normalize(p) for p in re.split(r"[,/|;]", location) if p.strip()]
    for part in reversed(parts):
        keys.append(country_key(part))
        for city, key in CITY_COUNTRY.items():
            if re.search(rf"\b{re.escape(city)}\b", part):
                keys.append(key)
    return keys


def match_country(location: str, country_vocabulary: list[str]) -> str | None:
    """Single best vocabulary country for a location, or None."""
    if not location:
        return None
    by_key: dict[str, str] = {}
    for entry in country_vocabulary:
        by_key.setdefault(country_key(entry), entry)
    for key in location_country_keys(location):
        if key in by_key:
            return by_key[key]
    return None


# ---------------------------------------------------------------------------
# Layer 4 — Sector vocabulary
# ---------------------------------------------------------------------------

VERTICAL_SYNONYMS: dict[str, set[str]] = {
    "Fintech": {"financial technology", "financial services", "payments", "banking"},
    "Healthtech": {"health tech", "healthcare", "digital health", "health"},
    "Edtech": {"education", "education technology", "learning"},
    "Proptech": {"real estate", "property technology"},
    "Insurtech": {"insurance"},
    "Agritech": {"agriculture", "agtech", "agri tech"},
    "Cleantech": {"clean energy", "renewable energy", "energy"},
    "Climate Tech": {"climate", "sustainability"},
    "Biotech": {"biotechnology", "life sciences"},
    "Medtech": {"medical devices", "medical technology"},
    "AI/ML": {"ai", "artificial intelligence", "machine learning", "ai ml"},
    "SaaS": {"software", "b2b software", "software as a service"},
    "Enterprise Software": {"enterprise", "b2b software", "software"},
    "Cybersecurity": {"security", "infosec", "cyber security"},
    "E-commerce": {"ecommerce", "e commerce", "online retail", "retail"},
    "D2C": {"direct to consumer", "consumer brands", "dtc"},
    "Logistics": {"supply chain", "transportation and logistics"},
    "Mobility": {"transportation", "automotive"},
    "EV": {"electric vehicles", "electric mobility"},
    "Gaming": {"games", "esports", "video games"},
    "Media & Entertainment": {"media", "entertainment", "content"},
    "Consumer Internet": {"consumer", "internet"},
    "Food & Beverage": {"food", "foodtech", "food tech"},
    "Travel & Hospitality": {"travel", "hospitality", "traveltech"},
    "HR Tech": {"hr", "human resources", "future of work"},
    "Legal Tech": {"legal"},
    "Martech": {"marketing", "marketing technology"},
    "Adtech": {"advertising"},
    "Blockchain & Web3": {"blockchain", "web3", "crypto", "cryptocurrency"},
    "Space Tech": {"space", "aerospace"},
    "Developer Tools": {"devtools", "developer"},
    "Data & Analytics": {"data", "analytics", "big data"},
}

MIN_SECTOR_SCORE = 0.5


def _tokens(text: str) -> set[str]:
    return set(normalize(text).split()) - {"and", "the", "of"}


def sector_match_score(vertical: str, sector: str) -> float:
    """Lexical closeness of a startup vertical to a dataset sector.  [0.0, 1.0]."""
    v, s = normalize(vertical), normalize(sector)
    if not v or not s:
        return 0.0
    if v == s or v.replace(" ", "") == s.replace(" ", ""):
        return 1.0
    synonyms = {normalize(x) for x in VERTICAL_SYNONYMS.get(vertical, set())}
    if s in synonyms:
        return 0.9
    if re.search(rf"\b{re.escape(v)}\b", s) or re.search(rf"\b{re.escape(s)}\b", v):
        return 0.8
    tv, ts = _tokens(vertical), _tokens(sector)
    if not tv or not ts:
        return 0.0
    return len(tv & ts) / len(tv | ts)


def match_sectors(
    verticals: list[str],
    sector_vocabulary: list[str],
    min_score: float = MIN_SECTOR_SCORE,
) -> list[str]:
    """Best vocabulary sector per vertical, deduplicated, in vertical order."""
    matched: list[str] = []
    for vertical in verticals:
        best_sector, best_score = None, 0.0
        for sector in sector_vocabulary:
            s = sector_match_score(vertical, sector)
            if s > best_score:
                best_sector, best_score = sector, s
        if best_sector is not None and best_score >= min_score:
            if best_sector not in matched:
                matched.append(best_sector)
    return matched


def sectors_mentioned(text: str, sector_vocabulary: list[str]) -> list[str]:
    """Vocabulary sectors named verbatim in free text (e.g. a startup intro)."""
    norm = normalize(text)
    found = []
    for sector in sector_vocabulary:
        s = normalize(sector)
        if s and re.search(rf"\b{re.escape(s)}\b", norm):
            found.append(sector)
    return found
