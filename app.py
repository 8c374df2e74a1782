"""Streamlit UI for testing the Investor Match engine."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import pandas as pd
import streamlit as st

sys.path.insert(0, str(Path(__file__).resolve().parent))

from src.investor_match.config import settings  # noqa: E402
from src.investor_match.dataset import InvestmentDataset, load_sample_dataset  # noqa: E402
from src.investor_match.domain_model import VERTICALS  # noqa: E402
from src.investor_match.engine import (  # noqa: E402
    InvestorMatcher,
    load_profile_from_json,
    load_sample_profile,
)
from src.investor_match.errors import MatchingError  # noqa: E402
from src.investor_match.models import MatchResponse, StartupProfile  # noqa: E402

logging.basicConfig(level=logging.INFO)

st.set_page_config(page_title="Investor Match", layout="wide")
st.title("Investor Match — Startup to Investor Matching")

FUNDING_STAGES = ["Seed", "Series A", "Series B", "Series C", "Series D+"]
LAST_ROUND_STAGES = ["Bootstrapped", "Pre-seed", *FUNDING_STAGES]

_UPLOAD_HELP = """\
Upload a JSON startup profile:

```json
{
  "companyName": "Ledgerly",
  "verticals": ["Fintech"],
  "startupLocation": "Bengaluru, India",
  "startupIntro": "Automated bookkeeping for small businesses.",
  "fundAsk": 2.0,
  "fundingStage": "Series A",
  "lastFundingRound": {"amount": 1.2, "stage": "Seed"}
}
```

`fundAsk` and amounts are in $ millions.
"""


@st.cache_resource
def _dataset() -> InvestmentDataset:
    return InvestmentDataset.from_url(settings.database_url)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _render_profile_preview(profile: StartupProfile) -> None:
    with st.expander(f"{profile.company_name} — {profile.funding_stage}", expanded=True):
        cols = st.columns(2)
        with cols[0]:
            st.markdown(f"**Company:** {profile.company_name}")
            st.markdown(f"**Location:** {profile.startup_location or '—'}")
            st.markdown(f"**Verticals:** {', '.join(profile.verticals) or '—'}")
            if profile.industries:
                st.markdown(f"**Industries:** {', '.join(profile.industries)}")
        with cols[1]:
            st.markdown(f"**Fund ask:** {_safe(f'${profile.fund_ask:g}M')}")
            st.markdown(f"**Funding stage:** {profile.funding_stage}")
            last = profile.last_funding_round
            st.markdown(f"**Last round:** {last.stage} ({_safe(f'${last.amount:g}M')})")
        if profile.startup_intro:
            st.caption(profile.startup_intro)


def _run_matcher(profile: StartupProfile) -> MatchResponse | None:
    if settings.classifier == "llm" and not settings.anthropic_api_key:
        st.error("No Anthropic API key found.  Set ANTHROPIC_API_KEY in .env "
                 "or CLASSIFIER=rules.")
        return None

    progress_bar = st.progress(0.0)
    status_text = st.empty()

    def _cb(label: str, frac: float) -> None:
        progress_bar.progress(min(frac, 1.0))
        status_text.text(label)

    try:
        response = InvestorMatcher(_dataset()).match_investors(
            profile, progress_callback=_cb,
        )
    except MatchingError as e:
        st.error(f"Match could not be computed ({e.stage} stage): {e}")
        return None
    status_text.text("Complete!")
    return response


def _render_response(response: MatchResponse) -> None:
    st.markdown("---")
    st.header("Match Results")

    mapping = response.mapping
    col1, col2, col3 = st.columns(3)
    col1.metric("Sectors", ", ".join(mapping.mapped_verticals))
    col2.metric("Stages", ", ".join(mapping.mapped_stage))
    col3.metric("Country", mapping.mapped_country)

    if not response.matches:
        st.info("No investors found for these combinations.")
        return

    if response.truncated:
        st.warning(
            f"Showing the top {len(response.matches)} of "
            f"{response.total_found} matched investors."
        )
    else:
        st.caption(f"{response.total_found} investors across {response.combinations} combinations")

    labels = sorted({label for m in response.matches for label in m.investment_counts})
    rows = []
    for rank, m in enumerate(response.matches, 1):
        row = {
            "Rank": rank,
            "Investor": m.name,
            "Type": m.investor_type or "",
            "HQ": m.headquarters_country or "",
            "Total": m.total_score,
        }
        for label in labels:
            row[label] = m.investment_counts.get(label, 0)
        row["Website"] = m.website or ""
        rows.append(row)

    df = pd.DataFrame(rows).set_index("Rank")
    st.dataframe(df, use_container_width=True)
    st.download_button(
        "Download CSV",
        df.to_csv().encode("utf-8"),
        file_name=f"{response.company_name}_investors.csv",
        mime="text/csv",
    )


def _safe(text: str) -> str:
    """Escape dollar signs to prevent Streamlit LaTeX rendering."""
    return text.replace("$", r"\$")


# ---------------------------------------------------------------------------
# Sidebar
# ---------------------------------------------------------------------------

with st.sidebar:
    st.header("Settings")
    st.caption(f"Dataset: `{settings.database_url}`")
    st.caption(f"Classifier: **{settings.classifier}**")
    if st.button("Load sample dataset"):
        try:
            n_inv, n_rows = load_sample_dataset(_dataset())
            st.success(f"Loaded {n_inv} investors, {n_rows} investment rows")
        except MatchingError as e:
            st.error(f"Could not load sample dataset: {e}")
    st.markdown("---")
    if settings.anthropic_api_key:
        st.success("API key loaded")
    else:
        st.warning("No API key found")


# ---------------------------------------------------------------------------
# Main tabs
# ---------------------------------------------------------------------------

tab_sample, tab_upload, tab_builder, tab_research = st.tabs([
    "Sample Startup", "Upload JSON", "Interactive Builder", "From Research",
])

# --- Tab 1: Sample profile ---
with tab_sample:
    st.subheader("Run with the built-in startup profile")
    profile = load_sample_profile()
    _render_profile_preview(profile)

    if st.button("Find Investors", key="run_sample", type="primary"):
        response = _run_matcher(profile)
        if response:
            _render_response(response)


# --- Tab 2: Upload JSON ---
with tab_upload:
    st.subheader("Upload a startup profile")
    st.markdown(_UPLOAD_HELP)
    uploaded = st.file_uploader("Upload JSON", type=["json"])
    if uploaded:
        try:
            profile = load_profile_from_json(json.loads(uploaded.read()))
        except Exception as e:
            st.error(f"Error loading JSON: {e}")
        else:
            _render_profile_preview(profile)
            if st.button("Find Investors", key="run_upload", type="primary"):
                response = _run_matcher(profile)
                if response:
                    _render_response(response)


# --- Tab 3: Interactive Builder ---
with tab_builder:
    st.subheader("Describe the startup")

    with st.form("startup_profile"):
        company = st.text_input("Company name *")
        verticals = st.multiselect("Verticals *", list(VERTICALS))
        location = st.text_input("Location *", help="City and country, e.g. Bengaluru, India")
        intro = st.text_area("Intro", help="What does the startup do? One or two sentences.")

        col1, col2 = st.columns(2)
        with col1:
            fund_ask = st.number_input("Fund ask ($M) *", min_value=0.0, value=1.0, step=0.5)
            funding_stage = st.selectbox("Funding stage", FUNDING_STAGES)
        with col2:
            last_amount = st.number_input("Last round ($M)", min_value=0.0, value=0.0, step=0.5)
            last_stage = st.selectbox("Last round stage", LAST_ROUND_STAGES)

        submitted = st.form_submit_button("Find Investors", type="primary")

    if submitted:
        if not all([company, verticals, location]):
            st.error("Fill in all required fields (marked with *).")
        else:
            profile = StartupProfile(
                company_name=company,
                verticals=verticals,
                startup_location=location,
                startup_intro=intro,
                fund_ask=fund_ask,
                funding_stage=funding_stage,
                last_funding_round={"amount": last_amount, "stage": last_stage},
            )
            response = _run_matcher(profile)
            if response:
                _render_response(response)


# --- Tab 4: Research text ---
with tab_research:
    st.subheader("Extract the profile from research notes")

    with st.form("research_text"):
        general_info = st.text_area(
            "General info *", height=200,
            help="Research notes about the company: product, team, funding history.",
        )
        website_content = st.text_area("Website content", height=200)
        extract_submitted = st.form_submit_button("Extract & Find Investors", type="primary")

    if extract_submitted:
        if not general_info.strip():
            st.error("Paste some general info about the startup.")
        elif not settings.anthropic_api_key:
            st.error("No Anthropic API key found.  Set ANTHROPIC_API_KEY in .env.")
        else:
            try:
                with st.spinner("Extracting startup profile..."):
                    profile = InvestorMatcher(_dataset()).extract_profile(
                        general_info, website_content,
                    )
            except MatchingError as e:
                st.error(f"Profile could not be extracted ({e.stage} stage): {e}")
            else:
                _render_profile_preview(profile)
                response = _run_matcher(profile)
                if response:
                    _render_response(response)
