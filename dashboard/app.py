"""
Streamlit Dashboard for the Business Risk Recommendation Engine

Interactive view of ranked hazard scores, selected mitigation strategies and
the assembled action plan for one business.
"""

import streamlit as st
import pandas as pd
import plotly.express as px
import os
import sys

# Add parent directory to path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from src.catalog_connectors import JsonSnapshotProvider
from src.risk_scoring import DataSourceError, RiskScorer
from src.risk_scoring.models import Multiplier, RecommendationOptions
from src.strategy_planning import RecommendationEngine, group_by_phase
from src.strategy_planning.action_plan import PRESENTATION_ALIASES

DEFAULT_SNAPSHOT = os.path.join(
    os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "data", "sample_snapshot.json"
)

# Page configuration
st.set_page_config(
    page_title="Business Risk & Mitigation Planner",
    page_icon="🌀",
    layout="wide",
    initial_sidebar_state="expanded"
)


@st.cache_resource
def get_provider(path: str):
    return JsonSnapshotProvider(path)


snapshot_path = os.getenv("RISK_SNAPSHOT_PATH", DEFAULT_SNAPSHOT)
try:
    provider = get_provider(snapshot_path)
except DataSourceError as e:
    st.error(f"Could not load snapshot: {e}")
    st.stop()

# Title and description
st.title(" Business Risk & Mitigation Planner")
st.markdown("**Hazard scoring and continuity strategy recommendations**")

# Sidebar
st.sidebar.header("Business Profile")

admin_units = provider.list_admin_units()
business_types = provider.list_business_types()

admin_unit_id = st.sidebar.selectbox(
    "📍 Parish", options=list(admin_units), format_func=lambda k: admin_units[k]
)
business_type_id = st.sidebar.selectbox(
    "🏪 Business Type", options=list(business_types), format_func=lambda k: business_types[k]
)

st.sidebar.subheader(" Business Characteristics")
answers = {}
for characteristic_type in provider.list_characteristic_types():
    multipliers = [Multiplier.model_validate(m) for m in provider.get_multipliers(characteristic_type)]
    label = characteristic_type.replace("_", " ").title()
    active = [m for m in multipliers if m.is_active]
    if not active:
        continue
    multiplier = min(active, key=lambda m: (m.priority, m.id))

    if multiplier.condition_type == "options":
        choice = st.sidebar.selectbox(label, ["(not answered)"] + list(multiplier.answer_options))
        if choice != "(not answered)":
            answers[characteristic_type] = choice
    elif multiplier.condition_type == "boolean":
        answers[characteristic_type] = st.sidebar.checkbox(label, value=False)
    else:
        answers[characteristic_type] = st.sidebar.slider(label, 0, 100, 50, step=5)

recommended_cap = st.sidebar.slider("Max recommended strategies", min_value=0, max_value=15, value=8)

# Analysis button
if st.sidebar.button(" Build Plan", type="primary"):
    with st.spinner("Scoring hazards and selecting strategies..."):
        engine = RecommendationEngine(provider)
        st.session_state.plan = engine.compute_recommendation(
            admin_unit_id,
            business_type_id,
            answers,
            RecommendationOptions(recommended_cap=recommended_cap),
        )

# Main content
if "plan" in st.session_state:
    plan = st.session_state.plan

    st.subheader(" Risk Summary")
    col1, col2, col3, col4 = st.columns(4)

    top = plan.ranked_risks[0] if plan.ranked_risks else None
    col1.metric(
        label="Top Hazard",
        value=top.hazard if top else "None",
        delta=top.risk_level if top else None
    )
    col2.metric(
        label="Top Score",
        value=f"{top.combined_score:.1f}/{RiskScorer.SCORE_CEILING:.0f}" if top else "0"
    )
    col3.metric(label="Strategies", value=len(plan.selected_strategies))
    col4.metric(label="Action Steps", value=len(plan.action_plan))

    if plan.uncovered_hazards:
        st.warning(
            f"⚠️ No recommended strategy found for: **{', '.join(plan.uncovered_hazards)}**"
        )

    st.markdown("---")

    tab1, tab2, tab3, tab4 = st.tabs(["📈 Risks", "🛡️ Strategies", "🗓️ Action Plan", "ℹ️ Notices"])

    with tab1:
        st.subheader("Ranked Hazards")

        if plan.ranked_risks:
            risks_df = pd.DataFrame([r.model_dump() for r in plan.ranked_risks])

            fig = px.bar(
                risks_df,
                x="hazard",
                y="combined_score",
                labels={"hazard": "Hazard", "combined_score": f"Combined Score (0-{RiskScorer.SCORE_CEILING:.0f})"},
                title="Combined Risk Scores",
                color="combined_score",
                color_continuous_scale="Reds",
                range_color=[0, RiskScorer.SCORE_CEILING]
            )
            fig.update_layout(showlegend=False)
            st.plotly_chart(fig, use_container_width=True)

            st.dataframe(
                risks_df[[
                    "rank", "hazard", "risk_level", "combined_score", "location_risk",
                    "vulnerability", "impact_severity", "multiplier"
                ]],
                use_container_width=True
            )
        else:
            st.success("No hazard scored above zero for this business and location.")

        if plan.applied_multipliers:
            st.subheader("Applied Multipliers")
            for applied in plan.applied_multipliers:
                st.write(
                    f"**{applied.characteristic_type}** = `{applied.answer}` → "
                    f"×{applied.factor:g} on {', '.join(applied.hazards)}"
                    + (f": {applied.reasoning}" if applied.reasoning else "")
                )

    with tab2:
        st.subheader("Selected Strategies")

        if plan.selected_strategies:
            st.dataframe(
                pd.DataFrame([
                    {
                        "rank": s.selection_rank,
                        "strategy": s.strategy_id,
                        "tier": s.strategy.selection_tier,
                        "priority": s.strategy.priority,
                        "matched hazards": ", ".join(s.matched_hazards),
                        "max score": round(s.max_matched_score, 2),
                    }
                    for s in plan.selected_strategies
                ]),
                use_container_width=True
            )
        else:
            st.info("No strategies in the catalog apply to this business's hazards.")

    with tab3:
        st.subheader("Implementation Timeline")

        for phase, entries in group_by_phase(plan.action_plan).items():
            st.markdown(f"#### {phase.replace('_', ' ').title()} ({PRESENTATION_ALIASES[phase]})")
            for entry in entries:
                st.write(f"- **{entry.strategy_id}** · step `{entry.step.step_id}` (order {entry.step.sort_order})")

    with tab4:
        if plan.notices:
            for notice in plan.notices:
                st.info(f"**{notice.category}**: {notice.message}")
        else:
            st.success("No data issues detected.")

else:
    st.info("👈 Choose a parish and business type in the sidebar and click **Build Plan** to begin.")

    st.markdown("""
    ### How Scores Are Calculated

    Each hazard's combined score multiplies the parish risk level (0-10), the
    business type's vulnerability (as a fraction of 10), an impact weight
    (1.0-2.0 from impact severity) and any characteristic multipliers, capped at 20.

    Essential strategies for scored hazards are always included; recommended and
    optional strategies compete for the remaining slots.
    """)

# Footer
st.sidebar.markdown("---")
st.sidebar.markdown(f"""
**Business Risk & Mitigation Planner**
Snapshot: `{os.path.basename(snapshot_path)}`
""")
