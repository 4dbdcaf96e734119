"""TeamMate organizer - Streamlit app.

Load participants from CSV, choose a team size, form balanced teams with the
concurrent allocator, inspect leftovers and save the teams back to CSV.
The participant survey lives under pages/.
"""

import logging

import plotly.graph_objects as go  # type: ignore[import-untyped]
import streamlit as st
from dotenv import load_dotenv

from teammate.config import FormationSettings, settings_from_env
from teammate.engine.statistics import personality_distribution, summarize_teams
from teammate.logging_setup import configure_logging
from teammate.organizer import OrganizerSession
from teammate.participant_repository import ParticipantLoadTimeout

load_dotenv()

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Page config
# ---------------------------------------------------------------------------
st.set_page_config(page_title="TeamMate Organizer", page_icon="🧩", layout="wide")
st.title("🧩 TeamMate - Balanced Team Formation")

try:
    base_settings = settings_from_env()
except ValueError as e:
    st.error(f"Invalid configuration: {e}")
    st.stop()

configure_logging(base_settings.log_dir)


# ---------------------------------------------------------------------------
# Sidebar settings
# ---------------------------------------------------------------------------
with st.sidebar:
    st.header("⚙️ Settings")
    team_size = st.slider(
        "Team size",
        min_value=base_settings.min_team_size,
        max_value=base_settings.max_team_size,
        value=base_settings.team_size,
    )
    with st.expander("🔧 Advanced", expanded=False):
        formation_timeout = st.number_input(
            "Formation timeout (seconds)",
            min_value=0.0,
            value=float(base_settings.formation_timeout),
            step=5.0,
        )
        load_timeout = st.number_input(
            "Load timeout (seconds)",
            min_value=0.0,
            value=float(base_settings.load_timeout),
            step=5.0,
        )
        strategy = st.selectbox(
            "Seat selection",
            options=["random", "skill_balanced"],
            index=0 if base_settings.selection_strategy == "random" else 1,
            help="random: first suitable candidate; skill_balanced: candidate closest to the pool's mean skill",
        )
        allow_relaxed = st.checkbox(
            "Allow relaxed Thinker cap (up to 3)",
            value=base_settings.allow_relaxed_thinkers,
        )
        seed_text = st.text_input(
            "Random seed (optional)",
            value="" if base_settings.seed is None else str(base_settings.seed),
        )

    csv_path = st.text_input("Participants CSV", value=base_settings.participants_file)

try:
    seed = int(seed_text) if seed_text.strip() else None
except ValueError:
    st.sidebar.warning("Seed must be an integer; ignoring it")
    seed = None

settings = FormationSettings(**{
    **base_settings.model_dump(),
    "team_size": team_size,
    "formation_timeout": formation_timeout,
    "load_timeout": load_timeout,
    "selection_strategy": strategy,
    "allow_relaxed_thinkers": allow_relaxed,
    "seed": seed,
    "participants_file": csv_path,
})


# ---------------------------------------------------------------------------
# Session state
# ---------------------------------------------------------------------------
if "organizer" not in st.session_state:
    st.session_state.organizer = OrganizerSession(settings)

session: OrganizerSession = st.session_state.organizer
session.settings = settings
session.set_team_size(team_size)


# ---------------------------------------------------------------------------
# Participants
# ---------------------------------------------------------------------------
st.subheader("👥 Participants")
if st.button("📂 Load participants", type="primary"):
    try:
        session.load_participants(csv_path)
        st.success(f"Loaded {len(session.participants)} participants")
    except FileNotFoundError:
        st.error(f"File not found: {csv_path}")
    except ParticipantLoadTimeout:
        st.error("Loading took too long. Check the file or raise the load timeout.")
    except ValueError as e:
        st.error(f"Error loading CSV: {e}")

participants = session.participants
if not participants:
    st.info("No participants loaded yet.")
else:
    dist = personality_distribution(participants)
    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Participants", len(participants))
    c2.metric("Leaders", dist["Leader"])
    c3.metric("Balanced", dist["Balanced"])
    c4.metric("Thinkers", dist["Thinker"])
    with st.expander(f"All participants ({len(participants)})", expanded=False):
        st.dataframe(
            [p.model_dump() for p in participants],
            use_container_width=True,
            hide_index=True,
        )

st.divider()


# ---------------------------------------------------------------------------
# Formation
# ---------------------------------------------------------------------------
st.subheader("🧮 Form teams")
form_disabled = len(participants) < team_size
if form_disabled and participants:
    st.warning(f"Not enough participants! Need at least {team_size}.")

if st.button("🚀 Form balanced teams", disabled=form_disabled or not participants):
    with st.spinner("Forming teams..."):
        report = session.form_teams()
    if report.status == "formed":
        st.success(
            f"Formed {len(report.teams)} teams in {report.elapsed_seconds:.2f}s "
            f"({report.failed_slots} slots could not be completed)"
        )
    elif report.status == "timeout":
        st.error(report.reason)
    else:
        st.warning(f"No teams could be formed: {report.reason}")

report = session.last_report
teams = session.formed_teams

if teams:
    stats = summarize_teams(teams)
    s1, s2, s3, s4 = st.columns(4)
    s1.metric("Lowest team avg", f"{stats.lowest_average:.2f}")
    s2.metric("Highest team avg", f"{stats.highest_average:.2f}")
    s3.metric("Overall avg", f"{stats.overall_average:.2f}")
    s4.metric("Skill range", f"{stats.skill_range:.2f}", help=stats.rating_label)
    st.caption(f"Balance: **{stats.rating_label}**")

    if report is not None and report.optimization is not None:
        opt = report.optimization
        st.caption(
            f"Optimizer: {len(opt.swaps)} swaps in {opt.iterations} iterations, "
            f"range {opt.initial_range:.2f} → {opt.final_range:.2f}"
        )

    fig = go.Figure(go.Bar(
        x=[f"Team {t.team_number}" for t in teams],
        y=[t.average_skill for t in teams],
        text=[f"{t.average_skill:.1f}" for t in teams],
        textposition="outside",
        marker_color="#4A90D9",
    ))
    fig.update_layout(title="Average skill per team", yaxis_range=[0, 10.5], height=350)
    st.plotly_chart(fig, use_container_width=True)

    for team in teams:
        with st.expander(team.summary(), expanded=False):
            st.dataframe(
                [
                    {
                        "ID": m.id,
                        "Name": m.name,
                        "Game": m.preferred_game,
                        "Role": m.preferred_role,
                        "Skill": m.skill_level,
                        "Score": m.personality_score,
                        "Type": m.personality_type,
                    }
                    for m in team.members
                ],
                use_container_width=True,
                hide_index=True,
            )

    if st.button("💾 Save teams to CSV"):
        try:
            path = session.save_teams()
            st.success(f"All teams saved to {path}")
        except ValueError as e:
            st.error(f"Save failed: {e}")

if report is not None and report.status == "formed" and report.unassigned:
    st.subheader("🚫 Participants not assigned to any team")
    st.caption(report.reason)
    st.dataframe(
        [
            {
                "ID": p.id,
                "Name": p.name,
                "Skill": p.skill_level,
                "Type": p.personality_type,
            }
            for p in report.unassigned
        ],
        use_container_width=True,
        hide_index=True,
    )
