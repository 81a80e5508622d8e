# pages/1_📈_Live_Scores.py
import pandas as pd
import streamlit as st
from utils.live import get_live_store
from utils.scoring import (
    badge_for,
    filter_leaderboard,
    leaderboard_frame,
    sort_leaderboard,
    submissions_frame,
    top_performers,
    uid_at,
)
from config import REFRESH_SECONDS, ROUND_FILTERS, SORT_OPTIONS, TOP_PERFORMERS

st.set_page_config(page_title="Live Scores", page_icon="📈", layout="wide")

def table_view(lb: pd.DataFrame) -> pd.DataFrame:
    """Columns as shown to the proctor."""
    return pd.DataFrame({
        "Rank": lb["rank"],
        "Student": lb["name"],
        "Email": lb["email"],
        "Round 1": lb["r1_score"],
        "Round 2": [
            f"{p:g}/{t:g} ({pct}%)"
            for p, t, pct in zip(lb["r2_passed"], lb["r2_total"], lb["r2_percentage"])
        ],
        "Total": lb["total_score"],
        "Percentage": lb["overall_percentage"],
        "Performance": lb["badge"],
    })

def top_performers_ui(lb: pd.DataFrame):
    st.subheader("🏆 Top Performers")
    top = top_performers(lb, TOP_PERFORMERS)
    if top.empty:
        st.write("_Nobody matches the current filters._")
        return
    cols = st.columns(TOP_PERFORMERS)
    for i, (col, (_, row)) in enumerate(zip(cols, top.iterrows()), start=1):
        _, color = badge_for(row["overall_percentage"])
        with col:
            with st.container(border=True):
                st.markdown(f"**#{i}** &nbsp; :{color}-badge[{row['overall_percentage']}%]")
                st.markdown(f"**{row['name']}**  \n{row['email']}")
                st.metric("Total", f"{row['total_score']:g} pts")

def details_ui(result: dict):
    label, color = badge_for(result["overall_percentage"])
    st.subheader(f"👤 {result['name']}")
    st.caption(result["email"])

    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Round 1 score", f"{result['r1_score']:g}")
    c1.caption(f"✅ {result['r1_correct']:g} correct · ❌ {result['r1_wrong']:g} wrong")
    c2.metric("Round 2 passed", f"{result['r2_passed']:g}/{result['r2_total']:g}")
    c2.caption(f"{result['r2_percentage']}% of test cases")
    c3.metric("Total", f"{result['total_score']:g} pts")
    c4.metric("Overall", f"{result['overall_percentage']}%")
    c4.markdown(f":{color}-badge[{label}]")

    subs = submissions_frame(result)
    if subs.empty:
        st.write("_No Round 2 submissions yet._")
        return

    st.markdown("**Round 2 submissions:**")
    st.dataframe(
        subs.drop(columns=["code"]),
        width="stretch",
        hide_index=True,
        column_config={
            "id": None,
            "problem_id": "Problem",
            "language": "Language",
            "passed": "Passed",
            "total": "Total",
            "percentage": st.column_config.ProgressColumn("Score", format="%d%%", min_value=0, max_value=100),
            "result": "Result",
            "duration_sec": st.column_config.NumberColumn("Time (s)"),
            "exam_violations": st.column_config.NumberColumn("Violations"),
            "submitted_at": st.column_config.DatetimeColumn("Submitted"),
        },
    )
    for _, sub in subs.iterrows():
        if not sub["code"]:
            continue
        with st.expander(f"Code · {sub['problem_id'] or sub['id']} ({sub['language'] or 'unknown'})"):
            st.code(sub["code"], language=(sub["language"] or "text").lower())

def remember_selection():
    rows = st.session_state["scores_table"]["selection"]["rows"]
    st.session_state["selected_uid"] = uid_at(st.session_state.get("shown_uids", []), rows)

@st.fragment(run_every=REFRESH_SECONDS)
def live_view():
    store = get_live_store()
    state = store.snapshot()

    if state["error"] is not None:
        st.error(f"Live updates stopped: {state['error']}")

    if state["loading"]:
        st.info("Loading live results...")
        return

    lb = leaderboard_frame(state["results"])
    if lb.empty:
        st.info("No responses yet. Scores will appear here as students submit.")
        return

    # Search + filters
    c1, c2, c3 = st.columns([3, 1, 1])
    with c1:
        search = st.text_input("Search", placeholder="Search by name or email...", key="search", label_visibility="collapsed")
    with c2:
        sort_by = st.selectbox("Sort", list(SORT_OPTIONS), format_func=SORT_OPTIONS.get, key="sort_by", label_visibility="collapsed")
    with c3:
        round_filter = st.selectbox("Round", list(ROUND_FILTERS), format_func=ROUND_FILTERS.get, key="round_filter", label_visibility="collapsed")

    shown = sort_leaderboard(filter_leaderboard(lb, search, round_filter), sort_by)

    top_performers_ui(shown)

    st.divider()
    st.subheader("All Students")
    st.dataframe(
        table_view(shown),
        width="stretch",
        hide_index=True,
        on_select=remember_selection,
        selection_mode="single-row",
        key="scores_table",
        column_config={
            "Percentage": st.column_config.ProgressColumn("Percentage", format="%d%%", min_value=0, max_value=100),
        },
    )
    st.caption(f"{len(shown)} of {len(lb)} students · updated {state['updated_at']:%H:%M:%S} UTC · select a row for details")

    csv = table_view(shown).to_csv(index=False).encode("utf-8")
    st.download_button("Download Scores (CSV)", csv, "live_scores.csv", "text/csv")

    # Row positions go stale as scores reorder the table, so the panel follows the uid
    st.session_state["shown_uids"] = shown["uid"].tolist()
    uid = st.session_state.get("selected_uid")
    if uid is not None:
        result = store.get_result(uid)
        if result is not None:
            st.divider()
            details_ui(result)

def main():
    st.title("📈 Live Exam Scores")

    try:
        get_live_store()
    except RuntimeError as exc:
        st.error(str(exc))
        st.stop()

    live_view()

if __name__ == "__main__":
    main()
