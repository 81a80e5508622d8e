# app.py
import logging
import streamlit as st
from utils.live import get_live_store
from utils.scoring import leaderboard_frame, overview_stats
from config import APP_TITLE, REFRESH_SECONDS

st.set_page_config(page_title=APP_TITLE, page_icon="📈", layout="wide")

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

@st.fragment(run_every=REFRESH_SECONDS)
def overview():
    state = get_live_store().snapshot()
    if state["loading"]:
        st.info("Loading live results...")
        return

    stats = overview_stats(leaderboard_frame(state["results"]))
    c1, c2, c3, c4, c5 = st.columns(5)
    c1.metric("Students", stats["students"])
    c2.metric("Attempted Round 1", stats["round1"])
    c3.metric("Attempted Round 2", stats["round2"])
    c4.metric("Average", f"{stats['average_percentage']}%")
    c5.metric("Top score", f"{stats['top_score']:g} pts")

def main():
    st.title(APP_TITLE)
    st.caption("Round 1 and Round 2 results, straight from Firestore as students submit")

    try:
        get_live_store()
    except RuntimeError as exc:
        st.error(str(exc))
        st.stop()

    overview()
    st.markdown("Open **Live Scores** in the left sidebar for the full leaderboard.")

    st.divider()
    st.subheader("Tips")
    st.write(
        "- Total score is the Round 1 score plus every passed Round 2 test case.\n"
        "- Percentage is the total score over Round 1 questions answered plus all Round 2 test cases.\n"
        "- Badges: 90%+ Excellent, 75%+ Good, 60%+ Average, otherwise Needs Improvement.\n"
        "- This view is read-only; nothing here changes the exam data."
    )

if __name__ == "__main__":
    main()
