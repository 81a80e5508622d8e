# config.py
import os
from typing import Any, Dict, Optional

# Optional: Name your dashboard
APP_TITLE = "Live Exam Scores"

# Firestore layout (edit if your exam app stores things elsewhere)
RESPONSES_COLLECTION = "responses"   # one document per student, keyed by uid
USERS_COLLECTION = "users"           # profile documents, same uid
ROUND2_COLLECTION = "round2"         # sub-collection under each response

# Display
TOP_PERFORMERS = 3
REFRESH_SECONDS = 2  # How often the page re-reads the live store

# (minimum percentage, label, streamlit color), checked top to bottom
BADGE_TIERS = [
    (90, "Excellent", "green"),
    (75, "Good", "blue"),
    (60, "Average", "orange"),
    (0, "Needs Improvement", "red"),
]

SORT_OPTIONS = {
    "total_score": "Sort by Total Score",
    "overall_percentage": "Sort by Percentage",
    "name": "Sort by Name",
}

ROUND_FILTERS = {
    "all": "All students",
    "round1": "Attempted Round 1",
    "round2": "Attempted Round 2",
}

def firebase_credentials(secrets: Optional[Any] = None) -> Optional[Dict[str, Any]]:
    """
    Return the service account mapping, or None to use application default credentials.
    Looks at Streamlit secrets first ([firebase] table), then FIREBASE_USE_ADC.
    """
    if secrets is None:
        import streamlit as st
        secrets = st.secrets
    try:
        account = secrets.get("firebase")
    except FileNotFoundError:
        # No secrets.toml at all
        account = None
    if account:
        return dict(account)
    if os.getenv("FIREBASE_USE_ADC") or os.getenv("GOOGLE_APPLICATION_CREDENTIALS"):
        return None
    raise RuntimeError(
        "Firebase credentials not found. "
        "Add a [firebase] service account table to .streamlit/secrets.toml "
        "or set GOOGLE_APPLICATION_CREDENTIALS."
    )
