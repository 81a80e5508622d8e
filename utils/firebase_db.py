"""
Firestore data access layer for the Live Exam Scores app.

- Uses firebase-admin (google-cloud-firestore under the hood).
- Reads the service account from Streamlit secrets: st.secrets["firebase"].
- Everything here is read-only: one-shot document fetches and collection references to watch.
- Functions return plain Python types (dicts, lists) to be pandas/Streamlit-friendly.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import firebase_admin
from firebase_admin import credentials, firestore

from config import RESPONSES_COLLECTION, ROUND2_COLLECTION, USERS_COLLECTION, firebase_credentials

logger = logging.getLogger(__name__)


# ----------------------------
# Client helpers
# ----------------------------

_client: Optional[Any] = None


def get_client():
    """Create (or reuse) a global Firestore client based on Streamlit secrets."""
    global _client
    if _client is not None:
        return _client

    try:
        app = firebase_admin.get_app()
    except ValueError:
        account = firebase_credentials()
        cred = credentials.Certificate(account) if account else credentials.ApplicationDefault()
        app = firebase_admin.initialize_app(cred)
        logger.info("Initialized Firebase app for project %s", app.project_id)

    _client = firestore.client(app)
    return _client


def _snapshot_to_dict(snap) -> Dict[str, Any]:
    """Document data with its id under "id"; empty documents give just the id."""
    data = snap.to_dict() or {}
    return {"id": snap.id, **data}


# ----------------------------
# References (for watches)
# ----------------------------

def responses_ref(client):
    return client.collection(RESPONSES_COLLECTION)


def round2_ref(client, uid: str):
    return client.collection(RESPONSES_COLLECTION).document(uid).collection(ROUND2_COLLECTION)


# ----------------------------
# One-shot reads
# ----------------------------

def get_profile(client, uid: str) -> Optional[Dict[str, Any]]:
    """Fetch users/{uid}; None when the student has no profile document."""
    snap = client.collection(USERS_COLLECTION).document(uid).get()
    if not snap.exists:
        return None
    return snap.to_dict() or {}


def docs_to_dicts(docs) -> List[Dict[str, Any]]:
    """Convert the DocumentSnapshots a watch delivers into dicts keyed with "id"."""
    return [_snapshot_to_dict(d) for d in docs]
