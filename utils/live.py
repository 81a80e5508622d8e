"""
Live view over the responses collection.

Firestore calls the on_snapshot callbacks from its own watch threads, so all state sits
behind one lock and the Streamlit script only ever reads copies through snapshot().
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

import streamlit as st

from utils import firebase_db as fdb
from utils.scoring import build_student_result

logger = logging.getLogger(__name__)


class LiveScoreStore:
    """Keeps one aggregate result per student up to date while subscribed."""

    def __init__(self, client, profile_loader: Optional[Callable[[Any, str], Optional[Dict[str, Any]]]] = None):
        self._client = client
        self._load_profile = profile_loader or fdb.get_profile
        self._lock = threading.RLock()

        self._responses_watch = None
        self._round2_watches: Dict[str, Any] = {}

        self._responses: Dict[str, Dict[str, Any]] = {}
        self._profiles: Dict[str, Optional[Dict[str, Any]]] = {}
        self._submissions: Dict[str, List[Dict[str, Any]]] = {}

        self._results: List[Dict[str, Any]] = []
        self._loading = True
        self._error: Optional[BaseException] = None
        self._updated_at: Optional[datetime] = None

    # ----------------------------
    # Subscriptions
    # ----------------------------

    def start(self) -> None:
        with self._lock:
            if self._responses_watch is not None:
                return
            ref = fdb.responses_ref(self._client)
            self._responses_watch = ref.on_snapshot(self._on_responses)
            logger.info("Subscribed to live responses")

    def stop(self) -> None:
        with self._lock:
            if self._responses_watch is not None:
                self._responses_watch.unsubscribe()
                self._responses_watch = None
            for uid in list(self._round2_watches):
                watch = self._round2_watches.pop(uid)
                if watch is not None:
                    watch.unsubscribe()
            logger.info("Unsubscribed from all live collections")

    @property
    def running(self) -> bool:
        return self._responses_watch is not None

    # ----------------------------
    # Snapshot callbacks
    # ----------------------------

    def _on_responses(self, docs, changes, read_time) -> None:
        try:
            responses = {d["id"]: d for d in fdb.docs_to_dicts(docs)}
            with self._lock:
                new_uids = [uid for uid in responses if uid not in self._round2_watches]

            # Network round-trips stay outside the lock
            profiles = {uid: self._load_profile(self._client, uid) for uid in new_uids}

            with self._lock:
                for uid in [u for u in self._round2_watches if u not in responses]:
                    self._forget(uid)
                self._responses = responses
                self._profiles.update(profiles)
                for uid in new_uids:
                    if uid not in self._round2_watches:
                        self._watch_round2(uid)
                self._rebuild()
        except Exception as exc:
            self._fail(exc)

    def _on_round2(self, uid: str, docs) -> None:
        try:
            submissions = fdb.docs_to_dicts(docs)
            with self._lock:
                if uid not in self._round2_watches:
                    # Late delivery for a student that has since left the collection
                    return
                self._submissions[uid] = submissions
                self._rebuild()
        except Exception as exc:
            self._fail(exc)

    def _watch_round2(self, uid: str) -> None:
        ref = fdb.round2_ref(self._client, uid)
        # Register first: the initial snapshot may arrive before on_snapshot returns
        self._round2_watches[uid] = None
        try:
            self._round2_watches[uid] = ref.on_snapshot(lambda docs, changes, read_time: self._on_round2(uid, docs))
        except Exception:
            # Leave the uid unwatched so the next responses snapshot tries again
            self._round2_watches.pop(uid, None)
            raise
        logger.debug("Watching round2 for %s", uid)

    def _forget(self, uid: str) -> None:
        watch = self._round2_watches.pop(uid, None)
        if watch is not None:
            watch.unsubscribe()
        self._profiles.pop(uid, None)
        self._submissions.pop(uid, None)
        logger.debug("Dropped %s", uid)

    def _rebuild(self) -> None:
        self._results = [
            build_student_result(
                uid,
                response,
                self._profiles.get(uid),
                self._submissions.get(uid, []),
            )
            for uid, response in self._responses.items()
        ]
        # Loading until every listed student has delivered its first round2 snapshot
        if self._loading:
            self._loading = any(uid not in self._submissions for uid in self._responses)
        self._updated_at = datetime.now(timezone.utc)
        self._error = None
        logger.debug("Rebuilt %d results (loading=%s)", len(self._results), self._loading)

    def _fail(self, exc: BaseException) -> None:
        logger.exception("Failed to process live snapshot")
        with self._lock:
            self._error = exc

    # ----------------------------
    # Reads
    # ----------------------------

    def snapshot(self) -> Dict[str, Any]:
        """Copy of the current state: results, loading, error, updated_at."""
        with self._lock:
            return {
                "results": list(self._results),
                "loading": self._loading,
                "error": self._error,
                "updated_at": self._updated_at,
            }

    def get_result(self, uid: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            for r in self._results:
                if r["uid"] == uid:
                    return r
        return None


@st.cache_resource(show_spinner=False)
def get_live_store() -> LiveScoreStore:
    """One subscribed store per server process, shared by every session and page."""
    store = LiveScoreStore(fdb.get_client())
    store.start()
    return store
