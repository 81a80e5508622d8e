import math
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd

from config import BADGE_TIERS, ROUND_FILTERS, SORT_OPTIONS, TOP_PERFORMERS

UNKNOWN_NAME = "Unknown"
UNKNOWN_EMAIL = "unknown@example.com"

LEADERBOARD_COLUMNS = [
    "rank", "uid", "name", "email",
    "r1_correct", "r1_wrong", "r1_score",
    "r2_submissions", "r2_passed", "r2_total", "r2_percentage",
    "total_score", "overall_percentage", "badge",
]

SUBMISSION_COLUMNS = [
    "id", "problem_id", "language", "passed", "total", "percentage",
    "result", "duration_sec", "exam_violations", "submitted_at", "code",
]


def _number(value: Any):
    """Numeric field with a 0 fallback for missing or junk values."""
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return 0 if isinstance(value, float) and math.isnan(value) else value
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0


def _whole_percent(value) -> int:
    """Round half up and clamp to [0, 100]."""
    return int(min(100, max(0, math.floor(value + 0.5))))


def percentage(passed, total) -> int:
    """passed/total as a whole percentage in [0, 100]; halves round up, 0 when total is 0."""
    passed, total = _number(passed), _number(total)
    if total <= 0:
        return 0
    return _whole_percent(passed / total * 100)


def display_name(profile: Optional[Dict[str, Any]]) -> str:
    if not profile:
        return UNKNOWN_NAME
    return profile.get("fullName") or profile.get("name") or profile.get("email") or UNKNOWN_NAME


def normalize_submission(data: Dict[str, Any]) -> Dict[str, Any]:
    """One round-2 submission document with defaults filled in."""
    passed = _number(data.get("passed"))
    total = _number(data.get("total"))
    pct = data.get("percentage")
    return {
        "id": data.get("id", ""),
        "problem_id": data.get("problemId") or "",
        "language": data.get("language") or "",
        "passed": passed,
        "total": total,
        "percentage": _whole_percent(_number(pct)) if pct is not None else percentage(passed, total),
        "result": data.get("result") or "",
        "duration_sec": _number(data.get("durationSec")),
        "exam_violations": _number(data.get("examViolations")),
        "submitted_at": data.get("submittedAt"),
        "code": data.get("code") or "",
    }


def build_student_result(
    uid: str,
    response: Optional[Dict[str, Any]],
    profile: Optional[Dict[str, Any]],
    submissions: List[Dict[str, Any]],
) -> Dict[str, Any]:
    """
    Combine a responses/{uid} document, the users/{uid} profile and the round2 sub-collection
    into one aggregate record.

    total_score        = round1.score + sum(round2.passed)
    overall_percentage = total_score / (round1.correct + round1.wrong + sum(round2.total))
    """
    round1 = (response or {}).get("round1") or {}
    r1_correct = _number(round1.get("correct"))
    r1_wrong = _number(round1.get("wrong"))
    r1_score = _number(round1.get("score"))

    round2 = [normalize_submission(s) for s in submissions]
    r2_passed = sum(s["passed"] for s in round2)
    r2_total = sum(s["total"] for s in round2)

    total_score = r1_score + r2_passed
    total_possible = r1_correct + r1_wrong + r2_total

    return {
        "uid": uid,
        "name": display_name(profile),
        "email": (profile or {}).get("email") or UNKNOWN_EMAIL,
        "r1_correct": r1_correct,
        "r1_wrong": r1_wrong,
        "r1_score": r1_score,
        "round2": round2,
        "r2_submissions": len(round2),
        "r2_passed": r2_passed,
        "r2_total": r2_total,
        "r2_percentage": percentage(r2_passed, r2_total),
        "total_score": total_score,
        "overall_percentage": percentage(total_score, total_possible),
    }


def badge_for(pct: int) -> Tuple[str, str]:
    """(label, color) for a percentage."""
    for threshold, label, color in BADGE_TIERS:
        if pct >= threshold:
            return label, color
    _, label, color = BADGE_TIERS[-1]
    return label, color


def leaderboard_frame(results: List[Dict[str, Any]]) -> pd.DataFrame:
    """One row per student, ranked by total score (ties share the best rank)."""
    if not results:
        return pd.DataFrame(columns=LEADERBOARD_COLUMNS)

    lb = pd.DataFrame([{k: v for k, v in r.items() if k != "round2"} for r in results])
    lb["badge"] = lb["overall_percentage"].map(lambda p: badge_for(p)[0])
    lb["rank"] = lb["total_score"].rank(method="min", ascending=False).astype(int)
    return lb[LEADERBOARD_COLUMNS]


def filter_leaderboard(lb: pd.DataFrame, search: str = "", round_filter: str = "all") -> pd.DataFrame:
    """Case-insensitive substring match on name or email, then the round participation predicate."""
    if round_filter not in ROUND_FILTERS:
        raise ValueError(f"Unknown round filter: {round_filter!r}")

    mask = pd.Series(True, index=lb.index)
    term = (search or "").strip().lower()
    if term:
        mask &= (
            lb["name"].str.lower().str.contains(term, regex=False)
            | lb["email"].str.lower().str.contains(term, regex=False)
        )
    if round_filter == "round1":
        mask &= lb["r1_score"] > 0
    elif round_filter == "round2":
        mask &= lb["r2_submissions"] > 0
    return lb[mask]


def sort_leaderboard(lb: pd.DataFrame, sort_by: str = "total_score") -> pd.DataFrame:
    """Name ascending ignoring case; numeric columns descending. Stable, so ties keep their order."""
    if sort_by not in SORT_OPTIONS:
        raise ValueError(f"Unknown sort key: {sort_by!r}")
    if sort_by == "name":
        # Case-insensitive, so "asha" sits between "Adam" and "Ben"
        ordered = lb.sort_values("name", key=lambda s: s.str.casefold(), kind="mergesort")
    else:
        ordered = lb.sort_values(sort_by, ascending=False, kind="mergesort")
    return ordered.reset_index(drop=True)


def top_performers(lb: pd.DataFrame, n: int = TOP_PERFORMERS) -> pd.DataFrame:
    """First n rows of an already filtered and sorted leaderboard."""
    return lb.head(n)


def uid_at(uids: List[str], rows: List[int]) -> Optional[str]:
    """uid of the first selected row position, or None when nothing valid is selected."""
    if rows and 0 <= rows[0] < len(uids):
        return uids[rows[0]]
    return None


def submissions_frame(result: Dict[str, Any]) -> pd.DataFrame:
    """Round-2 submissions of one student, oldest first (unknown times last)."""
    subs = pd.DataFrame(result.get("round2") or [], columns=SUBMISSION_COLUMNS)
    if subs.empty:
        return subs
    subs["submitted_at"] = pd.to_datetime(subs["submitted_at"], errors="coerce", utc=True, format="mixed")
    return subs.sort_values("submitted_at", na_position="last", kind="mergesort").reset_index(drop=True)


def overview_stats(lb: pd.DataFrame) -> Dict[str, Any]:
    """Headline numbers for the home page."""
    if lb.empty:
        return {"students": 0, "round1": 0, "round2": 0, "average_percentage": 0, "top_score": 0}
    return {
        "students": int(len(lb)),
        "round1": int((lb["r1_score"] > 0).sum()),
        "round2": int((lb["r2_submissions"] > 0).sum()),
        "average_percentage": _whole_percent(lb["overall_percentage"].mean()),
        "top_score": lb["total_score"].max().item(),
    }
