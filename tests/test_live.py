import pytest

from utils.live import LiveScoreStore

RESPONSES = "responses"


def round2_path(uid):
    return f"responses/{uid}/round2"


@pytest.fixture
def store(fake_db):
    fake_db.documents["users/u1"] = {"fullName": "Asha Rao", "email": "asha@exam.test"}
    fake_db.documents["users/u2"] = {"name": "Ben", "email": "ben@exam.test"}
    s = LiveScoreStore(fake_db)
    s.start()
    return s


def by_uid(store):
    return {r["uid"]: r for r in store.snapshot()["results"]}


def test_start_subscribes_once(fake_db, store):
    store.start()
    assert len(fake_db.active_watches(RESPONSES)) == 1
    assert store.running


def test_loading_until_every_round2_snapshot_arrives(fake_db, store):
    assert store.snapshot()["loading"]

    fake_db.push(RESPONSES, {"u1": {"round1": {"correct": 8, "wrong": 2, "score": 8}}, "u2": {}})
    assert store.snapshot()["loading"]
    assert len(fake_db.active_watches()) == 3

    fake_db.push(round2_path("u1"), {"s1": {"passed": 3, "total": 5}})
    assert store.snapshot()["loading"]

    fake_db.push(round2_path("u2"), {})
    state = store.snapshot()
    assert not state["loading"]
    assert state["updated_at"] is not None


def test_empty_collection_is_not_loading(fake_db, store):
    fake_db.push(RESPONSES, {})
    assert not store.snapshot()["loading"]
    assert store.snapshot()["results"] == []


def test_aggregates_profile_round1_and_round2(fake_db, store):
    fake_db.push(RESPONSES, {"u1": {"round1": {"correct": 8, "wrong": 2, "score": 8}}})
    fake_db.push(round2_path("u1"), {"s1": {"passed": 3, "total": 5, "language": "Python"}})

    r = by_uid(store)["u1"]
    assert r["name"] == "Asha Rao"
    assert r["email"] == "asha@exam.test"
    assert r["total_score"] == 11
    assert r["overall_percentage"] == 73
    assert r["round2"][0]["id"] == "s1"
    assert r["round2"][0]["language"] == "Python"


def test_round2_updates_rebuild_results(fake_db, store):
    fake_db.push(RESPONSES, {"u1": {"round1": {"correct": 8, "wrong": 2, "score": 8}}})
    fake_db.push(round2_path("u1"), {"s1": {"passed": 3, "total": 5}})
    fake_db.push(round2_path("u1"), {"s1": {"passed": 3, "total": 5}, "s2": {"passed": 5, "total": 5}})

    r = by_uid(store)["u1"]
    assert r["r2_passed"] == 8
    assert r["r2_total"] == 10
    assert r["total_score"] == 16


def test_responses_update_reuses_profile_and_watch(fake_db, store):
    fake_db.push(RESPONSES, {"u1": {"round1": {"score": 1}}})
    fake_db.push(RESPONSES, {"u1": {"round1": {"score": 4}}})

    assert fake_db.gets == ["users/u1"]
    assert len(fake_db.active_watches(round2_path("u1"))) == 1
    assert by_uid(store)["u1"]["r1_score"] == 4


def test_departed_student_is_unsubscribed(fake_db, store):
    fake_db.push(RESPONSES, {"u1": {}, "u2": {}})
    watch = fake_db.active_watches(round2_path("u2"))[0]

    fake_db.push(RESPONSES, {"u1": {}})
    assert not watch.active
    assert set(by_uid(store)) == {"u1"}

    # A late snapshot for the departed student is ignored
    watch.callback([], [], None)
    assert set(by_uid(store)) == {"u1"}


def test_missing_profile_uses_defaults(fake_db, store):
    fake_db.push(RESPONSES, {"ghost": {"round1": {"score": 2, "correct": 2}}})
    r = by_uid(store)["ghost"]
    assert r["name"] == "Unknown"
    assert r["email"] == "unknown@example.com"


def test_snapshot_errors_are_kept(fake_db):
    def broken_loader(client, uid):
        raise RuntimeError("permission denied")

    s = LiveScoreStore(fake_db, profile_loader=broken_loader)
    s.start()
    fake_db.push(RESPONSES, {"u1": {}})

    state = s.snapshot()
    assert isinstance(state["error"], RuntimeError)
    assert state["loading"]


def test_stop_unsubscribes_everything(fake_db, store):
    fake_db.push(RESPONSES, {"u1": {}, "u2": {}})
    store.stop()

    assert fake_db.active_watches() == []
    assert not store.running


def test_get_result(fake_db, store):
    fake_db.push(RESPONSES, {"u2": {}})
    assert store.get_result("u2")["name"] == "Ben"
    assert store.get_result("nope") is None


def test_error_clears_once_a_retry_succeeds(fake_db):
    calls = []

    def flaky_loader(client, uid):
        calls.append(uid)
        if len(calls) == 1:
            raise RuntimeError("transient")
        return {"fullName": "Asha"}

    s = LiveScoreStore(fake_db, profile_loader=flaky_loader)
    s.start()
    fake_db.push(RESPONSES, {"u1": {}})
    assert isinstance(s.snapshot()["error"], RuntimeError)

    fake_db.push(RESPONSES, {"u1": {}})
    fake_db.push(round2_path("u1"), {})

    state = s.snapshot()
    assert not state["loading"]
    assert [r["name"] for r in state["results"]] == ["Asha"]
    assert state["error"] is None


def test_failed_round2_watch_is_retried(fake_db, store):
    fake_db.failing_watches.add(round2_path("u1"))
    fake_db.push(RESPONSES, {"u1": {}})

    assert isinstance(store.snapshot()["error"], RuntimeError)
    assert fake_db.active_watches(round2_path("u1")) == []

    fake_db.push(RESPONSES, {"u1": {}})
    assert len(fake_db.active_watches(round2_path("u1"))) == 1

    fake_db.push(round2_path("u1"), {})
    state = store.snapshot()
    assert not state["loading"]
    assert state["error"] is None
