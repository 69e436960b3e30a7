from moviewatcher.db import Database
from moviewatcher.diff import reconcile
from moviewatcher.models import MovieSchedule, ScheduleSnapshot, Showing


class CountingDatabase(Database):
    """Database that records how often snapshots are written."""

    def __init__(self, path):
        super().__init__(path=path)
        self.writes = 0

    def put_snapshot(self, snapshot: ScheduleSnapshot) -> None:
        self.writes += 1
        super().put_snapshot(snapshot)


def build_cache(tmp_path) -> CountingDatabase:
    db = CountingDatabase(tmp_path / "cache.db")
    db.initialize()
    return db


def make_showing(showing_id: int, start_time: int = 1000) -> Showing:
    return Showing(
        id=showing_id,
        movie_id=7,
        cinema_id="PATHE1",
        start_time=start_time,
    )


def schedule(*showings: Showing) -> MovieSchedule:
    return MovieSchedule(movie_id=7, showings=list(showings))


def seed(db: Database, *ids: int) -> None:
    db.put_snapshot(ScheduleSnapshot(movie_id=7, showing_ids=frozenset(ids)))


def test_first_observation_sets_baseline(tmp_path):
    db = build_cache(tmp_path)

    delta = reconcile(db, schedule(make_showing(1), make_showing(2)))

    assert delta == []
    assert db.get_snapshot(7).showing_ids == {1, 2}


def test_delta_contains_only_new_showings(tmp_path):
    db = build_cache(tmp_path)
    seed(db, 1, 2)

    new = make_showing(3)
    delta = reconcile(db, schedule(make_showing(1), make_showing(2), new))

    assert delta == [new]
    assert db.get_snapshot(7).showing_ids == {1, 2, 3}


def test_empty_fetch_keeps_snapshot(tmp_path):
    db = build_cache(tmp_path)
    seed(db, 1, 2)
    writes_before = db.writes

    assert reconcile(db, schedule()) == []
    assert db.writes == writes_before
    assert db.get_snapshot(7).showing_ids == {1, 2}


def test_subset_fetch_does_not_rewrite_snapshot(tmp_path):
    db = build_cache(tmp_path)
    seed(db, 1, 2)
    writes_before = db.writes

    assert reconcile(db, schedule(make_showing(1))) == []
    assert reconcile(db, schedule(make_showing(1), make_showing(2))) == []
    assert db.writes == writes_before
    assert db.get_snapshot(7).showing_ids == {1, 2}


def test_delta_sorted_by_start_time_then_id(tmp_path):
    db = build_cache(tmp_path)
    seed(db, 1)

    late = make_showing(2, start_time=9000)
    early_high_id = make_showing(5, start_time=1000)
    early_low_id = make_showing(4, start_time=1000)
    delta = reconcile(db, schedule(make_showing(1), late, early_high_id, early_low_id))

    assert [showing.id for showing in delta] == [4, 5, 2]


def test_shrink_and_grow_replaces_snapshot_with_current_ids(tmp_path):
    db = build_cache(tmp_path)
    seed(db, 1, 2)

    delta = reconcile(db, schedule(make_showing(2), make_showing(3)))

    assert [showing.id for showing in delta] == [3]
    assert db.get_snapshot(7).showing_ids == {2, 3}


def test_known_showing_never_reappears_in_later_delta(tmp_path):
    db = build_cache(tmp_path)
    seed(db, 1)

    first = reconcile(db, schedule(make_showing(1), make_showing(2)))
    second = reconcile(db, schedule(make_showing(1), make_showing(2), make_showing(3)))

    assert [showing.id for showing in first] == [2]
    assert [showing.id for showing in second] == [3]
