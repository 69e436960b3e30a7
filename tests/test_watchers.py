import json
import sys

import pytest

from moviewatcher.errors import WatcherFileError
from moviewatcher.models import FilterOption
from moviewatcher.watchers import load_watcher_file


def write_file(tmp_path, data):
    path = tmp_path / "watchers.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def test_load_watcher_file_reads_watchers_and_contacts(tmp_path):
    path = write_file(tmp_path, {
        "users": [
            {
                "id": "u-1",
                "email": "user@example.com",
                "phone_number": "+31612345678",
                "notifications": ["sms", "EMAIL"],
            }
        ],
        "watchers": [
            {
                "id": "w-1",
                "user_id": "u-1",
                "movie_id": 42,
                "cinema_id": "PATHE1",
                "name": "Dune IMAX",
                "filters": {
                    "start_after": 1000,
                    "start_before": 5000,
                    "imax": "YES",
                    "is_3d": "NOPREFERENCE",
                    "nl": False,
                },
            },
            {
                "id": "w-2",
                "user_id": "u-1",
                "movie_id": 43,
                "cinema_id": "PATHE2",
                "active": False,
            },
        ],
    })

    loaded = load_watcher_file(path)

    assert [watcher.id for watcher in loaded.watchers] == ["w-1"]
    watcher = loaded.watchers[0]
    assert watcher.movie_id == 42
    assert watcher.filters.start_before == 5000
    assert watcher.filters.imax is FilterOption.YES
    assert watcher.filters.is_3d is FilterOption.NO_PREFERENCE
    assert watcher.filters.nl is FilterOption.NO
    assert watcher.filters.laser is FilterOption.NO_PREFERENCE
    assert loaded.contacts["u-1"].channels == ("SMS", "EMAIL")


def test_load_watcher_file_defaults_window_and_name(tmp_path):
    path = write_file(tmp_path, {
        "watchers": [{"id": "w-1", "user_id": "u-1", "movie_id": "7", "cinema_id": "PATHE3"}],
    })

    watcher = load_watcher_file(path).watchers[0]

    assert watcher.name == "w-1"
    assert watcher.movie_id == 7
    assert watcher.filters.start_after == 0
    assert watcher.filters.start_before == sys.maxsize


@pytest.mark.parametrize(
    "content",
    [
        "not json",
        json.dumps(["list"]),
        json.dumps({"watchers": [{"id": "w-1"}]}),
        json.dumps({"watchers": [{"id": "w-1", "user_id": "u", "movie_id": 1,
                                   "cinema_id": "PATHE1", "filters": {"imax": "maybe"}}]}),
        json.dumps({"users": [{"email": "missing-id@example.com"}]}),
        json.dumps({"watchers": [{"id": "w-1", "user_id": "u", "movie_id": 1,
                                   "cinema_id": "PATHE1", "filters": ["imax"]}]}),
    ],
)
def test_load_watcher_file_rejects_invalid_content(tmp_path, content):
    path = tmp_path / "watchers.json"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(WatcherFileError):
        load_watcher_file(path)


def test_load_watcher_file_missing_file(tmp_path):
    with pytest.raises(WatcherFileError):
        load_watcher_file(tmp_path / "missing.json")
