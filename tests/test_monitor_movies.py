from openpyxl import load_workbook

from monitor_movies import main
from moviewatcher.db import Database
from moviewatcher.models import ScheduleSnapshot


def test_init_creates_database(tmp_path, monkeypatch):
    db_path = tmp_path / "cli.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{db_path}")

    assert main(["--init"]) == 0
    assert db_path.exists()


def test_export_writes_workbook(tmp_path, monkeypatch):
    db_path = tmp_path / "cli.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{db_path}")
    database = Database(path=db_path)
    database.initialize()
    database.put_snapshot(ScheduleSnapshot(movie_id=42, showing_ids=frozenset({1})))

    export_path = tmp_path / "snapshots.xlsx"
    assert main(["--export", str(export_path)]) == 0

    rows = list(load_workbook(export_path).active.iter_rows(values_only=True))
    assert rows[1][:2] == (42, 1)


def test_run_requires_api_key(tmp_path, monkeypatch):
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'cli.db'}")
    monkeypatch.delenv("PATHE_API_KEY", raising=False)

    assert main(["--run"]) == 1


def test_without_action_prints_help(tmp_path, monkeypatch):
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'cli.db'}")

    assert main([]) == 1
