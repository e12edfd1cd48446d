import os

from flashdrill.models import CardSchedule, RunRecord
from flashdrill.store import CsvScheduleStore, MemoryScheduleStore, RunHistory

T0 = 1_700_000_000_000


def test_csv_store_saves_whole_map(tmp_path):
    store = CsvScheduleStore(str(tmp_path))
    schedules = {
        "1": CardSchedule(due_at=T0, interval_days=2, ease=2.55, repetitions=1, lapses=0, last_reviewed_at=T0 - 5),
        "abc": CardSchedule(due_at=T0 + 10, interval_days=0, ease=2.5),
    }
    store.set("pt", schedules)
    assert os.path.exists(store.file_path("pt"))
    assert store.get("pt") == schedules
    assert store.get("fr") == {}

    store.set("pt", {"abc": schedules["abc"]})
    assert list(store.get("pt")) == ["abc"]


def test_csv_store_drops_malformed_rows(tmp_path):
    path = tmp_path / "schedules_pt.csv"
    path.write_text(
        "card_id,due_at,interval_days,ease,repetitions,lapses,last_reviewed_at\n"
        f"ok,{T0},1,2.5,1,0,{T0}\n"
        f"no_ease,{T0},1,,1,0,\n"
        f"ease_too_high,{T0},1,5.0,1,0,\n"
        f"infinite_due,inf,1,2.5,1,0,\n"
        f"negative_lapses,{T0},1,2.5,1,-1,\n"
        f"text_interval,{T0},soon,2.5,1,0,\n"
        f",{T0},1,2.5,1,0,\n"
        f"never_reviewed,{T0},0,2.5,0,0,\n",
        encoding="utf-8",
    )
    schedules = CsvScheduleStore(str(tmp_path)).get("pt")
    assert sorted(schedules) == ["never_reviewed", "ok"]
    assert schedules["ok"].last_reviewed_at == T0
    assert schedules["never_reviewed"].last_reviewed_at is None


def test_csv_store_tolerates_missing_and_empty_files(tmp_path):
    store = CsvScheduleStore(str(tmp_path))
    assert store.get("pt") == {}
    (tmp_path / "schedules_pt.csv").write_text("", encoding="utf-8")
    assert store.get("pt") == {}


def test_memory_store_copies():
    store = MemoryScheduleStore()
    schedules = {"1": CardSchedule(due_at=T0)}
    store.set("pt", schedules)
    schedules["2"] = CardSchedule(due_at=T0)
    assert list(store.get("pt")) == ["1"]
    assert store.saves == 1


def test_run_history(tmp_path):
    history = RunHistory(str(tmp_path))
    assert history.best_clear_ms("pt") is None
    assert history.runs_count("pt") == 0

    for clear_ms in (9000, 4000, 6000):
        history.record(RunRecord(language="pt", started_at=T0, cleared_at=T0 + clear_ms, clear_ms=clear_ms, deck_count=5))
    history.record(RunRecord(language="fr", started_at=T0, cleared_at=T0 + 100, clear_ms=100, deck_count=1))

    assert history.best_clear_ms("pt") == 4000
    assert history.runs_count("pt") == 3
    assert history.best_clear_ms("fr") == 100
    assert history.runs_count("fr") == 1
