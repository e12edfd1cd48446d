import os
import math
import logging
from typing import Dict, Optional

import pandas as pd

from .models import CardSchedule, RunRecord
from .scheduler import MIN_EASE, MAX_EASE

SCHEDULE_COLUMNS = ["card_id", "due_at", "interval_days", "ease", "repetitions", "lapses", "last_reviewed_at"]
RUN_COLUMNS = list(RunRecord.model_fields)


def _finite(value) -> Optional[float]:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def parse_schedule(row: dict) -> Optional[CardSchedule]:
    """Validates one persisted row. Returns None for anything malformed."""
    values = {}
    for field in ("due_at", "interval_days", "ease", "repetitions", "lapses"):
        number = _finite(row.get(field))
        if number is None:
            return None
        values[field] = number

    if not MIN_EASE <= values["ease"] <= MAX_EASE:
        return None
    if values["due_at"] < 0 or values["interval_days"] < 0 or values["repetitions"] < 0 or values["lapses"] < 0:
        return None

    last_reviewed_at = None
    raw_last = row.get("last_reviewed_at")
    if raw_last is not None and not (isinstance(raw_last, float) and math.isnan(raw_last)) and raw_last != "":
        last = _finite(raw_last)
        if last is None:
            return None
        last_reviewed_at = int(last)

    return CardSchedule(
        due_at=int(values["due_at"]),
        interval_days=int(values["interval_days"]),
        ease=values["ease"],
        repetitions=int(values["repetitions"]),
        lapses=int(values["lapses"]),
        last_reviewed_at=last_reviewed_at,
    )


class ScheduleStore:
    """Whole-map get/set of card schedules per language."""

    def get(self, language: str) -> Dict[str, CardSchedule]:
        raise NotImplementedError

    def set(self, language: str, schedules: Dict[str, CardSchedule]) -> None:
        raise NotImplementedError


class MemoryScheduleStore(ScheduleStore):
    def __init__(self, initial: Optional[Dict[str, Dict[str, CardSchedule]]] = None):
        self.data: Dict[str, Dict[str, CardSchedule]] = {k: dict(v) for k, v in (initial or {}).items()}
        self.saves = 0

    def get(self, language):
        return dict(self.data.get(language, {}))

    def set(self, language, schedules):
        self.data[language] = dict(schedules)
        self.saves += 1


class CsvScheduleStore(ScheduleStore):
    """One CSV per language, rewritten wholesale on every save."""

    def __init__(self, data_dir: str = "data"):
        self.data_dir = data_dir

    def file_path(self, language: str) -> str:
        return os.path.join(self.data_dir, f"schedules_{language}.csv")

    def get(self, language):
        path = self.file_path(language)
        if not os.path.exists(path):
            return {}
        try:
            df = pd.read_csv(path, encoding="utf-8", dtype={"card_id": str})
        except pd.errors.EmptyDataError:
            return {}
        except (OSError, ValueError, pd.errors.ParserError) as e:
            logging.error(f"Error loading schedules from {path}: {e}")
            return {}
        if "card_id" not in df.columns:
            logging.warning(f"Schedule file {path} has no card_id column, ignoring it")
            return {}

        schedules = {}
        dropped = 0
        for row in df.to_dict("records"):
            card_id = row.get("card_id")
            schedule = parse_schedule(row) if isinstance(card_id, str) and card_id.strip() else None
            if schedule is None:
                dropped += 1
                continue
            schedules[card_id.strip()] = schedule
        if dropped:
            logging.warning(f"Dropped {dropped} malformed schedule rows from {path}")
        return schedules

    def set(self, language, schedules):
        os.makedirs(self.data_dir, exist_ok=True)
        rows = [{"card_id": card_id, **schedule.model_dump()} for card_id, schedule in schedules.items()]
        df = pd.DataFrame(rows, columns=SCHEDULE_COLUMNS)
        df["last_reviewed_at"] = df["last_reviewed_at"].astype("Int64")
        path = self.file_path(language)
        tmp_path = path + ".tmp"
        df.to_csv(tmp_path, index=False, encoding="utf-8")
        os.replace(tmp_path, path)


class RunHistory:
    """Cleared-session log, used for best time and run count."""

    def __init__(self, data_dir: str = "data"):
        self.file_path = os.path.join(data_dir, "runs.csv")

    def load(self) -> pd.DataFrame:
        if not os.path.exists(self.file_path):
            return pd.DataFrame(columns=RUN_COLUMNS)
        try:
            df = pd.read_csv(self.file_path, encoding="utf-8")
        except pd.errors.EmptyDataError:
            return pd.DataFrame(columns=RUN_COLUMNS)
        except (OSError, ValueError, pd.errors.ParserError) as e:
            logging.error(f"Error loading run history: {e}")
            return pd.DataFrame(columns=RUN_COLUMNS)
        for col in RUN_COLUMNS:
            if col not in df.columns:
                df[col] = pd.NA
        df["clear_ms"] = pd.to_numeric(df["clear_ms"], errors="coerce")
        return df[RUN_COLUMNS]

    def record(self, run: RunRecord) -> None:
        os.makedirs(os.path.dirname(self.file_path) or ".", exist_ok=True)
        df = pd.DataFrame([run.model_dump()], columns=RUN_COLUMNS)
        write_header = not os.path.exists(self.file_path) or os.path.getsize(self.file_path) == 0
        df.to_csv(self.file_path, mode="a", header=write_header, index=False, encoding="utf-8")

    def _for_language(self, language: str) -> pd.DataFrame:
        df = self.load()
        return df[(df["language"] == language) & df["clear_ms"].notna() & (df["clear_ms"] >= 0)]

    def best_clear_ms(self, language: str) -> Optional[int]:
        runs = self._for_language(language)
        if runs.empty:
            return None
        return int(runs["clear_ms"].min())

    def runs_count(self, language: str) -> int:
        return int(len(self._for_language(language)))
