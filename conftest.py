import random

import pytest

from flashdrill.config import Settings
from flashdrill.models import Card
from flashdrill.services import PracticeService
from flashdrill.store import MemoryScheduleStore, RunHistory

T0 = 1_700_000_000_000


class FakeClock:
    """Deterministic ms clock; every read moves forward by `step`."""

    def __init__(self, start=T0, step=1000):
        self.now = start
        self.step = step

    def __call__(self):
        self.now += self.step
        return self.now


def make_cards(count, prefix="c", translated=True):
    return [
        Card(id=f"{prefix}{i}", term=f"term {i}", translation=f"meaning {i}" if translated else None)
        for i in range(count)
    ]


@pytest.fixture
def settings(tmp_path):
    return Settings(data_dir=str(tmp_path), save_debounce_seconds=0.0, _env_file=None)


@pytest.fixture
def store():
    return MemoryScheduleStore()


@pytest.fixture
def service(settings, store, tmp_path):
    return PracticeService(
        settings=settings,
        store=store,
        run_history=RunHistory(str(tmp_path)),
        rng=random.Random(7),
        clock=FakeClock(),
    )
