import math
from typing import Optional

from .models import CardSchedule, ReviewGrade

DAY_MS = 24 * 60 * 60 * 1000
MIN_EASE = 1.3
MAX_EASE = 3.0
DEFAULT_EASE = 2.5


def _clamp_ease(ease: float) -> float:
    # 4dp: repeated +/- steps must not accumulate float noise
    return round(min(MAX_EASE, max(MIN_EASE, ease)), 4)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _base_interval(schedule: CardSchedule) -> int:
    return max(1, schedule.interval_days or 1)


def create_default_schedule(now: int) -> CardSchedule:
    return CardSchedule(due_at=now, interval_days=0, ease=DEFAULT_EASE, repetitions=0, lapses=0)


def is_due(schedule: CardSchedule, now: int) -> bool:
    return schedule.due_at <= now


def apply_review_grade(schedule: Optional[CardSchedule], grade: ReviewGrade, now: int) -> CardSchedule:
    """
    Simplified SM-2 variant.

    again -- lapse: interval back to 1 day, repetitions reset, ease -0.20
    hard  -- interval x1.2, ease -0.15
    guess -- interval x max(1.15, ease * 0.75), ease -0.05
    good  -- fixed 2 days while repetitions <= 1, then interval x ease; ease +0.05

    The input schedule is never mutated; a missing schedule starts from the defaults.
    """
    current = schedule if schedule is not None else create_default_schedule(now)
    grade = ReviewGrade(grade)

    if grade == ReviewGrade.AGAIN:
        return current.model_copy(update={
            "ease": _clamp_ease(current.ease - 0.2),
            "lapses": current.lapses + 1,
            "repetitions": 0,
            "interval_days": 1,
            "due_at": now + DAY_MS,
            "last_reviewed_at": now,
        })

    if grade == ReviewGrade.HARD:
        interval = max(1, _round_half_up(_base_interval(current) * 1.2))
        ease = _clamp_ease(current.ease - 0.15)
    elif grade == ReviewGrade.GUESS:
        # ease factor taken before the decrement
        interval = max(1, _round_half_up(_base_interval(current) * max(1.15, current.ease * 0.75)))
        ease = _clamp_ease(current.ease - 0.05)
    elif current.repetitions <= 1:
        interval = 2
        ease = _clamp_ease(current.ease + 0.05)
    else:
        interval = max(1, _round_half_up(_base_interval(current) * current.ease))
        ease = _clamp_ease(current.ease + 0.05)

    return current.model_copy(update={
        "ease": ease,
        "repetitions": current.repetitions + 1,
        "interval_days": interval,
        "due_at": now + interval * DAY_MS,
        "last_reviewed_at": now,
    })
