import random
from typing import Iterable, List, Optional, Tuple

from .models import Card


def clean_text(value: Optional[str]) -> Optional[str]:
    """Trims text; blank strings count as missing."""
    if value is None:
        return None
    trimmed = value.strip()
    return trimmed or None


def get_distractors(
    correct: str,
    count: int,
    exclude_id: Optional[str],
    pool: Iterable[Card],
    rng: Optional[random.Random] = None,
) -> List[str]:
    """Picks up to `count` wrong translations from the pool. Never pads."""
    rng = rng or random.Random()
    correct_key = correct.strip().casefold()

    candidates = []
    for card in pool:
        translation = clean_text(card.translation)
        if translation is None or card.id == exclude_id:
            continue
        if translation.casefold() == correct_key:
            continue
        candidates.append(translation)
    rng.shuffle(candidates)

    seen = set()
    distractors = []
    for translation in candidates:
        if len(distractors) >= count:
            break
        key = translation.casefold()
        if key in seen:
            continue
        seen.add(key)
        distractors.append(translation)
    return distractors


def build_choice_options(
    card: Card,
    pool: Iterable[Card],
    count: int = 2,
    rng: Optional[random.Random] = None,
) -> Optional[Tuple[List[str], int]]:
    """Returns (options, correct_index), or None when the card has no translation."""
    rng = rng or random.Random()
    correct = clean_text(card.translation)
    if correct is None:
        return None
    options = [correct] + get_distractors(correct, count, card.id, pool, rng)
    rng.shuffle(options)
    return options, options.index(correct)
