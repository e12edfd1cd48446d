import asyncio
import math
import random
import logging
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from pydantic import BaseModel, Field

from .choices import clean_text
from .models import Card, CardSchedule, SelectionStats
from .scheduler import create_default_schedule, is_due


class SessionOptions(BaseModel):
    card_count: int = 0
    custom_words: List[Card] = Field(default_factory=list)
    language: str


class DeckBuild(BaseModel):
    deck: List[Card]
    schedules: Dict[str, CardSchedule]
    selection_stats: SelectionStats


class CancellationToken:
    """Marks one deck build; cancelled as soon as a newer build is requested."""

    def __init__(self):
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


def sanitize_custom_words(words: Iterable[Card]) -> List[Card]:
    """Trims user-authored cards, drops blank or repeated ids, marks them custom."""
    out = []
    seen = set()
    for word in words:
        card_id = clean_text(word.id)
        term = clean_text(word.term)
        if not card_id or not term or card_id in seen:
            continue
        seen.add(card_id)
        out.append(word.model_copy(update={
            "id": card_id,
            "term": term,
            "translation": clean_text(word.translation),
            "pron_hint": clean_text(word.pron_hint),
            "is_custom": True,
        }))
    return out


def normalize_options(
    card_count: float,
    custom_words: Optional[Sequence[Card]],
    language: Optional[str],
    default_language: str,
    languages: Sequence[str],
    reserved_ids: Iterable[str] = (),
) -> SessionOptions:
    """reserved_ids: catalog ids a custom word may not reuse (it would enter the queue twice)."""
    try:
        count = max(0, math.floor(card_count))
    except (TypeError, ValueError, OverflowError):
        count = 0
    if language not in languages:
        language = default_language
    reserved = set(reserved_ids)
    return SessionOptions(
        card_count=count,
        custom_words=[w for w in sanitize_custom_words(custom_words or []) if w.id not in reserved],
        language=language,
    )


def build_session_deck(
    card_count: int,
    catalog: Sequence[Card],
    schedule_map: Dict[str, CardSchedule],
    now: int,
    custom_words: Sequence[Card] = (),
    rng: Optional[random.Random] = None,
) -> Tuple[List[Card], SelectionStats]:
    """
    Selects up to card_count catalog cards, due first, then new, then future.
    Custom words ride on top of the cap. The returned deck is shuffled.
    """
    rng = rng or random.Random()
    card_count = max(0, card_count)

    # Shuffle before the stable sorts so equal due_at values don't always clump by id
    shuffled = list(catalog)
    rng.shuffle(shuffled)

    due_cards, new_cards, future_cards = [], [], []
    for card in shuffled:
        schedule = schedule_map.get(card.id)
        if schedule is None:
            new_cards.append(card)
        elif is_due(schedule, now):
            due_cards.append(card)
        else:
            future_cards.append(card)

    due_cards.sort(key=lambda c: schedule_map[c.id].due_at)
    future_cards.sort(key=lambda c: schedule_map[c.id].due_at)

    selected_due = due_cards[:card_count]
    slots = card_count - len(selected_due)
    selected_new = new_cards[:slots]
    slots -= len(selected_new)
    selected_future = future_cards[:slots]

    default_schedule = create_default_schedule(now)
    custom_ordered = sorted(
        custom_words,
        key=lambda c: schedule_map.get(c.id, default_schedule).due_at,
    )

    deck = selected_due + selected_new + selected_future + custom_ordered
    rng.shuffle(deck)

    stats = SelectionStats(
        due_available=len(due_cards),
        new_available=len(new_cards),
        selected_due=len(selected_due),
        selected_new=len(selected_new),
    )
    return deck, stats


async def load_session_deck(
    options: SessionOptions,
    catalog,
    store,
    token: CancellationToken,
    now: int,
    rng: Optional[random.Random] = None,
    overlay: Optional[Callable[[], Dict[str, CardSchedule]]] = None,
) -> Optional[DeckBuild]:
    """
    Reads schedules and builds a deck. Returns None if the token was cancelled meanwhile.

    overlay is called after the read; its entries (reviews not yet written out)
    replace the persisted ones.
    """
    cards = catalog.list_cards(options.language)
    schedules = await asyncio.to_thread(store.get, options.language)
    if token.cancelled:
        logging.debug(f"Deck build for {options.language} superseded, discarding")
        return None
    if overlay is not None:
        schedules = {**schedules, **overlay()}

    deck, stats = build_session_deck(
        options.card_count, cards, schedules, now, options.custom_words, rng
    )
    return DeckBuild(deck=deck, schedules=schedules, selection_stats=stats)
