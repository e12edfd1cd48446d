"""
Session state machine.

PROMPT -> REVEAL_DONT_KNOW | CHOICES | FEEDBACK_CORRECT
CHOICES -> FEEDBACK_CORRECT | FEEDBACK_WRONG
REVEAL_DONT_KNOW | FEEDBACK_* -> PROMPT, or cleared when nothing is left

Every transition takes a SessionState and returns a Transition holding the next
state plus the review grade to record, if any. Transitions that don't apply to
the current state return it unchanged.
"""
import random
from typing import Dict, Iterable, List, NamedTuple, Optional

from .choices import build_choice_options, clean_text
from .models import Card, ReviewGrade, SessionState, UIState

_CLEARED_CHOICE_FIELDS = {
    "choice_options": None,
    "correct_choice_index": None,
    "selected_choice_index": None,
    "current_card_was_guess": False,
}


class Transition(NamedTuple):
    state: Optional[SessionState]
    card_id: Optional[str] = None
    grade: Optional[ReviewGrade] = None


class SessionContext:
    """Everything a transition needs besides the state itself."""

    def __init__(
        self,
        deck: Iterable[Card],
        distractor_pool: Optional[Iterable[Card]] = None,
        distractor_count: int = 2,
        rng: Optional[random.Random] = None,
    ):
        self.deck = list(deck)
        self.cards: Dict[str, Card] = {card.id: card for card in self.deck}
        self.distractor_pool = list(distractor_pool) if distractor_pool is not None else self.deck
        self.distractor_count = distractor_count
        self.rng = rng or random.Random()

    def get_card(self, card_id: Optional[str]) -> Optional[Card]:
        if card_id is None:
            return None
        return self.cards.get(card_id)


def remaining(state: Optional[SessionState]) -> int:
    if state is None:
        return 0
    return max(0, state.deck_count - len(state.correct_set))


def clear_time_ms(state: Optional[SessionState]) -> Optional[int]:
    if state is None or not state.cleared or state.cleared_at is None:
        return None
    return state.cleared_at - state.started_at


def create_session(context: SessionContext, now: int) -> SessionState:
    queue = [card.id for card in context.deck]
    context.rng.shuffle(queue)
    return SessionState(
        queue=queue,
        correct_set=set(),
        deck_count=len(queue),
        started_at=now,
        cleared=not queue,
        cleared_at=now if not queue else None,
        current_card_id=queue[0] if queue else None,
        ui_state=UIState.PROMPT,
    )


def _requeue(queue: List[str], card_id: str) -> List[str]:
    return [x for x in queue if x != card_id] + [card_id]


def _can_answer(state: Optional[SessionState]) -> bool:
    return (
        state is not None
        and not state.cleared
        and state.ui_state == UIState.PROMPT
        and state.current_card_id is not None
    )


def _mark_correct(state: SessionState, now: int, **updates) -> SessionState:
    card_id = state.current_card_id
    correct_set = set(state.correct_set)
    correct_set.add(card_id)
    cleared = len(correct_set) == state.deck_count
    return state.model_copy(update={
        "queue": [x for x in state.queue if x != card_id],
        "correct_set": correct_set,
        "right_count": state.right_count + 1,
        "ui_state": UIState.FEEDBACK_CORRECT,
        "cleared": cleared,
        "cleared_at": now if cleared else state.cleared_at,
        **updates,
    })


def swipe_left(state: Optional[SessionState]) -> Transition:
    """Don't know: back of the queue, graded again."""
    if not _can_answer(state):
        return Transition(state)
    card_id = state.current_card_id
    next_state = state.model_copy(update={
        "queue": _requeue(state.queue, card_id),
        "skipped_count": state.skipped_count + 1,
        "ui_state": UIState.REVEAL_DONT_KNOW,
        "current_card_was_guess": False,
    })
    return Transition(next_state, card_id, ReviewGrade.AGAIN)


def _open_choices(state: SessionState, context: SessionContext, guess: bool) -> Optional[SessionState]:
    card = context.get_card(state.current_card_id)
    if card is None:
        return None
    built = build_choice_options(card, context.distractor_pool, context.distractor_count, context.rng)
    if built is None:
        return None
    options, correct_index = built
    update = {
        "ui_state": UIState.CHOICES,
        "choice_options": options,
        "correct_choice_index": correct_index,
        "selected_choice_index": None,
        "current_card_was_guess": guess,
    }
    if guess:
        update["guessed_count"] = state.guessed_count + 1
    return state.model_copy(update=update)


def swipe_right(state: Optional[SessionState], context: SessionContext, now: int) -> Transition:
    """Know: multiple choice, or straight to correct when the card has no translation."""
    if not _can_answer(state):
        return Transition(state)
    card = context.get_card(state.current_card_id)
    if card is not None and clean_text(card.translation) is None:
        return Transition(_mark_correct(state, now, **_CLEARED_CHOICE_FIELDS))
    next_state = _open_choices(state, context, guess=False)
    return Transition(next_state or state)


def swipe_up(state: Optional[SessionState], context: SessionContext) -> Transition:
    """Guess: multiple choice graded more gently. No-op without a translation."""
    if not _can_answer(state):
        return Transition(state)
    next_state = _open_choices(state, context, guess=True)
    return Transition(next_state or state)


def choose_option(state: Optional[SessionState], index: int, context: SessionContext, now: int) -> Transition:
    if state is None or state.ui_state != UIState.CHOICES or state.current_card_id is None:
        return Transition(state)
    card = context.get_card(state.current_card_id)
    if card is None or clean_text(card.translation) is None:
        return Transition(state)

    card_id = state.current_card_id
    correct_index = state.correct_choice_index or 0

    if index == correct_index:
        grade = ReviewGrade.GUESS if state.current_card_was_guess else ReviewGrade.GOOD
        next_state = _mark_correct(
            state, now,
            selected_choice_index=index,
            correct_choice_index=correct_index,
            current_card_was_guess=False,
        )
        return Transition(next_state, card_id, grade)

    next_state = state.model_copy(update={
        "queue": _requeue(state.queue, card_id),
        "incorrect_count": state.incorrect_count + 1,
        "ui_state": UIState.FEEDBACK_WRONG,
        "selected_choice_index": index,
        "correct_choice_index": correct_index,
        "current_card_was_guess": False,
    })
    return Transition(next_state, card_id, ReviewGrade.HARD)


def advance_to_next_card(state: Optional[SessionState], now: int) -> Transition:
    """Moves on after a reveal or feedback screen."""
    if state is None or state.cleared or state.ui_state in (UIState.PROMPT, UIState.CHOICES):
        return Transition(state)

    next_id = next((x for x in state.queue if x not in state.correct_set), None)
    if next_id is None:
        return Transition(state.model_copy(update={
            "current_card_id": None,
            "cleared": True,
            "cleared_at": now,
            "ui_state": UIState.PROMPT,
            **_CLEARED_CHOICE_FIELDS,
        }))
    return Transition(state.model_copy(update={
        "current_card_id": next_id,
        "ui_state": UIState.PROMPT,
        **_CLEARED_CHOICE_FIELDS,
    }))
