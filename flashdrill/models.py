from pydantic import BaseModel, Field
from typing import Optional, List, Set
from enum import Enum


class ReviewGrade(str, Enum):
    AGAIN = "again"
    HARD = "hard"
    GOOD = "good"
    GUESS = "guess"


class UIState(str, Enum):
    PROMPT = "PROMPT"
    REVEAL_DONT_KNOW = "REVEAL_DONT_KNOW"
    CHOICES = "CHOICES"
    FEEDBACK_CORRECT = "FEEDBACK_CORRECT"
    FEEDBACK_WRONG = "FEEDBACK_WRONG"


class Card(BaseModel):
    id: str
    term: str
    translation: Optional[str] = None
    pron_hint: Optional[str] = None
    is_custom: bool = False


class CardSchedule(BaseModel):
    due_at: int  # ms epoch
    interval_days: int = 0
    ease: float = 2.5
    repetitions: int = 0
    lapses: int = 0
    last_reviewed_at: Optional[int] = None


class SelectionStats(BaseModel):
    due_available: int = 0
    new_available: int = 0
    selected_due: int = 0
    selected_new: int = 0


class SessionState(BaseModel):
    queue: List[str]
    correct_set: Set[str] = Field(default_factory=set)
    deck_count: int
    started_at: int
    cleared: bool = False
    cleared_at: Optional[int] = None
    current_card_id: Optional[str] = None
    ui_state: UIState = UIState.PROMPT
    # Transient fields, only meaningful in CHOICES and the feedback states
    choice_options: Optional[List[str]] = None
    correct_choice_index: Optional[int] = None
    selected_choice_index: Optional[int] = None
    current_card_was_guess: bool = False
    right_count: int = 0
    incorrect_count: int = 0
    skipped_count: int = 0
    guessed_count: int = 0


class ReviewRecord(BaseModel):
    card_id: str
    grade: ReviewGrade
    schedule: CardSchedule


class RunRecord(BaseModel):
    language: str
    started_at: int
    cleared_at: int
    clear_ms: int
    deck_count: int
    right_count: int = 0
    incorrect_count: int = 0
    skipped_count: int = 0
    guessed_count: int = 0


# --- API bodies ---

class StartSessionRequest(BaseModel):
    card_count: Optional[float] = None
    custom_words: List[Card] = Field(default_factory=list)
    language: Optional[str] = None


class NewSessionRequest(BaseModel):
    card_count: Optional[float] = None


class ChooseRequest(BaseModel):
    index: int


class DebugInfo(BaseModel):
    current_card_schedule: Optional[CardSchedule] = None
    last_review: Optional[ReviewRecord] = None


class SessionView(BaseModel):
    session: Optional[SessionState] = None
    current_card: Optional[Card] = None
    remaining: int = 0
    clear_time_ms: Optional[int] = None
    selection_stats: SelectionStats = Field(default_factory=SelectionStats)
    debug: DebugInfo = Field(default_factory=DebugInfo)


class RunStats(BaseModel):
    language: str
    best_clear_ms: Optional[int] = None
    runs_count: int = 0
