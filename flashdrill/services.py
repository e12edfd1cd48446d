import time
import random
import asyncio
import logging
from typing import Dict, List, Optional

from .catalog import CardCatalog
from .config import Settings, get_settings
from .deck import CancellationToken, SessionOptions, load_session_deck, normalize_options
from .models import (
    Card, CardSchedule, DebugInfo, ReviewGrade, ReviewRecord, RunRecord, RunStats,
    SelectionStats, SessionState, SessionView,
)
from .persistence import ScheduleSaver
from .scheduler import apply_review_grade
from .store import CsvScheduleStore, RunHistory, ScheduleStore
from . import session

# Configure logging
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')


def now_ms() -> int:
    return int(time.time() * 1000)


class PracticeService:
    """Owns the one live practice session plus the schedule map of its language."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        catalog: Optional[CardCatalog] = None,
        store: Optional[ScheduleStore] = None,
        run_history: Optional[RunHistory] = None,
        rng: Optional[random.Random] = None,
        clock=now_ms,
    ):
        self.settings = settings or get_settings()
        self.catalog = catalog or CardCatalog(self.settings.catalog_path, self.settings.default_language)
        self.store = store or CsvScheduleStore(self.settings.data_dir)
        self.run_history = run_history or RunHistory(self.settings.data_dir)
        self.saver = ScheduleSaver(self.store, self.settings.save_debounce_seconds)
        self.rng = rng or random.Random()
        self.clock = clock

        self.state: Optional[SessionState] = None
        self.context: Optional[session.SessionContext] = None
        self.options: Optional[SessionOptions] = None
        self.schedules: Dict[str, CardSchedule] = {}
        self.schedules_language: Optional[str] = None
        self.selection_stats = SelectionStats()
        self.last_review: Optional[ReviewRecord] = None
        self._start_token: Optional[CancellationToken] = None

    def load_data(self) -> bool:
        """Loads the CSV catalog if one is configured."""
        if not self.settings.catalog_path:
            return True
        return self.catalog.load_data()

    # --- Session lifecycle ---

    async def start_session(
        self,
        card_count: Optional[float] = None,
        custom_words: Optional[List[Card]] = None,
        language: Optional[str] = None,
    ) -> Optional[SessionState]:
        if card_count is None:
            card_count = self.settings.default_card_count
        options = normalize_options(
            card_count,
            custom_words,
            language,
            self.settings.default_language,
            self.settings.languages,
            reserved_ids=self.catalog.card_ids(),
        )
        return await self._start_from_options(options)

    async def start_new_session(self, card_count: Optional[float] = None) -> Optional[SessionState]:
        """Restarts with the previous options, optionally with a new card count."""
        previous = self.options
        if previous is None:
            return await self.start_session(card_count or 0)
        return await self.start_session(
            previous.card_count if card_count is None else card_count,
            previous.custom_words,
            previous.language,
        )

    async def _start_from_options(self, options: SessionOptions) -> Optional[SessionState]:
        if self._start_token is not None:
            self._start_token.cancel()
        token = CancellationToken()
        self._start_token = token

        # Reviews still waiting in the saver must reach the store before it is read
        await self.saver.flush()
        build = await load_session_deck(
            options, self.catalog, self.store, token, self.clock(), self.rng,
            overlay=lambda: self._unsaved_schedules(options.language),
        )
        if build is None or token.cancelled:
            return None

        pool = self.catalog.list_cards(options.language) + options.custom_words
        self.context = session.SessionContext(build.deck, pool, self.settings.distractor_count, self.rng)
        self.schedules = build.schedules
        self.schedules_language = options.language
        self.selection_stats = build.selection_stats
        self.last_review = None
        self.options = options
        self.state = session.create_session(self.context, self.clock())
        self._start_token = None

        stats = self.selection_stats
        logging.info(
            f"Started {options.language} session: {self.state.deck_count} cards "
            f"(due {stats.selected_due}/{stats.due_available}, new {stats.selected_new}/{stats.new_available}, "
            f"custom {len(options.custom_words)})"
        )
        return self.state

    def _unsaved_schedules(self, language: str) -> Dict[str, CardSchedule]:
        """In-memory schedules for language; they are never older than the store's."""
        if language != self.schedules_language:
            return {}
        return self.schedules

    def stop_session(self) -> None:
        if self._start_token is not None:
            self._start_token.cancel()
            self._start_token = None
        self.state = None
        self.context = None

    # --- Learner actions ---

    def swipe_left(self) -> Optional[SessionState]:
        return self._apply(session.swipe_left(self.state))

    def swipe_right(self) -> Optional[SessionState]:
        if self.context is None:
            return self.state
        return self._apply(session.swipe_right(self.state, self.context, self.clock()))

    def swipe_up(self) -> Optional[SessionState]:
        if self.context is None:
            return self.state
        return self._apply(session.swipe_up(self.state, self.context))

    def choose_option(self, index: int) -> Optional[SessionState]:
        if self.context is None:
            return self.state
        return self._apply(session.choose_option(self.state, index, self.context, self.clock()))

    def advance_to_next_card(self) -> Optional[SessionState]:
        return self._apply(session.advance_to_next_card(self.state, self.clock()))

    def _apply(self, transition: session.Transition) -> Optional[SessionState]:
        previous = self.state
        self.state = transition.state
        if transition.grade is not None:
            self._record_review(transition.card_id, transition.grade)
        if self.state is not None and self.state.cleared and previous is not None and not previous.cleared:
            self._record_run()
        return self.state

    # --- Persistence ---

    def _record_review(self, card_id: str, grade: ReviewGrade):
        schedule = apply_review_grade(self.schedules.get(card_id), grade, self.clock())
        self.schedules = {**self.schedules, card_id: schedule}
        self.last_review = ReviewRecord(card_id=card_id, grade=grade, schedule=schedule)
        self._save_schedules()

    def _save_schedules(self):
        language = self.schedules_language or self.settings.default_language
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            # No event loop (plain synchronous caller): write inline
            try:
                self.store.set(language, self.schedules)
            except Exception as e:
                logging.error(f"Saving schedules for {language} failed: {e}")
            return
        self.saver.submit(language, self.schedules)

    def _record_run(self):
        state = self.state
        elapsed = session.clear_time_ms(state)
        logging.info(f"Session cleared in {elapsed} ms ({state.deck_count} cards)")
        if state.deck_count == 0 or elapsed is None:
            return
        run = RunRecord(
            language=self.options.language if self.options else self.settings.default_language,
            started_at=state.started_at,
            cleared_at=state.cleared_at,
            clear_ms=elapsed,
            deck_count=state.deck_count,
            right_count=state.right_count,
            incorrect_count=state.incorrect_count,
            skipped_count=state.skipped_count,
            guessed_count=state.guessed_count,
        )
        try:
            self.run_history.record(run)
        except (OSError, ValueError) as e:
            logging.error(f"Recording run failed: {e}")

    async def flush(self):
        await self.saver.flush()

    async def close(self):
        await self.saver.close()

    # --- Reads ---

    @property
    def remaining(self) -> int:
        return session.remaining(self.state)

    def clear_time_ms(self) -> Optional[int]:
        return session.clear_time_ms(self.state)

    def current_card(self) -> Optional[Card]:
        if self.state is None or self.context is None:
            return None
        return self.context.get_card(self.state.current_card_id)

    def current_card_schedule(self) -> Optional[CardSchedule]:
        card = self.current_card()
        if card is None:
            return None
        return self.schedules.get(card.id)

    def view(self) -> SessionView:
        return SessionView(
            session=self.state,
            current_card=self.current_card(),
            remaining=self.remaining,
            clear_time_ms=self.clear_time_ms(),
            selection_stats=self.selection_stats,
            debug=DebugInfo(
                current_card_schedule=self.current_card_schedule(),
                last_review=self.last_review,
            ),
        )

    def get_stats(self, language: str) -> RunStats:
        return RunStats(
            language=language,
            best_clear_ms=self.run_history.best_clear_ms(language),
            runs_count=self.run_history.runs_count(language),
        )
