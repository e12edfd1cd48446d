import asyncio
import random
import time

import pytest

from conftest import FakeClock
from flashdrill.config import Settings
from flashdrill.models import Card, ReviewGrade, UIState
from flashdrill.services import PracticeService
from flashdrill.store import MemoryScheduleStore, RunHistory


class SlowLanguageStore(MemoryScheduleStore):
    def __init__(self, delays):
        super().__init__()
        self.delays = delays

    def get(self, language):
        time.sleep(self.delays.get(language, 0))
        return super().get(language)


def play_to_clear(service):
    while not service.state.cleared:
        if service.state.ui_state != UIState.PROMPT:
            service.advance_to_next_card()
            continue
        service.swipe_right()
        if service.state.ui_state == UIState.CHOICES:
            service.choose_option(service.state.correct_choice_index)


@pytest.mark.asyncio
async def test_start_session(service):
    state = await service.start_session(5, language="pt")
    assert state.deck_count == 5
    assert service.remaining == 5
    assert service.current_card().id == state.current_card_id
    assert service.selection_stats.new_available == 25
    assert service.selection_stats.selected_new == 5
    assert service.options.language == "pt"


@pytest.mark.asyncio
async def test_unknown_language_falls_back(service):
    await service.start_session(3, language="klingon")
    assert service.options.language == "pt"


@pytest.mark.asyncio
async def test_stale_start_is_discarded(service):
    service.store = SlowLanguageStore({"pt": 0.2})
    first, second = await asyncio.gather(
        service.start_session(5, language="pt"),
        service.start_session(3, language="fr"),
    )
    assert first is None
    assert second is not None
    assert service.state is second
    assert service.options.language == "fr"
    assert service.state.deck_count == 3
    assert all(card_id.startswith("fr-") for card_id in service.state.queue)


@pytest.mark.asyncio
async def test_review_updates_schedule_and_store(service, store):
    await service.start_session(4, language="pt")
    card_id = service.state.current_card_id
    service.swipe_left()

    assert service.schedules[card_id].lapses == 1
    assert service.last_review.card_id == card_id
    assert service.last_review.grade == ReviewGrade.AGAIN

    await service.flush()
    assert store.get("pt")[card_id].lapses == 1


@pytest.mark.asyncio
async def test_custom_words_join_the_deck(service):
    custom = [Card(id="mine-1", term="saudade", translation="longing"), Card(id="mine-1", term="dup")]
    await service.start_session(2, custom_words=custom, language="pt")
    assert service.state.deck_count == 3
    assert "mine-1" in service.state.queue
    assert service.options.custom_words[0].is_custom


@pytest.mark.asyncio
async def test_clearing_records_run(service):
    await service.start_session(3, language="pt")
    play_to_clear(service)
    assert service.remaining == 0
    assert service.clear_time_ms() > 0
    stats = service.get_stats("pt")
    assert stats.runs_count == 1
    assert stats.best_clear_ms == service.clear_time_ms()

    await service.flush()
    assert len(service.store.get("pt")) == 3


@pytest.mark.asyncio
async def test_empty_session_is_cleared_without_run(service):
    state = await service.start_session(0, language="pt")
    assert state.cleared
    assert service.remaining == 0
    assert service.get_stats("pt").runs_count == 0


@pytest.mark.asyncio
async def test_start_new_session_reuses_options(service):
    await service.start_session(4, language="fr")
    service.swipe_left()
    state = await service.start_new_session()
    assert state.deck_count == 4
    assert service.options.language == "fr"
    assert service.last_review is None

    state = await service.start_new_session(2)
    assert state.deck_count == 2


@pytest.mark.asyncio
async def test_start_new_session_without_previous(service):
    state = await service.start_new_session()
    assert state.deck_count == 0
    assert state.cleared


@pytest.mark.asyncio
async def test_due_cards_come_back_next_session(service):
    await service.start_session(3, language="pt")
    missed = service.state.current_card_id
    service.swipe_left()
    await service.flush()

    # a day and a bit later the missed card is due again
    service.clock.now += 2 * 24 * 60 * 60 * 1000
    await service.start_session(1, language="pt")
    assert service.state.queue == [missed]
    assert service.selection_stats.selected_due == 1


@pytest.mark.asyncio
async def test_stop_session(service):
    await service.start_session(3, language="pt")
    service.stop_session()
    view = service.view()
    assert view.session is None
    assert view.current_card is None
    assert view.remaining == 0
    assert service.swipe_left() is None
    assert service.choose_option(0) is None


def test_reviews_outside_event_loop_save_inline(service, store):
    asyncio.run(service.start_session(2, language="pt"))
    card_id = service.state.current_card_id
    service.swipe_left()
    assert store.get("pt")[card_id].lapses == 1


@pytest.mark.asyncio
async def test_view_exposes_debug_info(service):
    await service.start_session(3, language="pt")
    card_id = service.state.current_card_id
    service.swipe_right()
    service.choose_option(service.state.correct_choice_index)
    view = service.view()
    assert view.debug.last_review.grade == ReviewGrade.GOOD
    assert view.debug.current_card_schedule.repetitions == 1
    assert view.current_card.id == card_id
    assert view.selection_stats.selected_new == 3


def debounced(tmp_path, store):
    """A service whose saves wait out a real debounce window."""
    settings = Settings(data_dir=str(tmp_path), save_debounce_seconds=0.25, _env_file=None)
    return PracticeService(
        settings=settings, store=store, run_history=RunHistory(str(tmp_path)),
        rng=random.Random(7), clock=FakeClock(),
    )


@pytest.mark.asyncio
async def test_restart_before_save_keeps_earlier_review(tmp_path):
    store = MemoryScheduleStore()
    service = debounced(tmp_path, store)
    await service.start_session(3, language="pt")
    first = service.state.current_card_id
    service.swipe_left()

    # no flush: the first save is still inside the debounce window
    await service.start_new_session()
    assert service.schedules[first].lapses == 1
    second = service.state.current_card_id
    assert second != first
    service.swipe_left()

    await service.flush()
    saved = store.get("pt")
    assert saved[first].lapses == 1
    assert saved[second].lapses == 1
    await service.close()


@pytest.mark.asyncio
async def test_review_during_pending_start_survives(tmp_path):
    store = SlowLanguageStore({"pt": 0.2})
    service = debounced(tmp_path, store)
    await service.start_session(3, language="pt")
    reviewed = service.state.current_card_id

    pending = asyncio.create_task(service.start_new_session())
    await asyncio.sleep(0.05)
    # old session is still live while the new deck loads
    service.swipe_left()
    state = await pending

    assert state is not None
    assert service.schedules[reviewed].lapses == 1
    service.swipe_left()
    await service.flush()
    assert store.get("pt")[reviewed].lapses == 1
    await service.close()


@pytest.mark.asyncio
async def test_custom_word_reusing_catalog_id_is_dropped(service):
    custom = [Card(id="1", term="olá de novo", translation="hi"), Card(id="mine", term="saudade", translation="longing")]
    await service.start_session(3, custom_words=custom, language="pt")
    assert [card.id for card in service.options.custom_words] == ["mine"]
    assert service.state.deck_count == 4
    assert len(set(service.state.queue)) == 4

    play_to_clear(service)
    assert service.remaining == 0
    assert len(service.state.correct_set) == service.state.deck_count


@pytest.mark.asyncio
async def test_stop_cancels_pending_start(service):
    service.store = SlowLanguageStore({"pt": 0.2})
    pending = asyncio.create_task(service.start_session(3, language="pt"))
    await asyncio.sleep(0.05)
    service.stop_session()
    assert await pending is None
    assert service.state is None
    assert service.view().session is None
