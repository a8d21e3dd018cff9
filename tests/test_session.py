import pytest

from engvantage.models import StudentLevel, TargetLanguage
from engvantage.session import LoadStatus, RequestKind, SessionController
from engvantage.stats import STATS_KEY, StatsStore

from fakes import DeferredRunner, MemoryBackend, network_error, run_inline


@pytest.fixture
def store(backend) -> StatsStore:
    return StatsStore(backend)


@pytest.fixture
def controller(gateway, store) -> SessionController:
    return SessionController(gateway, store, runner=run_inline)


def test_starts_from_persisted_selection(gateway) -> None:
    backend = MemoryBackend({STATS_KEY: {
        "version": 2,
        "totalWordsLearned": 4,
        "currentStreak": 2,
        "lastStudyDate": "2026-10-17",
        "level": "TOEIC",
        "targetLanguage": "Korean",
    }})
    controller = SessionController(gateway, StatsStore(backend), runner=run_inline)
    assert controller.level == StudentLevel.TOEIC
    assert controller.target_language == TargetLanguage.KOREAN
    assert controller.stats.total_words_learned == 4

    controller.reload_words()
    assert gateway.word_requests == [(StudentLevel.TOEIC, TargetLanguage.KOREAN, 10)]


def test_reload_words_replaces_list_and_notifies(controller) -> None:
    seen = []
    controller.subscribe(lambda: seen.append(controller.words_loading))

    controller.reload_words()

    assert len(controller.words) == 10
    # Once for the request going out, once for its result.
    assert seen == [True, False]
    assert controller.load_state(RequestKind.WORDS).status == LoadStatus.LOADED


def test_unsubscribe_stops_notifications(controller) -> None:
    seen = []
    unsubscribe = controller.subscribe(lambda: seen.append(1))
    unsubscribe()
    controller.reload_words()
    assert seen == []


def test_latest_language_wins_when_responses_arrive_out_of_order(gateway, store) -> None:
    runner = DeferredRunner()
    controller = SessionController(gateway, store, runner=runner)

    controller.set_target_language(TargetLanguage.JAPANESE)
    controller.set_target_language(TargetLanguage.SPANISH)
    assert len(runner.jobs) == 2

    # The newer request finishes first, then the stale one arrives.
    runner.run(1)
    assert controller.words[0].word.startswith("junior-spanish-")
    runner.run(0)

    assert all(w.word.startswith("junior-spanish-") for w in controller.words)
    assert controller.load_state(RequestKind.WORDS).status == LoadStatus.LOADED
    assert controller.load_state(RequestKind.WORDS).seq == 2


def test_loading_stays_on_until_latest_request_resolves(gateway, store) -> None:
    runner = DeferredRunner()
    controller = SessionController(gateway, store, runner=runner)

    controller.set_level(StudentLevel.SENIOR)
    controller.set_level(StudentLevel.TOEIC)

    runner.run(0)   # stale request resolves first
    assert controller.words_loading
    assert controller.words == []

    runner.run(0)
    assert not controller.is_loading
    assert controller.words[0].level == StudentLevel.TOEIC


def test_stale_failure_does_not_surface(gateway, store) -> None:
    runner = DeferredRunner()
    controller = SessionController(gateway, store, runner=runner)

    controller.reload_words()
    gateway.fail_words = network_error()
    runner.run(0)
    assert controller.error_message is not None

    controller.dismiss_error()
    controller.reload_words()
    controller.reload_words()
    runner.run(0)  # stale failure
    assert controller.error_message is None
    gateway.fail_words = None
    runner.run(0)
    assert len(controller.words) == 10


def test_failed_reload_keeps_previous_words(controller, gateway) -> None:
    controller.reload_words()
    previous = list(controller.words)

    gateway.fail_words = network_error()
    controller.reload_words()

    assert controller.words == previous
    assert not controller.is_loading
    assert controller.error_message
    state = controller.load_state(RequestKind.WORDS)
    assert state.status == LoadStatus.FAILED
    assert "connection refused" in state.reason


def test_unexpected_gateway_errors_are_contained(controller, gateway) -> None:
    gateway.fail_words = KeyError("boom")
    controller.reload_words()
    assert controller.words == []
    assert controller.error_message


def test_empty_word_result_shows_notice(controller, gateway, monkeypatch) -> None:
    monkeypatch.setattr(gateway, "fetch_words", lambda level, language, count: [])
    controller.reload_words()
    assert controller.words == []
    assert controller.error_message is None
    assert controller.notice


def test_selection_changes_are_persisted(controller, backend) -> None:
    controller.set_level("Senior High")
    controller.set_target_language("French")
    record = backend.data[STATS_KEY]
    assert record["level"] == "Senior High"
    assert record["targetLanguage"] == "French"


def test_toggle_learned_pairs_and_unknown_ids(controller, backend) -> None:
    controller.reload_words()
    word = controller.words[0]

    assert controller.toggle_learned(word.id) is word
    assert word.learned
    assert controller.stats.total_words_learned == 1
    assert controller.stats.current_streak == 1

    controller.toggle_learned(word.id)
    assert not word.learned
    assert controller.stats.total_words_learned == 0
    assert backend.data[STATS_KEY]["totalWordsLearned"] == 0

    writes = backend.writes
    assert controller.toggle_learned("no-such-id") is None
    assert backend.writes == writes


def test_quiz_round_trip(controller, gateway) -> None:
    controller.reload_words()
    controller.start_quiz()

    assert controller.is_quiz_mode
    assert len(controller.quiz_questions) == 10
    assert gateway.quiz_requests[0] == controller.words

    result = controller.complete_quiz(7)
    assert (result.score, result.total) == (7, 10)
    assert controller.notice == "Quiz complete! You scored 7 out of 10."
    assert not controller.is_quiz_mode
    assert controller.quiz_questions == []


def test_complete_quiz_clamps_score(controller) -> None:
    controller.reload_words()
    controller.start_quiz()
    assert controller.complete_quiz(42).score == 10


def test_quiz_score_is_not_persisted(controller, backend) -> None:
    controller.reload_words()
    controller.start_quiz()
    before = dict(backend.data.get(STATS_KEY) or {})
    controller.complete_quiz(10)
    assert (backend.data.get(STATS_KEY) or {}) == before


def test_cancel_quiz(controller) -> None:
    controller.reload_words()
    controller.start_quiz()
    controller.cancel_quiz()
    assert not controller.is_quiz_mode
    assert controller.last_quiz_result is None


@pytest.mark.parametrize("setup", ["fail", "empty"])
def test_quiz_failures_stay_on_word_list(controller, gateway, setup) -> None:
    controller.reload_words()
    if setup == "fail":
        gateway.fail_quiz = network_error()
    else:
        gateway.empty_quiz = True

    controller.start_quiz()

    assert not controller.is_quiz_mode
    assert not controller.quiz_loading
    assert controller.error_message
    assert controller.load_state(RequestKind.QUIZ).status == LoadStatus.FAILED
    assert len(controller.words) == 10


def test_quiz_for_replaced_word_list_is_discarded(gateway, store) -> None:
    runner = DeferredRunner()
    controller = SessionController(gateway, store, runner=runner)
    controller.reload_words()
    runner.run_all()
    quizzed_ids = {w.id for w in controller.words}

    controller.start_quiz()
    controller.set_level(StudentLevel.TOEIC)
    runner.run(1)   # new word list lands first
    runner.run(0)   # then the quiz built from the old one

    assert not controller.is_quiz_mode
    assert controller.quiz_questions == []
    assert not controller.is_loading
    assert controller.error_message is None
    assert controller.load_state(RequestKind.QUIZ).status == LoadStatus.FAILED
    assert quizzed_ids.isdisjoint(w.id for w in controller.words)
    assert all(w.level == StudentLevel.TOEIC for w in controller.words)


def test_quiz_opens_when_word_list_is_unchanged(gateway, store) -> None:
    runner = DeferredRunner()
    controller = SessionController(gateway, store, runner=runner)
    controller.reload_words()
    runner.run_all()

    controller.start_quiz()
    runner.run_all()

    assert controller.is_quiz_mode
    shown = {w.id for w in controller.words}
    assert {q.word_id for q in controller.quiz_questions} == shown


def test_pronounce_goes_through_runner(gateway, store) -> None:
    runner = DeferredRunner()
    controller = SessionController(gateway, store, runner=runner)
    controller.pronounce("apple")
    assert gateway.spoken == []
    runner.run_all()
    assert gateway.spoken == [("apple", "English")]


def test_dispatch_receives_every_completion(gateway, store) -> None:
    queued = []
    controller = SessionController(gateway, store, runner=run_inline, dispatch=queued.append)

    controller.reload_words()
    assert controller.words == []
    assert controller.words_loading

    queued.pop()()
    assert len(controller.words) == 10


def test_study_session_scenario(gateway, store, backend) -> None:
    controller = SessionController(gateway, store, runner=run_inline)
    controller.set_target_language(TargetLanguage.TRADITIONAL_CHINESE)
    controller.set_level(StudentLevel.SENIOR)

    assert len(controller.words) == 10
    assert not any(w.learned for w in controller.words)
    assert controller.stats.total_words_learned == 0

    third = controller.words[2]
    controller.toggle_learned(third.id)
    assert controller.stats.total_words_learned == 1
    assert backend.data[STATS_KEY]["totalWordsLearned"] == 1

    old_ids = {w.id for w in controller.words}
    controller.set_level(StudentLevel.JUNIOR)
    assert len(controller.words) == 10
    assert old_ids.isdisjoint(w.id for w in controller.words)
    assert all(w.level == StudentLevel.JUNIOR for w in controller.words)
    assert gateway.word_requests[-1] == (StudentLevel.JUNIOR, TargetLanguage.TRADITIONAL_CHINESE, 10)
