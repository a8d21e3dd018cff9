"""
Session state for the EngVantage window.

SessionController is the single authority for what is on screen: the level
and language selection, the current word list, quiz mode and its questions,
and the persisted stats. The UI calls its operations and re-renders whenever
a subscribed listener fires.

Gateway calls run on worker threads. Their completions are handed to
`dispatch` (root.after(0, ...) in the Tk app) so state only ever changes on
the UI thread. Every request is numbered per kind; a completion whose number
is not the latest issued for its kind is discarded, so a slow response for
an old selection can never overwrite a newer one.
"""

import threading
from dataclasses import dataclass
from enum import Enum
from functools import partial
from typing import Callable, Dict, List, Optional, Union

from .errors import EngVantageError
from .logger import logger, Timer
from .models import QuizQuestion, QuizResult, StudentLevel, TargetLanguage, Word
from .api import WORDS_PER_BATCH


class RequestKind(str, Enum):
    WORDS = "words"
    QUIZ = "quiz"


class LoadStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    FAILED = "failed"


@dataclass(frozen=True)
class LoadState:
    status: LoadStatus = LoadStatus.IDLE
    seq: int = 0
    reason: str = ""


def spawn_thread(work: Callable[[], None]) -> None:
    """Run work on a daemon thread."""
    threading.Thread(target=work, daemon=True).start()


def call_now(callback: Callable[[], None]) -> None:
    callback()


FAILURE_MESSAGES = {
    RequestKind.WORDS: "Could not load new words. Check your connection and try refreshing.",
    RequestKind.QUIZ: "Could not generate a quiz right now. Please try again.",
}


class SessionController:
    def __init__(
        self,
        gateway,
        store,
        runner: Callable[[Callable[[], None]], None] = spawn_thread,
        dispatch: Callable[[Callable[[], None]], None] = call_now,
        words_per_batch: int = WORDS_PER_BATCH,
    ):
        self.gateway = gateway
        self.store = store
        self._runner = runner
        self._dispatch = dispatch
        self.words_per_batch = words_per_batch

        self.stats = store.load()
        self.level: StudentLevel = self.stats.level
        self.target_language: TargetLanguage = self.stats.target_language

        self.words: List[Word] = []
        self.quiz_questions: List[QuizQuestion] = []
        self.is_quiz_mode = False
        self.error_message: Optional[str] = None
        self.notice: Optional[str] = None
        self.last_quiz_result: Optional[QuizResult] = None

        self._seq: Dict[RequestKind, int] = {kind: 0 for kind in RequestKind}
        self._load: Dict[RequestKind, LoadState] = {kind: LoadState() for kind in RequestKind}
        self._listeners: List[Callable[[], None]] = []

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    def subscribe(self, listener: Callable[[], None]) -> Callable[[], None]:
        """Call listener after every state change. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener()

    def load_state(self, kind: RequestKind) -> LoadState:
        return self._load[kind]

    @property
    def is_loading(self) -> bool:
        """True while the latest request of any kind is unresolved."""
        return any(state.status == LoadStatus.LOADING for state in self._load.values())

    @property
    def words_loading(self) -> bool:
        return self._load[RequestKind.WORDS].status == LoadStatus.LOADING

    @property
    def quiz_loading(self) -> bool:
        return self._load[RequestKind.QUIZ].status == LoadStatus.LOADING

    # ------------------------------------------------------------------
    # Request plumbing
    # ------------------------------------------------------------------

    def _submit(self, kind: RequestKind, call: Callable[[], object], on_success: Callable[[int, object], None]) -> int:
        self._seq[kind] += 1
        seq = self._seq[kind]
        self._load[kind] = LoadState(LoadStatus.LOADING, seq)
        self._notify()

        task_name = f"{kind.value} #{seq}"

        def work() -> None:
            logger.task_start(task_name)
            try:
                with Timer() as timer:
                    result = call()
            except Exception as e:
                # Unexpected errors get a traceback; gateway failures are expected.
                logger.task_error(task_name, str(e), exc_info=not isinstance(e, EngVantageError))
                self._dispatch(partial(self._finish, kind, seq, on_success, None, e))
                return
            logger.task_complete(task_name, duration_ms=timer.duration_ms)
            self._dispatch(partial(self._finish, kind, seq, on_success, result, None))

        self._runner(work)
        return seq

    def _finish(
        self,
        kind: RequestKind,
        seq: int,
        on_success: Callable[[int, object], None],
        result: object,
        error: Optional[BaseException],
    ) -> None:
        if seq != self._seq[kind]:
            logger.debug(f"Discarding stale {kind.value} response #{seq} (latest is #{self._seq[kind]})")
            return

        if error is not None:
            self._load[kind] = LoadState(LoadStatus.FAILED, seq, str(error))
            self.error_message = FAILURE_MESSAGES[kind]
        else:
            self._load[kind] = LoadState(LoadStatus.LOADED, seq)
            on_success(seq, result)
        self._notify()

    # ------------------------------------------------------------------
    # Selection and word list
    # ------------------------------------------------------------------

    def set_level(self, level: Union[StudentLevel, str]) -> int:
        level = StudentLevel(level)
        logger.ui_transition(self.level.value, level.value)
        self.level = level
        self.stats.level = level
        self.store.save(self.stats)
        return self.reload_words()

    def set_target_language(self, language: Union[TargetLanguage, str]) -> int:
        language = TargetLanguage(language)
        logger.ui_transition(self.target_language.value, language.value)
        self.target_language = language
        self.stats.target_language = language
        self.store.save(self.stats)
        return self.reload_words()

    def reload_words(self) -> int:
        """Request a fresh word list for the current selection."""
        level, language, count = self.level, self.target_language, self.words_per_batch
        logger.ui(f"Loading {count} words: {level.value} / {language.value}")
        return self._submit(
            RequestKind.WORDS,
            lambda: self.gateway.fetch_words(level, language, count),
            self._on_words_loaded,
        )

    def _on_words_loaded(self, seq: int, words: List[Word]) -> None:
        self.words = list(words)
        self.error_message = None
        if self.words:
            self.notice = None
        else:
            self.notice = "The AI returned no usable words this time. Try refreshing."
        logger.ui(f"Word list #{seq} shown ({len(self.words)} words)")

    def toggle_learned(self, word_id: str) -> Optional[Word]:
        """Flip a word's learned flag and update the persisted counter."""
        word = next((w for w in self.words if w.id == word_id), None)
        if word is None:
            logger.debug(f"toggle_learned: {word_id} is not in the current list")
            return None

        word.learned = not word.learned
        self.stats.record_learned(word.learned)
        if word.learned:
            self.stats.record_study_day()
        self.store.save(self.stats)
        logger.ui(f"'{word.word}' learned={word.learned} (total {self.stats.total_words_learned})")
        self._notify()
        return word

    # ------------------------------------------------------------------
    # Quiz
    # ------------------------------------------------------------------

    def start_quiz(self) -> int:
        words = list(self.words)
        words_seq = self._seq[RequestKind.WORDS]
        logger.ui(f"Starting quiz for {len(words)} words")
        return self._submit(
            RequestKind.QUIZ,
            lambda: self.gateway.generate_quiz(words),
            partial(self._on_quiz_ready, words_seq),
        )

    def _on_quiz_ready(self, words_seq: int, seq: int, questions: List[QuizQuestion]) -> None:
        # The quiz only makes sense for the word list it was built from.
        if words_seq != self._seq[RequestKind.WORDS]:
            logger.debug(f"Discarding quiz #{seq}: word list changed while it was generated")
            self._load[RequestKind.QUIZ] = LoadState(LoadStatus.FAILED, seq, "word list changed")
            return
        if not questions:
            self._load[RequestKind.QUIZ] = LoadState(LoadStatus.FAILED, seq, "no questions")
            self.error_message = "The AI could not build a quiz from these words. Please try again."
            return
        self.quiz_questions = list(questions)
        self.is_quiz_mode = True
        self.error_message = None
        self.notice = None
        logger.ui_transition("word list", f"quiz ({len(questions)} questions)")

    def complete_quiz(self, score: int) -> QuizResult:
        """Leave quiz mode and report the score. The score is not persisted."""
        total = len(self.quiz_questions)
        result = QuizResult(score=max(0, min(score, total)), total=total)
        self.last_quiz_result = result
        self.notice = result.message()
        self._exit_quiz()
        logger.ui(result.message())
        self._notify()
        return result

    def cancel_quiz(self) -> None:
        self._exit_quiz()
        logger.ui_transition("quiz", "word list (cancelled)")
        self._notify()

    def _exit_quiz(self) -> None:
        self.is_quiz_mode = False
        self.quiz_questions = []

    # ------------------------------------------------------------------
    # Misc
    # ------------------------------------------------------------------

    def pronounce(self, text: str, language: str = "English") -> None:
        """Fire-and-forget pronunciation; failures never reach the UI."""
        self._runner(lambda: self.gateway.synthesize_speech(text, language))

    def dismiss_error(self) -> None:
        self.error_message = None
        self.notice = None
        self._notify()
