"""
Remote content gateway for EngVantage.

This module turns domain requests into provider calls and parses what comes
back:
- Word lists for a student level, translated into a target language
- One multiple-choice question per word for the quick quiz
- Spoken pronunciation of a word or example sentence

Model output is unpredictable. Text that is not JSON, or JSON that does not
match the declared schema, becomes an empty list instead of an exception so
the UI keeps working. Transport failures (network, timeout, HTTP status)
propagate as ContentGenerationError for the caller to surface.
"""

import json
import uuid
from typing import Any, Dict, List, Optional, Sequence

from .audio import AudioDecodeError, decode_pcm16, get_player
from .errors import ContentGenerationError
from .logger import logger
from .models import QuestionType, QuizQuestion, StudentLevel, TargetLanguage, Word
from .schemas import (
    QUIZ_LIST_SCHEMA,
    QUIZ_OPTION_COUNT,
    QUIZ_REQUIRED_FIELDS,
    WORD_FIELDS,
    WORD_LIST_SCHEMA,
    WRAPPED_ITEMS_KEY,
)

WORDS_PER_BATCH = 10


# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------

def build_word_prompt(level: StudentLevel, target_language: TargetLanguage, count: int) -> str:
    return (
        f"Generate {count} essential English vocabulary words for {level.value} students. "
        f"Include phonetic symbols (IPA), a translation into {target_language.prompt_label}, "
        "a concise English definition, and one high-quality example sentence with its "
        f"translation into {target_language.prompt_label}. "
        "Do not repeat words."
    )


def build_quiz_prompt(words: Sequence[Word]) -> str:
    word_list = ", ".join(w.word for w in words)
    return (
        f"Generate a vocabulary quiz for these words: {word_list}. "
        "For each word, create one multiple-choice question. The question can be about "
        "the meaning or a sentence completion. Provide exactly 4 options for each, "
        "with exactly one option identical to correctAnswer. "
        "Set wordId to the word being tested."
    )


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def _load_records(text: str, what: str) -> Optional[List[Any]]:
    """Decode a JSON array, accepting the {"items": [...]} wrapper strict mode needs."""
    try:
        data = json.loads(text or "[]")
    except ValueError as e:
        logger.api_error(f"Failed to parse {what}: {e}")
        return None

    if isinstance(data, dict) and isinstance(data.get(WRAPPED_ITEMS_KEY), list):
        data = data[WRAPPED_ITEMS_KEY]
    if not isinstance(data, list):
        logger.api_error(f"Failed to parse {what}: expected an array, got {type(data).__name__}")
        return None
    return data


def parse_words(text: str, level: StudentLevel) -> List[Word]:
    """
    Turn a word-list response into Words.

    Every record must be an object carrying all WORD_FIELDS as strings;
    a single violation discards the whole response.
    """
    records = _load_records(text, "words")
    if records is None:
        return []

    words: List[Word] = []
    for index, record in enumerate(records):
        if not isinstance(record, dict):
            logger.api_error(f"Word record {index} is not an object, discarding response")
            return []
        missing = [name for name in WORD_FIELDS if not isinstance(record.get(name), str)]
        if missing:
            logger.api_error(f"Word record {index} lacks {', '.join(missing)}, discarding response")
            return []
        words.append(
            Word(
                id=str(uuid.uuid4()),
                word=record["word"].strip(),
                phonetic=record["phonetic"].strip(),
                definition=record["definition"].strip(),
                translation=record["translation"].strip(),
                example_sentence=record["exampleSentence"].strip(),
                example_translation=record["exampleTranslation"].strip(),
                level=level,
                learned=False,
            )
        )
    return words


def _question_type(raw: Any) -> QuestionType:
    try:
        return QuestionType(str(raw).strip().lower())
    except ValueError:
        return QuestionType.MEANING


def _options_are_usable(options: List[str], correct_answer: str) -> bool:
    """Exactly QUIZ_OPTION_COUNT distinct options, one of them the answer."""
    if len(options) != QUIZ_OPTION_COUNT:
        return False
    if len(set(options)) != len(options):
        return False
    return options.count(correct_answer) == 1


def parse_quiz(text: str, words: Sequence[Word]) -> List[QuizQuestion]:
    """
    Turn a quiz response into QuizQuestions for the given words.

    Missing or mistyped required fields discard the whole response. Questions
    whose options are unusable are dropped one by one. At most one question
    per word is kept.
    """
    records = _load_records(text, "quiz")
    if records is None:
        return []

    words_by_text: Dict[str, Word] = {w.word.strip().lower(): w for w in words}
    questions: List[QuizQuestion] = []
    for index, record in enumerate(records):
        if not isinstance(record, dict):
            logger.api_error(f"Quiz record {index} is not an object, discarding response")
            return []
        missing = [name for name in QUIZ_REQUIRED_FIELDS if name not in record]
        if missing:
            logger.api_error(f"Quiz record {index} lacks {', '.join(missing)}, discarding response")
            return []
        question, options, correct = record["question"], record["options"], record["correctAnswer"]
        if not isinstance(question, str) or not isinstance(correct, str) or not isinstance(options, list) \
                or not all(isinstance(o, str) for o in options):
            logger.api_error(f"Quiz record {index} has mistyped fields, discarding response")
            return []

        options = [o.strip() for o in options]
        correct = correct.strip()
        if not _options_are_usable(options, correct):
            logger.warning(f"Dropping quiz question {index}: options do not contain the answer exactly once")
            continue

        tested = str(record.get("wordId") or "").strip()
        matched = words_by_text.get(tested.lower())
        questions.append(
            QuizQuestion(
                id=str(uuid.uuid4()),
                question=question.strip(),
                options=options,
                correct_answer=correct,
                word_id=matched.id if matched else None,
                word=tested,
                type=_question_type(record.get("type")),
            )
        )

    if len(questions) > len(words):
        logger.debug(f"Quiz returned {len(questions)} questions for {len(words)} words, truncating")
        questions = questions[:len(words)]
    return questions


# ---------------------------------------------------------------------------
# Gateway
# ---------------------------------------------------------------------------

class ContentGateway:
    """Word lists, quizzes and pronunciation through one transport."""

    def __init__(self, transport, player=None):
        self.transport = transport
        self._player = player

    @property
    def player(self):
        if self._player is None:
            self._player = get_player()
        return self._player

    def fetch_words(
        self,
        level: StudentLevel,
        target_language: TargetLanguage,
        count: int = WORDS_PER_BATCH,
    ) -> List[Word]:
        logger.api(f"fetch_words() level={level.value}, language={target_language.value}, count={count}")
        text = self.transport.generate_json(
            build_word_prompt(level, target_language, count), WORD_LIST_SCHEMA, "word_list"
        )
        words = parse_words(text, level)
        if words:
            logger.success(f"Parsed {len(words)} words for {level.value}")
        else:
            logger.warning(f"No usable words for {level.value} in the response")
        return words

    def generate_quiz(self, words: Sequence[Word]) -> List[QuizQuestion]:
        if not words:
            logger.api("generate_quiz() called with no words, nothing to ask")
            return []
        logger.api(f"generate_quiz() for {len(words)} words")
        text = self.transport.generate_json(build_quiz_prompt(words), QUIZ_LIST_SCHEMA, "quiz")
        questions = parse_quiz(text, words)
        if questions:
            logger.success(f"Parsed {len(questions)} quiz questions")
        else:
            logger.warning("No usable quiz questions in the response")
        return questions

    def synthesize_speech(self, text: str, language: str = "English") -> None:
        """
        Speak `text` through the default output device.

        Fire-and-forget: nothing is returned and every failure is logged and
        swallowed, since a missing pronunciation is never worth an error dialog.
        """
        if not text or not text.strip():
            logger.warning("Empty text provided for pronunciation")
            return

        logger.audio_start(text)
        try:
            pcm = self.transport.synthesize(f"Pronounce: {text.strip()}")
            samples = decode_pcm16(pcm)
            self.player.play(samples)
        except ContentGenerationError as e:
            logger.audio_error(f"Speech request failed ({language}): {e}")
        except AudioDecodeError as e:
            logger.audio_error(f"Could not decode speech audio: {e}")
        except Exception as e:
            # pygame raises its own error type when no output device is available
            logger.audio_error(f"Playback failed: {e}", exc_info=True)
