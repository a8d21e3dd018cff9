from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class StudentLevel(str, Enum):
    """Curriculum tier used to scope word generation."""
    JUNIOR = "Junior High"
    SENIOR = "Senior High"
    TOEIC = "TOEIC"


class TargetLanguage(str, Enum):
    """Language that translations are rendered into."""
    TRADITIONAL_CHINESE = "Traditional Chinese"
    SIMPLIFIED_CHINESE = "Simplified Chinese"
    JAPANESE = "Japanese"
    KOREAN = "Korean"
    SPANISH = "Spanish"
    FRENCH = "French"

    @property
    def prompt_label(self) -> str:
        """How the language is named inside generation prompts."""
        return LANGUAGE_PROMPT_LABELS[self]


LANGUAGE_PROMPT_LABELS = {
    TargetLanguage.TRADITIONAL_CHINESE: "Traditional Chinese (繁體中文, as used in Taiwan)",
    TargetLanguage.SIMPLIFIED_CHINESE: "Simplified Chinese (简体中文)",
    TargetLanguage.JAPANESE: "Japanese (日本語)",
    TargetLanguage.KOREAN: "Korean (한국어)",
    TargetLanguage.SPANISH: "Spanish (Español)",
    TargetLanguage.FRENCH: "French (Français)",
}

DEFAULT_LEVEL = StudentLevel.JUNIOR
DEFAULT_LANGUAGE = TargetLanguage.TRADITIONAL_CHINESE


class QuestionType(str, Enum):
    MEANING = "meaning"
    COMPLETION = "completion"
    SPELLING = "spelling"


@dataclass
class Word:
    """One vocabulary entry produced by a word-list request."""
    id: str
    word: str
    phonetic: str
    definition: str                  # Short English definition
    translation: str                 # Translation into the target language
    example_sentence: str
    example_translation: str
    level: StudentLevel
    learned: bool = False


@dataclass
class QuizQuestion:
    """One multiple-choice item; exactly one option equals correct_answer."""
    id: str
    question: str
    options: List[str] = field(default_factory=list)
    correct_answer: str = ""
    word_id: Optional[str] = None    # Id of the Word being tested, when it could be matched
    word: str = ""                   # Surface form the question says it tests
    type: QuestionType = QuestionType.MEANING

    def is_correct(self, option: str) -> bool:
        return option == self.correct_answer


@dataclass(frozen=True)
class QuizResult:
    """Outcome reported when a quiz is completed."""
    score: int
    total: int

    @property
    def percent(self) -> int:
        if self.total == 0:
            return 0
        return round(100 * self.score / self.total)

    def message(self) -> str:
        return f"Quiz complete! You scored {self.score} out of {self.total}."
