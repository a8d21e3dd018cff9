from typing import List, Optional

from .models import QuizQuestion


class QuizRunner:
    """Walks through quiz questions one at a time and keeps the score."""

    def __init__(self, questions: List[QuizQuestion]):
        self.questions = list(questions)
        self.index = 0
        self.score = 0
        self.selected: Optional[str] = None

    @property
    def total(self) -> int:
        return len(self.questions)

    @property
    def finished(self) -> bool:
        return self.index >= self.total

    @property
    def current(self) -> Optional[QuizQuestion]:
        if self.finished:
            return None
        return self.questions[self.index]

    @property
    def answered(self) -> bool:
        return self.selected is not None

    @property
    def is_last(self) -> bool:
        return self.index == self.total - 1

    def answer(self, option: str) -> bool:
        """
        Record the answer to the current question.

        Only the first answer to a question counts; later calls return the
        correctness of the first one.
        """
        question = self.current
        if question is None:
            raise IndexError("quiz is already finished")
        if self.selected is None:
            self.selected = option
            if question.is_correct(option):
                self.score += 1
        return question.is_correct(self.selected)

    def advance(self) -> None:
        if not self.answered:
            raise RuntimeError("answer the current question before moving on")
        self.index += 1
        self.selected = None

    def progress_label(self) -> str:
        shown = min(self.index + 1, self.total)
        return f"Question {shown} of {self.total}"
