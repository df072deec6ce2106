"""
Static question catalog and the shared selection algorithm.

The catalog is loaded once and never mutated. Selection prefers unanswered
questions from the rolled category and falls back to any enabled, unanswered
question when that category is exhausted.
"""

from __future__ import annotations

import random
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import TypeAdapter

from spark.logic.types import Question

if TYPE_CHECKING:
    from collections.abc import Collection, Iterable, Iterator

    from spark.logic.enums import Category
    from spark.logic.types import GameSettings

DEFAULT_QUESTIONS_PATH = Path(__file__).resolve().parent / "questions.json"

_questions_adapter = TypeAdapter(tuple[Question, ...])


class QuestionCatalog:
    """Read-only collection of questions indexed by id."""

    def __init__(self, questions: Iterable[Question]) -> None:
        self._questions: tuple[Question, ...] = tuple(questions)
        self._by_id: dict[str, Question] = {}
        for question in self._questions:
            if question.id in self._by_id:
                raise ValueError(f"Duplicate question id: {question.id}")
            self._by_id[question.id] = question

    @classmethod
    def from_file(cls, path: Path | str | None = None) -> QuestionCatalog:
        file_path = Path(path) if path is not None else DEFAULT_QUESTIONS_PATH
        return cls(_questions_adapter.validate_json(file_path.read_bytes()))

    def __len__(self) -> int:
        return len(self._questions)

    def __iter__(self) -> Iterator[Question]:
        return iter(self._questions)

    def get(self, question_id: str) -> Question | None:
        return self._by_id.get(question_id)

    def available(
        self,
        settings: GameSettings,
        answered: Collection[str],
        category: Category | None = None,
    ) -> list[Question]:
        """Return enabled, unanswered questions, optionally limited to one category."""
        return [
            q
            for q in self._questions
            if settings.is_enabled(q.category)
            and q.id not in answered
            and (category is None or q.category == category)
        ]

    def select(
        self,
        category: Category,
        settings: GameSettings,
        answered: Collection[str],
        rng: random.Random | None = None,
    ) -> Question | None:
        """
        Pick a question for a rolled category.

        Chooses uniformly among unanswered questions of ``category``. When
        that category has none left, chooses uniformly among every enabled
        unanswered question instead. Returns None only when the catalog is
        exhausted for the current settings; the caller decides how to end.
        """
        rng = rng or random.Random()  # noqa: S311
        candidates = self.available(settings, answered, category)
        if not candidates:
            candidates = self.available(settings, answered)
        if not candidates:
            return None
        return rng.choice(candidates)
