from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from mindsync.models import Document, QuizQuestion
from mindsync.services import Notifier, ServiceClient, ServiceError
from mindsync.stages.base import Stage, StageBusy

log = logging.getLogger("mindsync.quiz")


class QuizStage(Stage):
    """Walks through generated questions one at a time.

    Each question goes unanswered -> answered. The first selection is final;
    later selections for the same question are ignored.
    """

    name = "quiz"

    def __init__(
        self,
        services: ServiceClient,
        document: Document,
        notifier: Notifier,
        on_complete: Callable[[], Awaitable[None]],
    ):
        super().__init__()
        self._services = services
        self._notifier = notifier
        self._on_complete = on_complete
        self.document = document
        self.questions: list[QuizQuestion] = []
        self.loading = True
        self.index = 0
        self.selected: str | None = None
        self.score = 0

    def mount(self) -> None:
        self.scope.spawn(self._generate())

    async def _generate(self) -> None:
        try:
            questions = await self._services.generate_quiz(self.document.text)
        except ServiceError as e:
            log.warning("Quiz generation failed for %s: %s", self.document.name, e)
            questions = []
        self.questions = questions
        self.loading = False
        log.info("Generated %d questions for %s", len(questions), self.document.name)

    @property
    def current(self) -> QuizQuestion | None:
        if self.index < len(self.questions):
            return self.questions[self.index]
        return None

    @property
    def is_last(self) -> bool:
        return self.index >= len(self.questions) - 1

    def _ready(self) -> None:
        if self.loading:
            raise StageBusy("Quiz is still being generated")

    def answer(self, option: str) -> bool | None:
        """Select an option. Returns correctness, or None if already answered."""
        self._ready()
        q = self.current
        if q is None:
            raise StageBusy("No question to answer")
        if self.selected is not None:
            return None
        if option not in q.options:
            raise ValueError(f"{option!r} is not an option for question {q.id}")

        self.selected = option
        is_correct = option == q.correct_answer
        if is_correct:
            self.score += 1
        # The stats service is keyed by question text, not the chosen option
        self._notifier.send(
            self._services.update_stats(q.question, is_correct),
            f"Stats for question {q.id}",
        )
        return is_correct

    async def next(self) -> bool:
        """Advance to the next question. Returns True when the quiz finished."""
        self._ready()
        if self.current is not None and self.selected is None:
            raise StageBusy("Answer the current question first")
        if self.current is None or self.is_last:
            log.info("Quiz finished: %d / %d", self.score, len(self.questions))
            await self._on_complete()
            return True
        self.index += 1
        self.selected = None
        return False

    def view(self) -> dict:
        if self.loading:
            return {"loading": True}
        q = self.current
        data = {
            "loading": False,
            "total": len(self.questions),
            "index": self.index,
            "score": self.score,
            "score_display": f"{self.score} / {min(self.index + 1, len(self.questions))}",
            "question": None,
        }
        if q is None:
            data["next_label"] = "Finish Quiz"
            return data
        answered = self.selected is not None
        data.update({
            "position": f"Question {self.index + 1} of {len(self.questions)}",
            "question": {"id": q.id, "text": q.question, "options": list(q.options)},
            "selected": self.selected,
            "answered": answered,
            "next_label": "Finish Quiz" if self.is_last else "Next Question",
        })
        if answered:
            correct = self.selected == q.correct_answer
            data.update({
                "correct": correct,
                "correct_answer": q.correct_answer,
                "feedback": "Correct!" if correct else "Incorrect.",
                "explanation": q.explanation,
            })
        return data
