"""Tests for the quiz stage."""
from __future__ import annotations

import pytest

from mindsync.services import Notifier
from mindsync.stages.base import StageBusy
from mindsync.stages.quiz import QuizStage


@pytest.fixture
def notifier():
    return Notifier()


@pytest.fixture
def quiz(services, document, notifier, completions):
    return QuizStage(services, document, notifier, completions)


async def _mounted(stage):
    stage.mount()
    await stage.scope.settle(timeout=1)
    return stage


class TestQuizLoading:
    def test_loading_before_mount(self, quiz):
        assert quiz.view() == {"loading": True}

    @pytest.mark.asyncio
    async def test_answer_while_loading(self, quiz):
        with pytest.raises(StageBusy):
            quiz.answer("short-lived")

    @pytest.mark.asyncio
    async def test_generation_request(self, quiz, stub):
        await _mounted(quiz)
        assert stub.json_bodies("/api/quiz/generate") == [{"text": "The ephemeral glow faded."}]
        assert len(quiz.questions) == 2

    @pytest.mark.asyncio
    async def test_first_question_view(self, quiz):
        view = (await _mounted(quiz)).view()
        assert view["position"] == "Question 1 of 2"
        assert view["question"]["text"] == "What does ephemeral mean?"
        assert view["answered"] is False
        assert "correct_answer" not in view
        assert "explanation" not in view
        assert view["score_display"] == "0 / 1"
        assert view["next_label"] == "Next Question"


class TestQuizAnswers:
    @pytest.mark.asyncio
    async def test_correct_answer(self, quiz, notifier, stub):
        await _mounted(quiz)
        assert quiz.answer("short-lived") is True
        view = quiz.view()
        assert view["feedback"] == "Correct!"
        assert view["explanation"] == "Ephemeral things last a very short time."
        assert quiz.score == 1
        await notifier.drain()
        assert stub.json_bodies("/api/vocabulary/update-stats") == [
            {"word": "What does ephemeral mean?", "isCorrect": True},
        ]

    @pytest.mark.asyncio
    async def test_second_selection_ignored(self, quiz, notifier, stub):
        await _mounted(quiz)
        assert quiz.answer("bright") is False
        assert quiz.answer("short-lived") is None
        assert quiz.selected == "bright"
        assert quiz.score == 0
        await notifier.drain()
        assert len(stub.calls("/api/vocabulary/update-stats")) == 1

    @pytest.mark.asyncio
    async def test_unknown_option(self, quiz):
        await _mounted(quiz)
        with pytest.raises(ValueError):
            quiz.answer("forever")
        assert quiz.selected is None

    @pytest.mark.asyncio
    async def test_stats_failure_does_not_affect_score(self, quiz, notifier, stub):
        stub.fail("/api/vocabulary/update-stats")
        await _mounted(quiz)
        assert quiz.answer("short-lived") is True
        await notifier.drain()
        assert quiz.score == 1

    @pytest.mark.asyncio
    async def test_next_requires_answer(self, quiz):
        await _mounted(quiz)
        with pytest.raises(StageBusy):
            await quiz.next()


class TestQuizFlow:
    @pytest.mark.asyncio
    async def test_one_right_one_wrong(self, quiz, completions):
        await _mounted(quiz)
        quiz.answer("short-lived")
        assert await quiz.next() is False
        view = quiz.view()
        assert view["answered"] is False
        assert view["score_display"] == "1 / 2"
        assert view["next_label"] == "Finish Quiz"

        quiz.answer("It grew")
        assert quiz.view()["score_display"] == "1 / 2"
        assert quiz.view()["feedback"] == "Incorrect."
        assert completions.calls == []

        assert await quiz.next() is True
        assert completions.calls == [()]

    @pytest.mark.asyncio
    async def test_score_bounded_and_monotonic(self, quiz):
        await _mounted(quiz)
        scores = []
        for q in list(quiz.questions):
            quiz.answer(q.correct_answer)
            quiz.answer(q.options[0])
            scores.append(quiz.score)
            assert quiz.score <= quiz.index + 1
            if not quiz.is_last:
                await quiz.next()
        assert scores == sorted(scores)
        assert quiz.score == 2

    @pytest.mark.asyncio
    async def test_generation_failure_can_finish(self, quiz, stub, completions):
        stub.fail("/api/quiz/generate")
        await _mounted(quiz)
        view = quiz.view()
        assert view["question"] is None
        assert view["next_label"] == "Finish Quiz"
        assert view["total"] == 0
        assert view["score_display"] == "0 / 0"
        with pytest.raises(StageBusy):
            quiz.answer("anything")
        assert await quiz.next() is True
        assert completions.calls == [()]
