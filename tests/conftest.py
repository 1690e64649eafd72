"""Shared test fixtures."""
from __future__ import annotations

import json

import httpx
import pytest

from mindsync.config import Settings
from mindsync.models import Document, QuizQuestion
from mindsync.services import ServiceClient

DOC_TEXT = "The ephemeral glow faded."


class ServiceStub:
    """Stands in for the external services behind an httpx.MockTransport.

    Each route maps a path to a (status, body) pair, an exception to raise,
    or a callable taking the request (sync or async) that returns a Response.
    """

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.routes: dict = {
            "/api/upload": (200, {"text": DOC_TEXT}),
            "/api/document/analyze": (200, {"unfamiliarWords": [
                {"word": "ephemeral", "definition": "short-lived"},
            ]}),
            "/api/vocabulary/mark-known": (200, {}),
            "/api/vocabulary/set-level": (200, {}),
            "/api/vocabulary/update-stats": (200, {}),
            "/api/quiz/generate": (200, {"questions": [
                {
                    "id": "q1",
                    "question": "What does ephemeral mean?",
                    "options": ["short-lived", "bright", "ancient"],
                    "correctAnswer": "short-lived",
                    "explanation": "Ephemeral things last a very short time.",
                },
                {
                    "id": "q2",
                    "question": "What happened to the glow?",
                    "options": ["It grew", "It faded"],
                    "correctAnswer": "It faded",
                    "explanation": "The sentence says the glow faded.",
                },
            ]}),
            "/api/chat/text": (200, {"response": "It means short-lived."}),
            "/api/chat/voice": (200, {
                "transcription": "What does ephemeral mean?",
                "response": "Short-lived.",
            }),
        }

    def __call__(self, request: httpx.Request):
        self.requests.append(request)
        route = self.routes.get(request.url.path)
        if route is None:
            return httpx.Response(404)
        if isinstance(route, Exception):
            raise route
        if callable(route):
            return route(request)
        status, body = route
        return httpx.Response(status, json=body)

    def calls(self, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]

    def json_bodies(self, path: str) -> list[dict]:
        return [json.loads(r.content) for r in self.calls(path)]

    def fail(self, path: str, status: int = 500) -> None:
        self.routes[path] = (status, {"error": "boom"})


@pytest.fixture
def stub():
    return ServiceStub()


@pytest.fixture
def services(stub):
    return ServiceClient("http://services.test", transport=httpx.MockTransport(stub))


@pytest.fixture
def settings():
    return Settings(services_url="http://services.test", settle_timeout=5.0)


@pytest.fixture
def document():
    return Document(text=DOC_TEXT, name="notes.txt")


@pytest.fixture
def sample_questions():
    return [
        QuizQuestion("q1", "What does ephemeral mean?", ["short-lived", "bright", "ancient"],
                     "short-lived", "Ephemeral things last a very short time."),
        QuizQuestion("q2", "What happened to the glow?", ["It grew", "It faded"],
                     "It faded", "The sentence says the glow faded."),
    ]


class Completions:
    """Records completion callbacks handed to a stage."""

    def __init__(self):
        self.calls: list = []

    async def __call__(self, *args):
        self.calls.append(args)


@pytest.fixture
def completions():
    return Completions()
