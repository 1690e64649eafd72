from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

STAGES = ("upload", "vocab", "view", "quiz", "chat")

LEVELS = {
    "easy": "Basic vocabulary suitable for beginners",
    "medium": "Intermediate vocabulary for regular readers",
    "hard": "Advanced vocabulary for experienced readers",
}


@dataclass(frozen=True)
class Document:
    text: str
    name: str


@dataclass
class UnfamiliarWord:
    word: str
    definition: str
    example: str | None = None


@dataclass
class QuizQuestion:
    id: str
    question: str
    options: list[str]
    correct_answer: str
    explanation: str


@dataclass
class ChatMessage:
    id: str
    text: str
    is_user: bool
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "text": self.text,
            "is_user": self.is_user,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class Segment:
    text: str
    highlighted: bool = False
    tooltip: str | None = None  # definition, only on highlighted segments
