"""Forward-only stage controller for one learning session."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, replace

from mindsync.capture.browser import BrowserCapture
from mindsync.config import Settings
from mindsync.models import Document
from mindsync.services import Notifier, ServiceClient
from mindsync.stages.base import Stage
from mindsync.stages.chat import ChatStage
from mindsync.stages.quiz import QuizStage
from mindsync.stages.upload import UploadStage
from mindsync.stages.viewer import ViewerStage
from mindsync.stages.vocab import VocabStage

log = logging.getLogger("mindsync.controller")


class IllegalTransition(Exception):
    pass


@dataclass(frozen=True)
class SessionState:
    stage: str = "upload"  # upload | vocab | view | quiz | chat
    document: Document | None = None


# event -> (stage it must be sent from, stage it leads to)
TRANSITIONS = {
    "upload_complete": ("upload", "vocab"),
    "vocab_complete": ("vocab", "view"),
    "view_complete": ("view", "quiz"),
    "quiz_complete": ("quiz", "chat"),
}

REQUIRES_DOCUMENT = {"view_complete", "quiz_complete"}

# Stages that render nothing without a document
DOCUMENT_STAGES = {"view", "quiz", "chat"}


def transition(state: SessionState, event: str, document: Document | None = None) -> SessionState:
    """Apply one event to a session state and return the new state.

    Raises IllegalTransition, leaving the input untouched, when the event
    does not belong to the current stage or its prerequisites are missing.
    Only upload_complete may carry (and set) a document.
    """
    if event not in TRANSITIONS:
        raise IllegalTransition(f"Unknown event: {event}")
    source, target = TRANSITIONS[event]
    if state.stage != source:
        raise IllegalTransition(f"Cannot apply {event} in stage '{state.stage}'")

    if event == "upload_complete":
        if document is None:
            raise IllegalTransition("upload_complete requires a document")
        return SessionState(stage=target, document=document)

    if document is not None:
        raise IllegalTransition(f"{event} cannot set the document")
    if event in REQUIRES_DOCUMENT and state.document is None:
        raise IllegalTransition(f"{event} requires a loaded document")
    return replace(state, stage=target)


class StageController:
    """Owns the session state and the single mounted stage.

    Stages report completion through the complete_* callbacks; each one
    runs the reducer, unmounts the old stage and mounts the next.
    """

    def __init__(self, services: ServiceClient, settings: Settings):
        self._services = services
        self._settings = settings
        self.state = SessionState()
        self.notifier = Notifier()
        self.current: Stage | None = None
        self.last_active = time.monotonic()
        self._mount()

    @property
    def stage(self) -> str:
        return self.state.stage

    def touch(self) -> None:
        self.last_active = time.monotonic()

    @property
    def document(self) -> Document | None:
        return self.state.document

    async def complete_upload(self, document: Document) -> None:
        await self._dispatch("upload_complete", document)

    async def complete_vocab(self) -> None:
        await self._dispatch("vocab_complete")

    async def complete_view(self) -> None:
        await self._dispatch("view_complete")

    async def complete_quiz(self) -> None:
        await self._dispatch("quiz_complete")

    async def _dispatch(self, event: str, document: Document | None = None) -> None:
        new_state = transition(self.state, event, document)
        old, self.current = self.current, None
        log.info("%s -> %s", self.state.stage, new_state.stage)
        self.state = new_state
        if old is not None:
            await old.unmount()
        self._mount()

    def _build(self) -> Stage | None:
        stage, doc = self.state.stage, self.state.document
        if stage == "upload":
            return UploadStage(self._services, self._settings, self.complete_upload)
        if stage == "vocab":
            return VocabStage(self._services, self.complete_vocab)
        if doc is None:
            return None
        if stage == "view":
            return ViewerStage(self._services, doc, self.complete_view)
        if stage == "quiz":
            return QuizStage(self._services, doc, self.notifier, self.complete_quiz)
        max_bytes = self._settings.max_recording_bytes
        return ChatStage(self._services, doc, lambda: BrowserCapture(max_bytes))

    def _mount(self) -> None:
        self.current = self._build()
        if self.current is not None:
            self.current.mount()
        elif self.stage in DOCUMENT_STAGES:
            log.warning("Stage '%s' reached without a document, nothing to show", self.stage)

    async def settle(self, timeout: float | None = None) -> None:
        """Wait for the mounted stage's pending requests (e.g. initial loads)."""
        if self.current is not None:
            await self.current.scope.settle(timeout)

    def render(self) -> dict:
        doc = self.state.document
        return {
            "stage": self.state.stage,
            "document": {"name": doc.name, "length": len(doc.text)} if doc else None,
            "view": self.current.view() if self.current is not None else None,
        }

    async def close(self) -> None:
        """Tear down the mounted stage and let pending notifications finish."""
        if self.current is not None:
            await self.current.unmount()
            self.current = None
        await self.notifier.drain(timeout=self._settings.request_timeout)
