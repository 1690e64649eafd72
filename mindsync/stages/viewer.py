from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from mindsync.highlight import highlight
from mindsync.models import Document, Segment, UnfamiliarWord
from mindsync.services import ServiceClient, ServiceError
from mindsync.stages.base import Stage, StageBusy

log = logging.getLogger("mindsync.viewer")


class ViewerStage(Stage):
    name = "view"

    def __init__(
        self,
        services: ServiceClient,
        document: Document,
        on_complete: Callable[[], Awaitable[None]],
    ):
        super().__init__()
        self._services = services
        self._on_complete = on_complete
        self.document = document
        self.words: list[UnfamiliarWord] = []
        self.loading = True

    def mount(self) -> None:
        self.scope.spawn(self._analyze())

    async def _analyze(self) -> None:
        try:
            words = await self._services.analyze(self.document.text)
        except ServiceError as e:
            log.warning("Analysis failed for %s: %s", self.document.name, e)
            words = []
        self.words = words
        self.loading = False
        log.info("%d unfamiliar words in %s", len(words), self.document.name)

    @property
    def segments(self) -> list[Segment]:
        # Rebuilt from the current word list, so known words lose their highlight
        return highlight(self.document.text, self.words)

    async def mark_known(self, word: str) -> bool:
        if self.loading:
            raise StageBusy("Document is still being analyzed")
        try:
            await self.scope.call(self._services.mark_known(word))
        except ServiceError as e:
            log.warning("Could not mark %r as known: %s", word, e)
            return False
        self.words = [w for w in self.words if w.word != word]
        return True

    async def finish(self) -> None:
        if self.loading:
            raise StageBusy("Document is still being analyzed")
        await self._on_complete()

    def view(self) -> dict:
        if self.loading:
            return {"name": self.document.name, "loading": True}
        return {
            "name": self.document.name,
            "loading": False,
            "segments": [
                {"text": s.text, "highlighted": s.highlighted, "tooltip": s.tooltip}
                for s in self.segments
            ],
            "unfamiliar_words": [
                {"word": w.word, "definition": w.definition, "example": w.example}
                for w in self.words
            ],
            "can_continue": True,
        }
