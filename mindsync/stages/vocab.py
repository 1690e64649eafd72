from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from mindsync.models import LEVELS
from mindsync.services import ServiceClient, ServiceError
from mindsync.stages.base import Stage, StageBusy

log = logging.getLogger("mindsync.vocab")


class VocabStage(Stage):
    name = "vocab"

    def __init__(self, services: ServiceClient, on_complete: Callable[[], Awaitable[None]]):
        super().__init__()
        self._services = services
        self._on_complete = on_complete
        self.selected: str | None = None
        self.submitting = False

    @property
    def can_continue(self) -> bool:
        return self.selected is not None and not self.submitting

    def select(self, level: str) -> None:
        if level not in LEVELS:
            raise ValueError(f"Unknown level: {level}")
        self.selected = level

    async def submit(self) -> bool:
        """Save the chosen level and advance. Returns False if saving failed."""
        if self.selected is None:
            raise StageBusy("No level selected")
        if self.submitting:
            raise StageBusy("Level is already being saved")

        level = self.selected
        self.submitting = True
        try:
            await self.scope.call(self._services.set_level(level))
        except ServiceError as e:
            # User stays on this stage with Continue enabled again
            log.warning("Could not set vocabulary level %s: %s", level, e)
            return False
        finally:
            self.submitting = False

        log.info("Vocabulary level set to %s", level)
        await self._on_complete()
        return True

    def view(self) -> dict:
        return {
            "levels": [{"level": k, "description": v} for k, v in LEVELS.items()],
            "selected": self.selected,
            "submitting": self.submitting,
            "can_continue": self.can_continue,
        }
