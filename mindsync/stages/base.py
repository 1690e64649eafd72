from __future__ import annotations

from abc import ABC, abstractmethod

from mindsync.scope import StageScope


class StageBusy(Exception):
    """The action is not available in the stage's current state."""


class Stage(ABC):
    """One mounted step of the session.

    A stage owns its private state and its scope. It talks back to the
    controller only through the completion callback it was built with.
    """

    name = ""

    def __init__(self):
        self.scope = StageScope(self.name)

    def mount(self) -> None:
        """Start the stage's own async work, if any."""

    async def unmount(self) -> None:
        self.scope.cancel()

    @abstractmethod
    def view(self) -> dict:
        """JSON-ready view model of the stage's current state."""
