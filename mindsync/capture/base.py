from __future__ import annotations

from abc import ABC, abstractmethod


class CaptureError(Exception):
    pass


class AudioCapture(ABC):
    """A microphone-like source acquired for exactly one recording."""

    @abstractmethod
    async def open(self) -> None:
        ...

    @abstractmethod
    async def feed(self, chunk: bytes) -> None:
        """Deliver a chunk of captured audio."""
        ...

    @abstractmethod
    async def finish(self) -> bytes:
        """Finalize the recording into a single blob."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release the source. Must be safe to call more than once."""
        ...

    @abstractmethod
    def name(self) -> str:
        ...
