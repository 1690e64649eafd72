"""Two-state voice recorder with scoped capture acquisition."""
from __future__ import annotations

import logging
from collections.abc import Callable

from mindsync.capture.base import AudioCapture, CaptureError

log = logging.getLogger("mindsync.recorder")


class RecorderError(Exception):
    pass


class Recorder:
    """Toggles between idle and recording.

    A capture is opened on start() and closed on stop() or release(),
    whichever comes first, so the source is never left open.
    """

    def __init__(self, capture_factory: Callable[[], AudioCapture]):
        self._factory = capture_factory
        self._capture: AudioCapture | None = None

    @property
    def recording(self) -> bool:
        return self._capture is not None

    async def start(self) -> None:
        if self._capture is not None:
            raise RecorderError("Already recording")
        capture = self._factory()
        await capture.open()
        self._capture = capture
        log.info("Recording started (%s)", capture.name())

    async def feed(self, chunk: bytes) -> None:
        if self._capture is None:
            raise RecorderError("Not recording")
        try:
            await self._capture.feed(chunk)
        except CaptureError as e:
            raise RecorderError(str(e)) from e

    async def stop(self) -> bytes:
        if self._capture is None:
            raise RecorderError("Not recording")
        capture, self._capture = self._capture, None
        try:
            audio = await capture.finish()
        finally:
            await capture.close()
        log.info("Recording stopped, %d bytes", len(audio))
        return audio

    async def release(self) -> None:
        """Drop an unfinished recording and free the capture."""
        if self._capture is None:
            return
        capture, self._capture = self._capture, None
        await capture.close()
        log.info("Recording discarded, capture released")
