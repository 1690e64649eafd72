from __future__ import annotations

from mindsync.capture.base import AudioCapture, CaptureError


class BrowserCapture(AudioCapture):
    """Audio recorded by the browser and uploaded chunk by chunk."""

    def __init__(self, max_bytes: int = 10 * 1024 * 1024):
        self.max_bytes = max_bytes
        self._chunks: list[bytes] = []
        self._size = 0
        self.is_open = False

    async def open(self) -> None:
        self._chunks = []
        self._size = 0
        self.is_open = True

    async def feed(self, chunk: bytes) -> None:
        if not self.is_open:
            raise CaptureError("Capture is not open")
        if self._size + len(chunk) > self.max_bytes:
            raise CaptureError(f"Recording exceeds {self.max_bytes} bytes")
        self._chunks.append(chunk)
        self._size += len(chunk)

    async def finish(self) -> bytes:
        return b"".join(self._chunks)

    async def close(self) -> None:
        self._chunks = []
        self._size = 0
        self.is_open = False

    def name(self) -> str:
        return "browser"
