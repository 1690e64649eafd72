"""HTTP client for the external extraction, analysis, quiz and chat services."""
from __future__ import annotations

import asyncio
import logging
import time

import httpx

from mindsync.models import QuizQuestion, UnfamiliarWord

log = logging.getLogger("mindsync.services")


class ServiceError(Exception):
    """A service call failed, either in transport or with a non-2xx status."""

    def __init__(self, endpoint: str, status: int | None = None, detail: str = ""):
        self.endpoint = endpoint
        self.status = status
        msg = f"{endpoint} failed"
        if status is not None:
            msg += f" with status {status}"
        if detail:
            msg += f": {detail}"
        super().__init__(msg)


class ServiceClient:
    """One method per external endpoint. All failures raise ServiceError."""

    def __init__(
        self,
        base_url: str = "http://localhost:3000",
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url, timeout=timeout, transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _post(self, path: str, **kwargs) -> httpx.Response:
        t0 = time.monotonic()
        try:
            resp = await self._client.post(path, **kwargs)
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            log.info("%s -> %d (%.2fs)", path, e.response.status_code, time.monotonic() - t0)
            raise ServiceError(path, e.response.status_code) from e
        except httpx.HTTPError as e:
            log.info("%s -> transport error (%.2fs)", path, time.monotonic() - t0)
            raise ServiceError(path, detail=str(e) or type(e).__name__) from e
        log.info("%s -> %d (%.2fs)", path, resp.status_code, time.monotonic() - t0)
        return resp

    async def _post_json(self, path: str, **kwargs) -> dict:
        resp = await self._post(path, **kwargs)
        try:
            return resp.json()
        except ValueError as e:
            raise ServiceError(path, resp.status_code, "response is not JSON") from e

    # ── Document ──

    async def extract_text(self, filename: str, data: bytes, content_type: str) -> str:
        body = await self._post_json(
            "/api/upload", files={"file": (filename, data, content_type)},
        )
        return body.get("text", "")

    async def analyze(self, text: str) -> list[UnfamiliarWord]:
        body = await self._post_json("/api/document/analyze", json={"text": text})
        return [
            UnfamiliarWord(
                word=w.get("word", ""),
                definition=w.get("definition", ""),
                example=w.get("example") or None,
            )
            for w in body.get("unfamiliarWords") or []
        ]

    # ── Vocabulary ──

    async def set_level(self, level: str) -> None:
        await self._post("/api/vocabulary/set-level", json={"level": level})

    async def mark_known(self, word: str) -> None:
        await self._post("/api/vocabulary/mark-known", json={"word": word})

    async def update_stats(self, word: str, is_correct: bool) -> None:
        await self._post(
            "/api/vocabulary/update-stats", json={"word": word, "isCorrect": is_correct},
        )

    # ── Quiz ──

    async def generate_quiz(self, text: str) -> list[QuizQuestion]:
        body = await self._post_json("/api/quiz/generate", json={"text": text})
        return [
            QuizQuestion(
                id=str(q.get("id", i)),
                question=q.get("question", ""),
                options=list(q.get("options") or []),
                correct_answer=q.get("correctAnswer", ""),
                explanation=q.get("explanation", ""),
            )
            for i, q in enumerate(body.get("questions") or [])
        ]

    # ── Chat ──

    async def chat_text(self, message: str, document_text: str) -> str:
        body = await self._post_json(
            "/api/chat/text", json={"message": message, "documentText": document_text},
        )
        return body.get("response", "")

    async def chat_voice(self, audio: bytes, document_text: str) -> tuple[str, str]:
        """Send a recorded turn. Returns (transcription, response)."""
        body = await self._post_json(
            "/api/chat/voice",
            files={"audio": ("recording.wav", audio, "audio/wav")},
            data={"documentText": document_text},
        )
        return body.get("transcription", ""), body.get("response", "")


async def notify(coro, what: str) -> bool:
    """Await a best-effort notification. Failures are logged, never raised.

    Used for side-effect calls whose outcome the user never sees (stats
    updates). There is no retry.
    """
    try:
        await coro
        return True
    except ServiceError as e:
        log.warning("%s not recorded: %s", what, e)
        return False


class Notifier:
    """Fire-and-forget notifications that outlive the stage that sent them."""

    def __init__(self):
        self._tasks: set[asyncio.Task] = set()

    def send(self, coro, what: str) -> asyncio.Task:
        task = asyncio.ensure_future(notify(coro, what))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self, timeout: float | None = None) -> None:
        if self._tasks:
            await asyncio.wait(list(self._tasks), timeout=timeout)
