from __future__ import annotations

import logging
import uuid
from collections.abc import Callable

from mindsync.capture.base import AudioCapture
from mindsync.models import ChatMessage, Document
from mindsync.recorder import Recorder
from mindsync.services import ServiceClient, ServiceError
from mindsync.stages.base import Stage, StageBusy

log = logging.getLogger("mindsync.chat")


class ChatStage(Stage):
    """Text and voice conversation about the document.

    The transcript is append-only. A text turn shows the user's message
    right away; a voice turn adds both messages once the reply arrives,
    since the transcription is not known before then.
    """

    name = "chat"

    def __init__(
        self,
        services: ServiceClient,
        document: Document,
        capture_factory: Callable[[], AudioCapture],
    ):
        super().__init__()
        self._services = services
        self.document = document
        self.messages: list[ChatMessage] = []
        self.failed_turns: list[str] = []  # ids of user messages left unanswered
        self.recorder = Recorder(capture_factory)
        self.processing = False

    @staticmethod
    def _message(text: str, is_user: bool) -> ChatMessage:
        return ChatMessage(id=uuid.uuid4().hex, text=text, is_user=is_user)

    async def send_text(self, text: str) -> ChatMessage | None:
        """Run a text turn. Returns the assistant reply, or None."""
        if not text.strip():
            return None
        user_msg = self._message(text, True)
        self.messages.append(user_msg)
        try:
            response = await self.scope.call(
                self._services.chat_text(text, self.document.text)
            )
        except ServiceError as e:
            log.warning("No reply for message %s: %s", user_msg.id, e)
            self.failed_turns.append(user_msg.id)
            return None
        reply = self._message(response, False)
        self.messages.append(reply)
        return reply

    async def start_recording(self) -> None:
        if self.processing:
            raise StageBusy("Still processing the last recording")
        await self.recorder.start()

    async def add_audio(self, chunk: bytes) -> None:
        await self.recorder.feed(chunk)

    async def stop_recording(self) -> list[ChatMessage]:
        """Finish the recording and run it as a voice turn."""
        audio = await self.recorder.stop()
        self.processing = True
        try:
            transcription, response = await self.scope.call(
                self._services.chat_voice(audio, self.document.text)
            )
        except ServiceError as e:
            log.warning("Voice turn failed: %s", e)
            return []
        finally:
            self.processing = False
        turn = [self._message(transcription, True), self._message(response, False)]
        self.messages.extend(turn)
        return turn

    async def unmount(self) -> None:
        await super().unmount()
        await self.recorder.release()

    def view(self) -> dict:
        return {
            "messages": [m.to_dict() for m in self.messages],
            "recording": self.recorder.recording,
            "processing": self.processing,
            "failed_turns": list(self.failed_turns),
            "scroll_to": self.messages[-1].id if self.messages else None,
        }
