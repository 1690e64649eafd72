from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from mindsync.config import Settings
from mindsync.models import Document
from mindsync.services import ServiceClient, ServiceError
from mindsync.stages.base import Stage

log = logging.getLogger("mindsync.upload")

UPLOAD_FAILED = "Failed to process document"


class UnsupportedDocument(Exception):
    pass


class UploadStage(Stage):
    name = "upload"

    def __init__(
        self,
        services: ServiceClient,
        settings: Settings,
        on_complete: Callable[[Document], Awaitable[None]],
    ):
        super().__init__()
        self._services = services
        self._settings = settings
        self._on_complete = on_complete
        self.pending = 0
        self.error: str | None = None

    @property
    def busy(self) -> bool:
        return self.pending > 0

    async def upload(self, filename: str, data: bytes, content_type: str | None = None) -> Document | None:
        """Extract a document's text. Returns None when extraction failed."""
        if not filename:
            raise UnsupportedDocument("No file provided")
        ctype = self._settings.resolve_content_type(filename, content_type)
        if ctype is None:
            raise UnsupportedDocument(f"Unsupported file type: {filename}")
        if len(data) > self._settings.max_upload_bytes:
            raise UnsupportedDocument(
                f"{filename} is larger than {self._settings.max_upload_bytes} bytes"
            )

        self.pending += 1
        self.error = None
        try:
            text = await self.scope.call(self._services.extract_text(filename, data, ctype))
        except ServiceError as e:
            log.warning("Extraction failed for %s: %s", filename, e)
            self.error = UPLOAD_FAILED
            return None
        finally:
            self.pending -= 1

        doc = Document(text=text, name=filename)
        log.info("Extracted %d characters from %s", len(text), filename)
        await self._on_complete(doc)
        return doc

    def view(self) -> dict:
        return {
            "busy": self.busy,
            "error": self.error,
            "accepted_types": list(self._settings.accepted_types),
        }
