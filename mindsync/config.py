from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path

CONFIG_PATH = Path(__file__).resolve().parent.parent / "config.json"

DEFAULTS = {
    "services_url": "http://localhost:3000",
    "request_timeout": 60.0,
    "settle_timeout": 30.0,
    "max_upload_bytes": 20 * 1024 * 1024,
    "max_recording_bytes": 10 * 1024 * 1024,
    "session_idle_timeout": 3600.0,
    "accepted_types": ["application/pdf", "text/plain"],
}

# Fallback when the browser sends a generic content type
EXTENSION_TYPES = {
    ".pdf": "application/pdf",
    ".txt": "text/plain",
}
GENERIC_TYPES = {None, "", "application/octet-stream"}


@dataclass
class Settings:
    services_url: str = DEFAULTS["services_url"]
    request_timeout: float = DEFAULTS["request_timeout"]
    settle_timeout: float = DEFAULTS["settle_timeout"]
    max_upload_bytes: int = DEFAULTS["max_upload_bytes"]
    max_recording_bytes: int = DEFAULTS["max_recording_bytes"]
    session_idle_timeout: float = DEFAULTS["session_idle_timeout"]
    accepted_types: list[str] = field(default_factory=lambda: list(DEFAULTS["accepted_types"]))

    def resolve_content_type(self, filename: str, content_type: str | None) -> str | None:
        """Return the accepted MIME type for an upload, or None if rejected."""
        if content_type in self.accepted_types:
            return content_type
        if content_type not in GENERIC_TYPES:
            return None
        guessed = EXTENSION_TYPES.get(Path(filename).suffix.lower())
        if guessed in self.accepted_types:
            return guessed
        return None

    def to_dict(self) -> dict:
        return {
            "services_url": self.services_url,
            "request_timeout": self.request_timeout,
            "settle_timeout": self.settle_timeout,
            "max_upload_bytes": self.max_upload_bytes,
            "max_recording_bytes": self.max_recording_bytes,
            "session_idle_timeout": self.session_idle_timeout,
            "accepted_types": self.accepted_types,
        }


def load_settings() -> Settings:
    if CONFIG_PATH.exists():
        raw = json.loads(CONFIG_PATH.read_text())
        known = {f.name for f in Settings.__dataclass_fields__.values()}
        filtered = {k: v for k, v in raw.items() if k in known}
        return Settings(**filtered)
    return Settings()


def save_settings(settings: Settings) -> None:
    CONFIG_PATH.write_text(json.dumps(settings.to_dict(), indent=4) + "\n")
