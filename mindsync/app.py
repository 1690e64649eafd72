"""FastAPI application with all routes."""
from __future__ import annotations

import asyncio
import logging
import time
import uuid
from pathlib import Path

logging.basicConfig(level=logging.INFO, format="%(name)s | %(message)s")

from fastapi import FastAPI, File, HTTPException, Request, UploadFile
from fastapi.responses import FileResponse

from mindsync.config import Settings, load_settings, save_settings
from mindsync.controller import IllegalTransition, StageController
from mindsync.recorder import RecorderError
from mindsync.scope import StageLeft
from mindsync.services import ServiceClient
from mindsync.stages.base import Stage, StageBusy
from mindsync.stages.chat import ChatStage
from mindsync.stages.quiz import QuizStage
from mindsync.stages.upload import UnsupportedDocument, UploadStage
from mindsync.stages.viewer import ViewerStage
from mindsync.stages.vocab import VocabStage

app = FastAPI(title="MindSync AI")

log = logging.getLogger("mindsync.app")

# Global state (initialized in startup)
_settings: Settings | None = None
_services: ServiceClient | None = None
_sessions: dict[str, StageController] = {}  # session_id -> controller
_sweeper: asyncio.Task | None = None  # idle-session expiry loop

SWEEP_INTERVAL = 60.0


def get_settings() -> Settings:
    assert _settings is not None
    return _settings


def get_services() -> ServiceClient:
    assert _services is not None
    return _services


@app.on_event("startup")
async def startup():
    global _settings, _services, _sweeper
    if _services is not None:
        return  # Already initialized (e.g. by tests)
    _settings = load_settings()
    _services = ServiceClient(_settings.services_url, timeout=_settings.request_timeout)
    log.info("Using services at %s", _settings.services_url)
    _sweeper = asyncio.create_task(_sweep_loop())


@app.on_event("shutdown")
async def shutdown():
    if _sweeper is not None:
        _sweeper.cancel()
    for sid in list(_sessions):
        await _sessions.pop(sid).close()
    if _services is not None:
        await _services.aclose()


# ── Static files ──────────────────────────────────────────────────────────

static_dir = Path(__file__).parent / "static"


@app.get("/")
async def index():
    return FileResponse(static_dir / "index.html")


@app.get("/style.css")
async def style():
    return FileResponse(static_dir / "style.css", media_type="text/css")


@app.get("/app.js")
async def script():
    return FileResponse(static_dir / "app.js", media_type="application/javascript")


# ── Helpers ───────────────────────────────────────────────────────────────

def _get_session(session_id: str) -> StageController:
    ctrl = _sessions.get(session_id)
    if ctrl is None:
        raise HTTPException(404, "Session not found")
    ctrl.touch()
    return ctrl


def _get_stage(session_id: str, cls: type[Stage]):
    ctrl = _get_session(session_id)
    stage = ctrl.current
    if not isinstance(stage, cls):
        raise HTTPException(409, f"Session is in the '{ctrl.stage}' stage")
    return ctrl, stage


async def _run(coro):
    """Await a stage operation, mapping domain errors to HTTP errors."""
    try:
        return await coro
    except (IllegalTransition, StageLeft, StageBusy, RecorderError) as e:
        raise HTTPException(409, str(e))
    except UnsupportedDocument as e:
        raise HTTPException(415, str(e))
    except ValueError as e:
        raise HTTPException(400, str(e))


async def _json_field(request: Request, name: str) -> str:
    try:
        body = await request.json() if await request.body() else {}
    except ValueError:
        raise HTTPException(400, "Invalid JSON body")
    value = body.get(name) if isinstance(body, dict) else None
    if not isinstance(value, str):
        raise HTTPException(400, f"No {name} provided")
    return value


async def expire_idle_sessions(now: float | None = None) -> list[str]:
    """Close sessions idle for longer than session_idle_timeout.

    Pages delete their own session on unload; this catches the ones that
    never do (crashed tabs, lost connections).
    """
    now = time.monotonic() if now is None else now
    limit = get_settings().session_idle_timeout
    expired = [sid for sid, ctrl in _sessions.items() if now - ctrl.last_active > limit]
    for sid in expired:
        ctrl = _sessions.pop(sid)
        await ctrl.close()
        log.info("Session %s expired after %.0fs idle", sid, now - ctrl.last_active)
    return expired


async def _sweep_loop():
    while True:
        await asyncio.sleep(SWEEP_INTERVAL)
        try:
            await expire_idle_sessions()
        except Exception:
            log.exception("Session sweep failed")


# ── API: Session ──────────────────────────────────────────────────────────

@app.post("/api/session")
async def api_session_create():
    await expire_idle_sessions()
    session_id = uuid.uuid4().hex
    ctrl = StageController(get_services(), get_settings())
    _sessions[session_id] = ctrl
    log.info("Session %s started", session_id)
    return {"session_id": session_id, **ctrl.render()}


@app.get("/api/session/{session_id}")
async def api_session_get(session_id: str, wait: bool = False):
    ctrl = _get_session(session_id)
    if wait:
        await ctrl.settle(timeout=get_settings().settle_timeout)
    return ctrl.render()


@app.delete("/api/session/{session_id}")
async def api_session_delete(session_id: str):
    ctrl = _sessions.pop(session_id, None)
    if ctrl is None:
        raise HTTPException(404, "Session not found")
    await ctrl.close()
    log.info("Session %s closed", session_id)
    return {"ok": True}


# ── API: Upload ───────────────────────────────────────────────────────────

@app.post("/api/session/{session_id}/upload")
async def api_upload(session_id: str, file: UploadFile = File(...)):
    ctrl, stage = _get_stage(session_id, UploadStage)
    data = await file.read()
    doc = await _run(stage.upload(file.filename or "", data, file.content_type))
    return {"ok": doc is not None, **ctrl.render()}


# ── API: Vocabulary level ─────────────────────────────────────────────────

@app.post("/api/session/{session_id}/vocab/select")
async def api_vocab_select(session_id: str, request: Request):
    ctrl, stage = _get_stage(session_id, VocabStage)
    level = await _json_field(request, "level")
    try:
        stage.select(level)
    except ValueError as e:
        raise HTTPException(400, str(e))
    return ctrl.render()


@app.post("/api/session/{session_id}/vocab/submit")
async def api_vocab_submit(session_id: str):
    ctrl, stage = _get_stage(session_id, VocabStage)
    ok = await _run(stage.submit())
    return {"ok": ok, **ctrl.render()}


# ── API: Document viewer ──────────────────────────────────────────────────

@app.post("/api/session/{session_id}/view/mark-known")
async def api_view_mark_known(session_id: str, request: Request):
    ctrl, stage = _get_stage(session_id, ViewerStage)
    word = await _json_field(request, "word")
    ok = await _run(stage.mark_known(word))
    return {"ok": ok, **ctrl.render()}


@app.post("/api/session/{session_id}/view/continue")
async def api_view_continue(session_id: str):
    ctrl, stage = _get_stage(session_id, ViewerStage)
    await _run(stage.finish())
    return ctrl.render()


# ── API: Quiz ─────────────────────────────────────────────────────────────

@app.post("/api/session/{session_id}/quiz/answer")
async def api_quiz_answer(session_id: str, request: Request):
    ctrl, stage = _get_stage(session_id, QuizStage)
    answer = await _json_field(request, "answer")
    try:
        stage.answer(answer)
    except StageBusy as e:
        raise HTTPException(409, str(e))
    except ValueError as e:
        raise HTTPException(400, str(e))
    return ctrl.render()


@app.post("/api/session/{session_id}/quiz/next")
async def api_quiz_next(session_id: str):
    ctrl, stage = _get_stage(session_id, QuizStage)
    finished = await _run(stage.next())
    return {"finished": finished, **ctrl.render()}


# ── API: Chat ─────────────────────────────────────────────────────────────

@app.post("/api/session/{session_id}/chat/text")
async def api_chat_text(session_id: str, request: Request):
    ctrl, stage = _get_stage(session_id, ChatStage)
    message = await _json_field(request, "message")
    await _run(stage.send_text(message))
    return ctrl.render()


@app.post("/api/session/{session_id}/chat/record/start")
async def api_chat_record_start(session_id: str):
    ctrl, stage = _get_stage(session_id, ChatStage)
    await _run(stage.start_recording())
    return ctrl.render()


@app.post("/api/session/{session_id}/chat/record/chunk")
async def api_chat_record_chunk(session_id: str, request: Request):
    _, stage = _get_stage(session_id, ChatStage)
    chunk = await request.body()
    await _run(stage.add_audio(chunk))
    return {"ok": True}


@app.post("/api/session/{session_id}/chat/record/stop")
async def api_chat_record_stop(session_id: str):
    ctrl, stage = _get_stage(session_id, ChatStage)
    await _run(stage.stop_recording())
    return ctrl.render()


# ── API: Settings ─────────────────────────────────────────────────────────

@app.get("/api/settings")
async def api_get_settings():
    return get_settings().to_dict()


@app.put("/api/settings")
async def api_update_settings(request: Request):
    body = await request.json()
    s = get_settings()
    known = {f.name for f in Settings.__dataclass_fields__.values()}
    for k, v in body.items():
        if k in known:
            setattr(s, k, v)
    save_settings(s)
    return s.to_dict()
