"""
FastAPI Web Application - WhatsApp AI Bridge Dashboard
=======================================================

JSON API for templates, persona, session status and conversation history,
a WebSocket push channel for live events, and a single-page dashboard.

Run with:
    uvicorn wabridge.web.app:create_app --factory
"""

import logging
from contextlib import asynccontextmanager
from typing import Callable, Optional

from fastapi import APIRouter, BackgroundTasks, FastAPI, HTTPException, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse
from pydantic import BaseModel

from ..application import BridgeService, MessageRouter, terminate_process
from ..domain.history import ConversationHistory
from ..domain.models import Persona
from ..infrastructure.config import Settings, get_settings
from ..infrastructure.llm import CompletionService
from ..infrastructure.persistence import PersonaConfig, TemplateStore
from ..infrastructure.whatsapp.messaging_provider import MessagingProvider, SeleniumProvider
from .notifier import RealtimeNotifier
from .pages import render_dashboard

logger = logging.getLogger(__name__)


# ── Request bodies ─────────────────────────────────────────────────

class TemplateIn(BaseModel):
    trigger: str
    reply: str


class PersonaIn(BaseModel):
    brand: str = ""
    address: str = ""
    tone: str = ""
    extra_instructions: str = ""


# ── Accessors for per-app components ───────────────────────────────

def _templates(request: Request) -> TemplateStore:
    return request.app.state.templates


def _persona(request: Request) -> PersonaConfig:
    return request.app.state.persona


def _bridge(request: Request) -> BridgeService:
    return request.app.state.bridge


def _history(request: Request) -> ConversationHistory:
    return request.app.state.history


api = APIRouter(prefix="/api")


# ── Templates ──────────────────────────────────────────────────────

@api.get("/templates")
async def list_templates(request: Request):
    return [t.to_dict() for t in _templates(request).list()]


@api.post("/templates")
async def add_template(request: Request, body: TemplateIn):
    _templates(request).add(body.trigger, body.reply)
    return {"success": True}


@api.delete("/templates/{index}")
async def delete_template(request: Request, index: int):
    # Out-of-range indexes are ignored, not reported
    _templates(request).remove(index)
    return {"success": True}


# ── Persona ────────────────────────────────────────────────────────

@api.get("/persona")
async def get_persona(request: Request):
    return _persona(request).get().to_dict()


@api.post("/persona")
async def set_persona(request: Request, body: PersonaIn):
    _persona(request).set(Persona(**body.model_dump()))
    return {"success": True}


# ── Session ────────────────────────────────────────────────────────

@api.get("/status")
async def status(request: Request):
    return _bridge(request).status()


@api.get("/qr")
async def current_qr(request: Request):
    qr = _bridge(request).qr
    if qr is None:
        raise HTTPException(status_code=404, detail="No QR code pending")
    return qr


@api.post("/request-qr")
async def request_qr(request: Request):
    await _bridge(request).request_qr()
    return {"status": "qr_requested"}


@api.post("/logout")
async def logout(request: Request, background_tasks: BackgroundTasks):
    bridge = _bridge(request)
    try:
        await bridge.logout()
    except Exception as e:
        logger.exception(f"Logout failed: {e}")
        return JSONResponse({"success": False}, status_code=500)

    # The process exits once the response has been sent
    background_tasks.add_task(bridge.terminate)
    return {"success": True}


# ── Conversations ──────────────────────────────────────────────────

@api.get("/conversations")
async def list_conversations(request: Request):
    return _history(request).summaries()


@api.get("/conversations/{phone}")
async def get_conversation(request: Request, phone: str):
    detail = _history(request).detail(phone)
    if detail is None:
        raise HTTPException(status_code=404, detail="Conversation not found")
    return detail


@api.delete("/conversations/{phone}")
async def delete_conversation(request: Request, phone: str):
    _history(request).forget(phone)
    return {"success": True}


@api.delete("/conversations")
async def clear_conversations(request: Request):
    _history(request).clear()
    return {"success": True}


# ══════════════════════════════════════════════════════════════════
#  APP FACTORY
# ══════════════════════════════════════════════════════════════════

def create_app(
    settings: Optional[Settings] = None,
    provider: Optional[MessagingProvider] = None,
    completion: Optional[CompletionService] = None,
    shutdown: Callable[[], None] = terminate_process,
) -> FastAPI:
    """
    Build the application and its components.

    Template and persona files are read here, so a corrupt file stops the
    server before it starts listening.
    """
    settings = settings or get_settings()

    for issue in settings.validate():
        logger.warning(issue)

    templates = TemplateStore(settings.storage.templates_file)
    persona = PersonaConfig(settings.storage.persona_file)
    history = ConversationHistory(limit=settings.history_limit)
    notifier = RealtimeNotifier()

    if provider is None:
        provider = SeleniumProvider(
            headless=settings.whatsapp.headless,
            profile_dir=settings.whatsapp.profile_dir,
            poll_interval=settings.whatsapp.poll_interval,
            max_seen_ids=settings.whatsapp.max_seen_ids,
        )
    if completion is None:
        completion = CompletionService(
            api_key=settings.llm.api_key,
            api_url=settings.llm.api_url,
            model=settings.llm.model,
            timeout=settings.llm.timeout_seconds,
        )

    router = MessageRouter(
        templates=templates,
        persona=persona,
        completion=completion,
        provider=provider,
        notifier=notifier,
        history=history,
        fallback_reply=settings.llm.fallback_reply,
        error_reply=settings.llm.error_reply,
    )
    bridge = BridgeService(
        provider=provider,
        router=router,
        notifier=notifier,
        queue_size=settings.event_queue_size,
        shutdown=shutdown,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await bridge.start()
        yield
        await bridge.stop()

    app = FastAPI(
        title="WhatsApp AI Bridge",
        description="WhatsApp auto-replies from templates and an LLM",
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.server.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.settings = settings
    app.state.templates = templates
    app.state.persona = persona
    app.state.history = history
    app.state.notifier = notifier
    app.state.router = router
    app.state.bridge = bridge

    app.include_router(api)

    @app.get("/", response_class=HTMLResponse)
    async def dashboard():
        return render_dashboard()

    @app.websocket("/ws")
    async def events(websocket: WebSocket):
        await notifier.connect(websocket)
        try:
            while True:
                message = await websocket.receive_json()
                action = message.get("action") if isinstance(message, dict) else None
                if action == "get_status":
                    await notifier.send_to(websocket, "status", bridge.status())
                elif action == "get_qr":
                    # Late clients missed the broadcast; replay the pending code
                    if bridge.qr is not None:
                        await notifier.send_to(websocket, "qr_code_updated", bridge.qr)
                    else:
                        await notifier.send_to(websocket, "status", bridge.status())
        except (WebSocketDisconnect, ValueError):
            # ValueError: client sent something that is not JSON
            pass
        finally:
            notifier.disconnect(websocket)

    return app
