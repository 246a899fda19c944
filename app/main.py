from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import BackgroundTasks, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
import logging
from pydantic import BaseModel, ConfigDict, Field

from config.settings import get_settings
from genzoom.factory import build_runtime
from genzoom.replies import DeliveryTarget


logging.basicConfig(level=logging.INFO, format="[%(asctime)s] %(levelname)s - %(message)s")
logger = logging.getLogger("genzoom")


@asynccontextmanager
async def lifespan(app: FastAPI):
    runtime = build_runtime(get_settings())
    await runtime.start()
    app.state.orchestrator = runtime.orchestrator
    logger.info("GenZoom bot started")
    try:
        yield
    finally:
        await runtime.close()
        logger.info("GenZoom bot stopped")


app = FastAPI(title="GenZoom Team Chat Bot", version="1.0.0", lifespan=lifespan)

# CORS: allow local tooling during development
settings = get_settings()
if settings.app_env.lower() in {"dev", "development", "local"}:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


class ChatPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    user_id: str = Field(..., alias="userId", description="Zoom user id, used as the memory key")
    cmd: Optional[str] = Field(None, description="The user's message text")
    to_jid: str = Field(..., alias="toJid", description="Conversation to reply into")
    account_id: str = Field(..., alias="accountId")
    user_jid: Optional[str] = Field(None, alias="userJid")
    user_name: Optional[str] = Field(None, alias="userName")


class ChatEvent(BaseModel):
    model_config = ConfigDict(extra="allow")

    event: str = Field(..., description="Zoom event name, e.g. bot_notification")
    payload: ChatPayload


@app.post("/chat")
async def chat(event: ChatEvent, request: Request, background: BackgroundTasks) -> Dict[str, Any]:
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        raise HTTPException(status_code=503, detail="Bot is not ready")

    payload = event.payload
    logger.info("Received Zoom event: %s from user=%s", event.event, payload.user_id)
    if not (payload.cmd or "").strip():
        logger.info("Event has no message text, ignoring")
        return {"message": "Event received. Nothing to process.", "status": 200}

    target = DeliveryTarget(
        to_jid=payload.to_jid,
        account_id=payload.account_id,
        user_jid=payload.user_jid,
    )
    # Acknowledge first; the turn is processed after the response is sent
    background.add_task(orchestrator.handle, payload.user_id, payload.cmd, target)
    return {"message": "Event received. Processing...", "status": 200}


@app.get("/health")
def health():
    return {"status": "ok"}
