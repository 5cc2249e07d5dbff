"""
src/api/routes.py
==================
API Endpoints — Smart Listener

Responsibility:
    - Expose the listener to the UI layer over HTTP
    - POST new-question / response-ready events to WEBHOOK_URL (if set)

Endpoints:
    POST /api/v1/smart-listener/analyze                   {"text": "..."}
    GET  /api/v1/smart-listener/queue
    POST /api/v1/smart-listener/questions/{id}/viewed
    POST /api/v1/smart-listener/viewed
    GET  /api/v1/smart-listener/unviewed-count
    POST /api/v1/smart-listener/clear
    POST /api/v1/smart-listener/reset

All handlers are ``async def`` so they run on the event loop that owns
the listener state.
"""

import logging
import os
from typing import Any

import aiohttp
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from src.answer_queue import QuestionItem
from src.config import load_config
from src.smart_listener import SmartListener

logger = logging.getLogger("smartlistener.api")

WEBHOOK_URL: str | None = os.getenv("WEBHOOK_URL")

_listener: SmartListener | None = None


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Smart Listener",
    description="Live question detection and bounded AI answer generation.",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class AnalyzeRequest(BaseModel):
    text: str


async def get_listener() -> SmartListener:
    """Process-wide listener, built on the event loop thread on first use."""
    global _listener
    if _listener is None:
        _listener = SmartListener(load_config())
    return _listener


# ---------------------------------------------------------------------------
# Webhook events
# ---------------------------------------------------------------------------


async def post_event(event: str, item: QuestionItem) -> None:
    """POST ``{"event", "item"}`` to WEBHOOK_URL; failures are only logged."""
    if not WEBHOOK_URL:
        logger.debug("WEBHOOK_URL not configured — skipping %s event.", event)
        return

    payload = {"event": event, "item": item.to_dict()}
    try:
        async with aiohttp.ClientSession() as session:
            async with session.post(
                WEBHOOK_URL,
                json=payload,
                headers={"Content-Type": "application/json"},
                timeout=aiohttp.ClientTimeout(total=30),
            ) as resp:
                logger.info(
                    "Webhook %s for Q%d — status %d", event, item.id, resp.status,
                )
    except Exception as exc:
        logger.error("Webhook POST failed (%s, Q%d): %s", event, item.id, exc)


def _on_new_question(item: QuestionItem):
    return post_event("smart-listener:new-question", item)


def _on_response_ready(item: QuestionItem):
    return post_event("smart-listener:response-ready", item)


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@app.post("/api/v1/smart-listener/analyze")
async def analyze(
    request: AnalyzeRequest,
    listener: SmartListener = Depends(get_listener),
) -> dict[str, Any]:
    new_items = await listener.analyze(
        request.text,
        on_new_question=_on_new_question,
        on_response_ready=_on_response_ready,
    )
    return {"success": True, "new_questions": [item.to_dict() for item in new_items]}


@app.get("/api/v1/smart-listener/queue")
async def get_queue(listener: SmartListener = Depends(get_listener)) -> list[dict[str, Any]]:
    return [item.to_dict() for item in listener.get_queue()]


@app.post("/api/v1/smart-listener/questions/{question_id}/viewed")
async def mark_viewed(
    question_id: int,
    listener: SmartListener = Depends(get_listener),
) -> dict[str, bool]:
    listener.mark_viewed(question_id)
    return {"success": True}


@app.post("/api/v1/smart-listener/viewed")
async def mark_all_viewed(listener: SmartListener = Depends(get_listener)) -> dict[str, bool]:
    listener.mark_all_viewed()
    return {"success": True}


@app.get("/api/v1/smart-listener/unviewed-count")
async def unviewed_count(listener: SmartListener = Depends(get_listener)) -> dict[str, int]:
    return {"count": listener.get_unviewed_count()}


@app.post("/api/v1/smart-listener/clear")
async def clear(listener: SmartListener = Depends(get_listener)) -> dict[str, bool]:
    listener.clear()
    return {"success": True}


@app.post("/api/v1/smart-listener/reset")
async def reset(listener: SmartListener = Depends(get_listener)) -> dict[str, bool]:
    listener.reset()
    return {"success": True}
