"""
Thin API route for the streaming chat endpoint.

No business logic: validates the request, runs ChatService in a
background task that writes to a queue sink, and relays each event as
one SSE frame.  A client disconnect cancels the task, which closes the
open backend stream.
"""

from __future__ import annotations

import asyncio

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import StreamingResponse

from app.pipeline.chat import ChatService
from app.pipeline.orchestrator import QueueSink
from app.schemas.events import PipelineError, encode_sse
from app.schemas.response import ChatRequest
from app.utils.logging import get_logger

logger = get_logger("tufti.api.chat")

router = APIRouter(tags=["Chat"])


def get_chat_service(request: Request) -> ChatService:
    service = getattr(request.app.state, "chat_service", None)
    if service is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Chat service not initialized")
    return service


@router.post("/chat/stream")
async def chat_stream(
    request: ChatRequest,
    service: ChatService = Depends(get_chat_service),
):
    """Answer one chat turn as a Server-Sent Events stream."""
    q = request.query[:80]
    logger.info("[CHAT] New question: %s%s | mode=%s", q, "..." if len(request.query) > 80 else "", request.mode.value)

    sink = QueueSink()

    async def produce() -> None:
        try:
            outcome = await service.handle(request, sink)
            logger.info("[CHAT] %s finished: %s", outcome.pipeline, outcome.status.value)
        except asyncio.CancelledError:
            logger.info("[CHAT] request cancelled by client")
            raise
        except Exception as e:
            logger.exception("[CHAT] request failed")
            await sink.emit(PipelineError(message=f"Internal error: {type(e).__name__}"))
        finally:
            await sink.close()

    async def event_stream():
        task = asyncio.create_task(produce())
        try:
            async for event in sink.events():
                yield encode_sse(event)
        finally:
            if not task.done():
                task.cancel()
            await asyncio.gather(task, return_exceptions=True)

    return StreamingResponse(
        event_stream(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
