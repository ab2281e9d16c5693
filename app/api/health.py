"""
Health check endpoint for monitoring.
"""

from __future__ import annotations

from fastapi import APIRouter, Request

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health_check(request: Request):
    """Basic health check plus whether the chat service is wired."""
    return {
        "status": "ok",
        "service": "tufti",
        "chat_ready": getattr(request.app.state, "chat_service", None) is not None,
    }
