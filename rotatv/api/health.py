"""Health check API endpoint for RotaTV"""

import logging
from datetime import datetime
from typing import Any

from fastapi import APIRouter, Request

from rotatv import __version__

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["Health"])


@router.get("")
async def health_check(request: Request) -> dict[str, Any]:
    """Report whether the rotation and chat loops are alive."""
    rotation = getattr(request.app.state, "rotation", None)
    bot = getattr(request.app.state, "chat_bot", None)

    rotation_ok = rotation is not None and rotation.is_running
    return {
        "status": "ok" if rotation_ok else "degraded",
        "version": __version__,
        "timestamp": datetime.now().isoformat(),
        "components": {
            "rotation": "running" if rotation_ok else "stopped",
            "chat": "running" if bot is not None and bot.is_running else "stopped",
        },
    }
