"""Rotation status and control API"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

from rotatv.errors import DuplicateQueueEntryError, UnknownMediaError
from rotatv.playout.scheduler import RotationScheduler

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/rotation", tags=["Rotation"])


class QueueRequest(BaseModel):
    """Optional body for queueing an item."""
    requested_by: Optional[str] = None


def get_rotation(request: Request) -> RotationScheduler:
    rotation = getattr(request.app.state, "rotation", None)
    if rotation is None:
        raise HTTPException(status_code=503, detail="Rotation is not running")
    return rotation


@router.get("/status")
async def rotation_status(request: Request) -> dict[str, Any]:
    return get_rotation(request).status()


@router.get("/queue")
async def rotation_queue(request: Request, limit: int = 10) -> dict[str, Any]:
    rotation = get_rotation(request)
    items = rotation.queue_snapshot(limit)
    return {
        "size": rotation.queue.size(),
        "items": [
            {"position": i, **item.to_dict()} for i, item in enumerate(items, start=1)
        ],
    }


@router.get("/vote")
async def rotation_vote(request: Request) -> dict[str, Any]:
    rotation = get_rotation(request)
    tallies = rotation.tally.tallies()
    return {
        "active": rotation.voting_active,
        "open": rotation.tally.is_open,
        "ballots": rotation.tally.ballot_count,
        "choices": [
            {"index": i, "votes": tallies.get(i, 0), **item.to_dict()}
            for i, item in enumerate(rotation.tally.choices, start=1)
        ],
    }


@router.post("/skip")
async def rotation_skip(request: Request) -> dict[str, Any]:
    rotation = get_rotation(request)
    skipped = await rotation.skip()
    current = rotation.current()
    return {
        "skipped": skipped.to_dict() if skipped else None,
        "now_playing": current.to_dict() if current else None,
    }


@router.post("/queue/{item_id}", status_code=201)
async def rotation_enqueue(
    item_id: str, request: Request, body: Optional[QueueRequest] = None
) -> dict[str, Any]:
    rotation = get_rotation(request)
    try:
        item, position = await rotation.add(item_id, requested_by=body.requested_by if body else None)
    except UnknownMediaError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except DuplicateQueueEntryError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return {"position": position, "item": item.to_dict()}
