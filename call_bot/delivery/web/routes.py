"""Read-only JSON views over the trackers' call summaries."""

import logging

from fastapi import APIRouter, HTTPException, Query, Request

from call_bot.config import settings
from call_bot.leaderboard import build_leaderboard
from call_bot.tracking.models import AssetClass
from call_bot.tracking.scheduler import TrackerScheduler

logger = logging.getLogger(__name__)

router = APIRouter()


def _trackers(request: Request) -> dict[AssetClass, TrackerScheduler]:
    return request.app.state.trackers


@router.get("/health")
async def health(request: Request) -> dict:
    trackers = _trackers(request)
    return {
        "status": "ok",
        "trackers": {ac.value: len(t.registry) for ac, t in trackers.items()},
    }


@router.get("/api/calls")
async def list_calls(request: Request) -> dict:
    calls = []
    for tracker in _trackers(request).values():
        calls.extend(s.to_dict() for s in tracker.summaries())
    return {"count": len(calls), "calls": calls}


@router.get("/api/calls/{asset_class}")
async def list_calls_for_class(asset_class: str, request: Request) -> dict:
    try:
        key = AssetClass(asset_class)
    except ValueError:
        raise HTTPException(status_code=404, detail=f"Unknown asset class: {asset_class}")
    tracker = _trackers(request).get(key)
    if tracker is None:
        raise HTTPException(status_code=404, detail=f"{key.label} tracking is not running")
    calls = [s.to_dict() for s in tracker.summaries()]
    return {"asset_class": key.value, "count": len(calls), "calls": calls}


@router.get("/api/leaderboard")
async def leaderboard(
    request: Request,
    limit: int = Query(default=settings.leaderboard_size, ge=1, le=50),
) -> dict:
    top = await build_leaderboard(_trackers(request).values(), limit)
    return {"entries": [e.to_dict() for e in top]}
