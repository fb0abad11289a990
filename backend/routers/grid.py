"""
Grid explorer endpoints

All routes act on the signed-in Firebase user's own progress document.
"""
import asyncio
import json
from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from lib.auth import get_current_user
from lib.logger import get_logger
from dependencies import get_grid, get_progress_manager

from explorer_portal.grid_data import GridData
from explorer_portal.grid_progress import GridProgressManager, exploration_stats
from explorer_portal.grid_search import search_cells

logger = get_logger("backend.routers.grid")

router = APIRouter(prefix="/api/grid", tags=["grid"])

KEEPALIVE_SECONDS = 15


class NotesRequest(BaseModel):
    notes: Optional[str] = None


class DateRequest(BaseModel):
    explored_date: str = Field(..., min_length=1)


class NameRequest(BaseModel):
    custom_name: str = Field(..., min_length=1, max_length=80)


def _require_cell(grid: GridData, cell_id: int):
    cell = grid.get_cell(cell_id)
    if cell is None:
        raise HTTPException(status_code=404, detail=f"Grid cell {cell_id} not found")
    return cell


def _load_progress(manager: GridProgressManager, user_id: str):
    progress = manager.get_user_progress(user_id)
    if progress is None:
        raise HTTPException(status_code=500, detail="Could not load grid progress")
    return progress


def _check(ok: bool):
    if not ok:
        raise HTTPException(status_code=500, detail="Failed to update grid progress")
    return {"status": "ok"}


@router.get("")
async def get_grid_dataset(grid: GridData = Depends(get_grid)):
    """The static grid (cells, regions, landmarks)."""
    return grid.to_dict()


@router.get("/progress")
async def get_progress(
    user: dict = Depends(get_current_user),
    manager: GridProgressManager = Depends(get_progress_manager),
):
    return _load_progress(manager, user["id"]).to_dict()


@router.get("/stats")
async def get_stats(
    user: dict = Depends(get_current_user),
    grid: GridData = Depends(get_grid),
    manager: GridProgressManager = Depends(get_progress_manager),
):
    progress = _load_progress(manager, user["id"])
    return asdict(exploration_stats(grid, progress))


@router.get("/search")
async def search(
    q: str = "",
    user: dict = Depends(get_current_user),
    grid: GridData = Depends(get_grid),
    manager: GridProgressManager = Depends(get_progress_manager),
):
    progress = _load_progress(manager, user["id"])
    matches = search_cells(grid.cells, q, progress)
    return {"query": q, "count": len(matches), "cells": [cell.to_dict() for cell in matches]}


@router.post("/cells/{cell_id}/explored")
async def mark_explored(
    cell_id: int,
    body: Optional[NotesRequest] = None,
    user: dict = Depends(get_current_user),
    grid: GridData = Depends(get_grid),
    manager: GridProgressManager = Depends(get_progress_manager),
):
    _require_cell(grid, cell_id)
    return _check(manager.mark_explored(user["id"], cell_id, body.notes if body else None))


@router.post("/cells/{cell_id}/inaccessible")
async def mark_inaccessible(
    cell_id: int,
    body: Optional[NotesRequest] = None,
    user: dict = Depends(get_current_user),
    grid: GridData = Depends(get_grid),
    manager: GridProgressManager = Depends(get_progress_manager),
):
    _require_cell(grid, cell_id)
    return _check(manager.mark_inaccessible(user["id"], cell_id, body.notes if body else None))


@router.delete("/cells/{cell_id}/status")
async def mark_unexplored(
    cell_id: int,
    user: dict = Depends(get_current_user),
    grid: GridData = Depends(get_grid),
    manager: GridProgressManager = Depends(get_progress_manager),
):
    _require_cell(grid, cell_id)
    return _check(manager.mark_unexplored(user["id"], cell_id))


@router.put("/cells/{cell_id}/notes")
async def update_notes(
    cell_id: int,
    body: NotesRequest,
    user: dict = Depends(get_current_user),
    grid: GridData = Depends(get_grid),
    manager: GridProgressManager = Depends(get_progress_manager),
):
    _require_cell(grid, cell_id)
    progress = _load_progress(manager, user["id"])
    if cell_id not in progress.explored_cells:
        raise HTTPException(status_code=400, detail="Mark the cell before adding notes")
    return _check(manager.update_notes(user["id"], cell_id, body.notes or ""))


@router.put("/cells/{cell_id}/date")
async def update_date(
    cell_id: int,
    body: DateRequest,
    user: dict = Depends(get_current_user),
    grid: GridData = Depends(get_grid),
    manager: GridProgressManager = Depends(get_progress_manager),
):
    _require_cell(grid, cell_id)
    progress = _load_progress(manager, user["id"])
    if cell_id not in progress.explored_cells:
        raise HTTPException(status_code=400, detail="Mark the cell before changing its date")
    return _check(manager.update_explored_date(user["id"], cell_id, body.explored_date))


@router.put("/cells/{cell_id}/name")
async def set_name(
    cell_id: int,
    body: NameRequest,
    user: dict = Depends(get_current_user),
    grid: GridData = Depends(get_grid),
    manager: GridProgressManager = Depends(get_progress_manager),
):
    _require_cell(grid, cell_id)
    return _check(manager.set_custom_name(user["id"], cell_id, body.custom_name.strip()))


@router.delete("/cells/{cell_id}/name")
async def remove_name(
    cell_id: int,
    user: dict = Depends(get_current_user),
    grid: GridData = Depends(get_grid),
    manager: GridProgressManager = Depends(get_progress_manager),
):
    _require_cell(grid, cell_id)
    return _check(manager.remove_custom_name(user["id"], cell_id))


@router.get("/progress/stream")
async def stream_progress(
    request: Request,
    user: dict = Depends(get_current_user),
    manager: GridProgressManager = Depends(get_progress_manager),
):
    """Server-sent events carrying the progress document on every change."""
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue()

    def on_change(progress):
        # Firestore invokes this from its own thread
        loop.call_soon_threadsafe(queue.put_nowait, progress)

    unsubscribe = manager.subscribe(user["id"], on_change)
    logger.info(f"Progress stream opened for {user['id'][:20]}")

    async def generate():
        try:
            while not await request.is_disconnected():
                try:
                    progress = await asyncio.wait_for(queue.get(), timeout=KEEPALIVE_SECONDS)
                except asyncio.TimeoutError:
                    yield ": keepalive\n\n"
                    continue
                payload = progress.to_dict() if progress else None
                yield f"data: {json.dumps({'type': 'progress', 'progress': payload})}\n\n"
        finally:
            unsubscribe()
            logger.info(f"Progress stream closed for {user['id'][:20]}")

    return StreamingResponse(generate(), media_type="text/event-stream")
