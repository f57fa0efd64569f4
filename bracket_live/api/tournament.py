"""Tournament snapshot API endpoints."""

import logging
from typing import Any

from fastapi import APIRouter, Request, status

from bracket_live.schemas.tournament import (
    ErrorResponse,
    SuccessResponse,
    TournamentSnapshotSchema,
)
from bracket_live.tournament.store import SnapshotStore
from bracket_live.utils.errors import PersistenceError
from bracket_live.utils.json_utils import ORJSONResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tournament", tags=["Tournament"])


def _store(request: Request) -> SnapshotStore:
    return request.app.state.store


def _key(request: Request) -> str:
    return request.app.state.settings.tournament_key


def _error(message: str) -> ORJSONResponse:
    return ORJSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": message},
    )


@router.get(
    "",
    responses={500: {"model": ErrorResponse, "description": "Store unavailable"}},
)
async def get_tournament(request: Request) -> Any:
    """Current tournament snapshot, or null when none is stored."""
    try:
        data = await _store(request).get(_key(request))
    except PersistenceError as e:
        logger.error(f"Failed to fetch tournament: {e.message}")
        return _error("Failed to fetch tournament data")
    return ORJSONResponse(content=data)


@router.post(
    "",
    response_model=SuccessResponse,
    responses={500: {"model": ErrorResponse, "description": "Store unavailable"}},
)
async def save_tournament(request: Request, body: TournamentSnapshotSchema) -> Any:
    """Replace the stored snapshot as a whole."""
    snapshot = body.to_snapshot()
    try:
        await _store(request).set(_key(request), snapshot.to_dict())
    except PersistenceError as e:
        logger.error(f"Failed to save tournament: {e.message}")
        return _error("Failed to save tournament data")
    return SuccessResponse()


@router.post(
    "/reset",
    response_model=SuccessResponse,
    responses={500: {"model": ErrorResponse, "description": "Store unavailable"}},
)
async def reset_tournament(request: Request) -> Any:
    """Remove the stored snapshot."""
    try:
        await _store(request).delete(_key(request))
    except PersistenceError as e:
        logger.error(f"Failed to reset tournament: {e.message}")
        return _error("Failed to reset tournament data")
    logger.info("Tournament data reset")
    return SuccessResponse()
