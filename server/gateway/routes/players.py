# ─────────────────────────────────────────────────────────────────────────────
# Player Data Routes — /v1/player-data (THIN)
# ─────────────────────────────────────────────────────────────────────────────
# Auth and rate limiting already ran in middleware. Handlers validate the id,
# make one store call and shape the response. Errors are exceptions.
# ─────────────────────────────────────────────────────────────────────────────


import json
from typing import Any

import structlog
from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse

from gateway.db import PlayerStore
from gateway.dependencies import get_player_store
from gateway.exceptions import MissingIdError, PlayerNotFoundError
from gateway.schemas import PlayerRecord, PlayerUpdate, StatusResponse

logger = structlog.get_logger(__name__)


class AsciiJSONResponse(JSONResponse):
    """JSON body with every non-ASCII character escaped.

    Documents may hold lone surrogates (\\ud83d), which have no UTF-8 form.
    """

    def render(self, content: Any) -> bytes:
        return json.dumps(content, separators=(",", ":"), allow_nan=False).encode("ascii")


router = APIRouter(prefix="/v1/player-data", default_response_class=AsciiJSONResponse)


def require_id(id: str) -> str:
    """Reject blank ids before anything touches the pool."""
    if not id or not id.strip():
        raise MissingIdError()
    return id


@router.put("/update/{id}", response_model=StatusResponse)
async def update_player(
    id: str,
    body: PlayerUpdate | None = Body(None),
    store: PlayerStore = Depends(get_player_store),
) -> StatusResponse:
    """Overwrite points, inventory and challenges for one player.

    Succeeds even when no row matches; rows are created elsewhere.
    """
    user_id = require_id(id)
    rows = await store.update(user_id, body or PlayerUpdate())
    logger.info("player_updated", user_id=user_id, rows_affected=rows)
    if rows == 0:
        logger.warning("player_update_matched_no_row", user_id=user_id)
    return StatusResponse(status="success")


@router.get("/{id}", response_model=PlayerRecord)
async def get_player(
    id: str,
    store: PlayerStore = Depends(get_player_store),
) -> PlayerRecord:
    """Return points, challenges and inventory for one player."""
    user_id = require_id(id)
    record = await store.get(user_id)
    if record is None:
        raise PlayerNotFoundError(user_id)
    return record


# Empty path segment: the id is present in the URL shape but blank.


@router.put("/update/", include_in_schema=False)
async def update_player_without_id() -> None:
    raise MissingIdError()


@router.get("/", include_in_schema=False)
async def get_player_without_id() -> None:
    raise MissingIdError()
