# ─────────────────────────────────────────────────────────────────────────────
# Player Store — one pooled connection, one statement per operation
# ─────────────────────────────────────────────────────────────────────────────
# The pool is owned by the app lifespan and injected here; tests pass a fake
# with the same acquire() contract. Connections are always taken with
# `async with pool.acquire()` so they go back on every exit path. Any pool,
# driver or stored-JSON failure surfaces as BackendError.
# ─────────────────────────────────────────────────────────────────────────────


from typing import Any, Protocol

import asyncpg
import structlog

from gateway.config import Settings
from gateway.encoding import decode_document, encode_document
from gateway.exceptions import BackendError
from gateway.schemas import PlayerRecord, PlayerUpdate

logger = structlog.get_logger(__name__)

TABLE = "playerdata"

UPDATE_PLAYER_SQL = f"UPDATE {TABLE} SET points = $1, inventory = $2, challenges = $3 WHERE userid = $4"
SELECT_PLAYER_SQL = f"SELECT points, challenges, inventory FROM {TABLE} WHERE userid = $1 LIMIT 1"


class ConnectionPool(Protocol):
    """The slice of asyncpg.Pool the store relies on."""

    def acquire(self) -> Any: ...


async def create_pool(settings: Settings) -> asyncpg.Pool:
    """Open the asyncpg pool. Exhaustion queues callers; it never fails fast."""
    pool = await asyncpg.create_pool(
        host=settings.db_host,
        port=settings.db_port,
        user=settings.db_username,
        password=settings.db_password.get_secret_value() or None,
        database=settings.db_database,
        min_size=1,
        max_size=settings.db_pool_size,
        command_timeout=settings.db_command_timeout,
    )
    logger.info("db_pool_created", dsn=settings.dsn, max_size=settings.db_pool_size)
    return pool


class PlayerStore:
    """Reads and updates existing PlayerRecord rows by userid."""

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    async def get(self, user_id: str) -> PlayerRecord | None:
        """Fetch one player, documents deserialized. None when no row matches."""
        try:
            async with self._pool.acquire() as conn:
                row = await conn.fetchrow(SELECT_PLAYER_SQL, user_id)
            if row is None:
                return None
            return PlayerRecord(
                points=row["points"],
                challenges=decode_document(row["challenges"]),
                inventory=decode_document(row["inventory"]),
            )
        except Exception as e:
            raise BackendError("get_player", e) from e

    async def update(self, user_id: str, update: PlayerUpdate) -> int:
        """Overwrite points/inventory/challenges for user_id.

        Returns the number of rows touched. Zero is not an error: rows are
        created elsewhere and an unknown id is a silent no-op.
        """
        try:
            async with self._pool.acquire() as conn:
                status = await conn.execute(
                    UPDATE_PLAYER_SQL,
                    update.points,
                    encode_document(update.inventory),
                    encode_document(update.challenges),
                    user_id,
                )
        except Exception as e:
            raise BackendError("update_player", e) from e
        return _affected_rows(status)


def _affected_rows(status: Any) -> int:
    """Parse asyncpg's command tag, e.g. 'UPDATE 1'."""
    try:
        return int(str(status).rsplit(" ", 1)[-1])
    except ValueError:
        return 0
