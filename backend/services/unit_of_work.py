import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import InventoryError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def atomic(db: AsyncSession, operation: str) -> AsyncIterator[AsyncSession]:
    """Commit everything done inside the block, or nothing.

    The session may already be inside an autobegun transaction (an earlier
    read on the same session), so this does not call ``db.begin()``; it
    commits or rolls back whatever transaction is current.
    """
    try:
        yield db
        await db.commit()
    except InventoryError as e:
        await db.rollback()
        logger.info("%s rejected: %s", operation, e, extra={"error_code": e.code})
        raise
    except Exception:
        await db.rollback()
        logger.exception("%s failed", operation)
        raise
