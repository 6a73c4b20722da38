# app/services/transaction.py
from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.services.errors import PersistenceFailure

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def run_atomic(
    db: AsyncSession,
    work: Callable[[], Awaitable[T]],
    *,
    operation: str,
    timeout_seconds: float | None = None,
) -> T:
    """
    Run `work` and commit it as one transaction.

    - Database errors roll back and surface as PersistenceFailure.
    - Exceeding `timeout_seconds` cancels the work, rolls back and surfaces
      as PersistenceFailure; nothing from the batch is committed.
    - Domain errors raised by `work` (validation, not found) roll back and
      propagate unchanged.
    """
    try:
        if timeout_seconds is not None:
            result = await asyncio.wait_for(work(), timeout=timeout_seconds)
        else:
            result = await work()
        await db.commit()
    except asyncio.TimeoutError as exc:
        await db.rollback()
        logger.error("%s timed out after %.1fs; rolled back", operation, timeout_seconds)
        raise PersistenceFailure(
            f"{operation} timed out after {timeout_seconds}s and was rolled back."
        ) from exc
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error("%s failed; rolled back", operation, exc_info=True)
        raise PersistenceFailure(f"{operation} failed: {exc.__class__.__name__}") from exc
    except Exception:
        await db.rollback()
        raise

    return result
