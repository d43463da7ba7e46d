"""All-or-nothing execution of multi-row ledger writes."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from loguru import logger
from opentelemetry import trace
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from arcade_api.services.errors import LedgerError, StoreFailureError

_tracer = trace.get_tracer("arcade_api.ledger")


@asynccontextmanager
async def atomic(session: AsyncSession, *, operation: str) -> AsyncIterator[AsyncSession]:
    """Commit everything written inside the block, or roll all of it back.

    Domain errors are re-raised untouched after the rollback. Store errors roll
    back and surface as ``StoreFailureError`` so callers never see driver
    internals. A cancelled request rolls back and propagates the cancellation.
    """

    with _tracer.start_as_current_span(f"ledger.{operation}") as span:
        try:
            yield session
            await session.commit()
        except LedgerError as exc:
            await session.rollback()
            span.set_attribute("ledger.outcome", type(exc).__name__)
            raise
        except SQLAlchemyError as exc:
            await session.rollback()
            span.set_attribute("ledger.outcome", "store_failure")
            logger.exception("Ledger unit failed to commit", operation=operation)
            raise StoreFailureError(f"{operation} could not be completed") from exc
        except BaseException:
            await session.rollback()
            raise
        span.set_attribute("ledger.outcome", "committed")
