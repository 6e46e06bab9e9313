from __future__ import annotations

from collections.abc import AsyncGenerator

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from orgscope.db.query import SqlQueryRunner
from orgscope.settings import Settings


def create_engine_from_settings(settings: Settings) -> AsyncEngine:
    return create_async_engine(settings.resolved_db_url())


def get_engine(request: Request) -> AsyncEngine:
    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        raise RuntimeError("Database engine not initialized. Did app startup run?")
    return engine


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    ORM session dependency.

    Handlers that need scope filtering take the `AuthorizationDecision` as a
    separate dependency and apply `orgscope.db.filters.scope_clause` explicitly.
    """

    session_factory = async_sessionmaker(get_engine(request), expire_on_commit=False, class_=AsyncSession)
    async with session_factory() as db:
        yield db


def get_query_runner(request: Request) -> SqlQueryRunner:
    """Read-only raw SQL runner used by the scope engine and list queries."""
    return SqlQueryRunner(get_engine(request))
