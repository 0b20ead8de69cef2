"""Database session dependency."""

from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession

from marketfeed.core.database import get_session


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield the request-scoped session; committed on success, rolled back on error."""
    async for session in get_session():
        yield session
