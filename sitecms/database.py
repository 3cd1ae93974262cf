"""
Database connection and session management for SQLAlchemy 2.0.
Async engine pointed at the hosted Postgres (Supabase) database, or a local
SQLite file when no DATABASE_URL is configured.
"""
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    create_async_engine,
    async_sessionmaker,
)
from sqlalchemy.orm import declarative_base
from sqlalchemy import text
from urllib.parse import urlparse
import logging

from sitecms.config import settings

logger = logging.getLogger(__name__)

Base = declarative_base()

LOCAL_DATABASE_URL = "sqlite+aiosqlite:///./sitecms.db"


def _engine_args(url: str) -> dict:
    args = {"echo": False}
    if url.startswith("postgresql"):
        args.update({
            "pool_size": 5,
            "max_overflow": 10,
            "pool_pre_ping": True,  # hosted poolers drop idle connections
            "pool_recycle": 1800,
            "connect_args": {
                "command_timeout": settings.DB_COMMAND_TIMEOUT,
                "server_settings": {"application_name": "sitecms"},
            },
        })
    return args


def _async_url(url: str) -> str:
    """Hosted providers hand out plain postgresql:// URLs; force the asyncpg driver."""
    if url.startswith("postgres://"):
        url = "postgresql://" + url[len("postgres://"):]
    if url.startswith("postgresql://"):
        url = "postgresql+asyncpg://" + url[len("postgresql://"):]
    return url


DATABASE_URL = _async_url(settings.DATABASE_URL) if settings.DATABASE_URL else LOCAL_DATABASE_URL

engine = create_async_engine(DATABASE_URL, **_engine_args(DATABASE_URL))

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncSession:
    """
    FastAPI dependency for database sessions.
    Commits when the request handler returns, rolls back when it raises.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception as e:
            await session.rollback()
            logger.error(f"Database session error: {str(e)}", exc_info=True)
            raise


def describe_database_url(url: str) -> tuple[bool, str]:
    """
    Validate a database URL and describe where it points.
    Returns (is_valid, diagnostic_message). Credentials are never included.
    """
    if not url:
        return False, "DATABASE_URL is empty"

    parsed = urlparse(url)
    if parsed.scheme.startswith("sqlite"):
        return True, f"SQLite database at {parsed.path or ':memory:'}"

    if not parsed.scheme.startswith(("postgres", "postgresql")):
        return False, f"Unsupported database URL scheme: {parsed.scheme}"

    if not parsed.hostname:
        return False, "No hostname found in DATABASE_URL"

    return True, (
        f"Hostname: {parsed.hostname}, Port: {parsed.port or 5432}, "
        f"Database: {parsed.path or '/postgres'}"
    )


async def init_db():
    """
    Verify the database connection on startup.
    Local SQLite databases get their tables created; Postgres is migrated with Alembic.
    """
    is_valid, diagnostic = describe_database_url(DATABASE_URL)
    if not is_valid:
        logger.error(f"Invalid DATABASE_URL: {diagnostic}")
        raise ValueError(f"Invalid DATABASE_URL: {diagnostic}")

    logger.info(f"Database URL validation: {diagnostic}")

    try:
        async with engine.begin() as conn:
            if DATABASE_URL.startswith("sqlite"):
                # Import registers the models on Base.metadata
                import sitecms.models  # noqa: F401
                await conn.run_sync(Base.metadata.create_all)
            await conn.execute(text("SELECT 1"))
            logger.info("Database connection initialized successfully")
    except Exception as e:
        error_msg = str(e)
        if "authentication failed" in error_msg.lower() or "password" in error_msg.lower():
            logger.error(
                f"Database connection failed - Authentication error: {error_msg}\n"
                f"Check the username and password in DATABASE_URL.\n"
                f"Diagnostic: {diagnostic}"
            )
        elif "refused" in error_msg.lower() or "timeout" in error_msg.lower():
            logger.error(
                f"Database connection failed - Connection refused/timeout: {error_msg}\n"
                f"Diagnostic: {diagnostic}"
            )
        else:
            logger.error(
                f"Database connection failed ({type(e).__name__}): {error_msg}\n"
                f"Diagnostic: {diagnostic}"
            )
        raise


async def close_db():
    """Dispose of pooled connections on shutdown."""
    await engine.dispose()
    logger.info("Database connections closed")
