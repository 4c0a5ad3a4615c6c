"""Database module for managing connections to CockroachDB/PostgreSQL.

This module handles:
- Database connection pool initialization
- Schema management
- Connection lifecycle

The pool is created once at startup and handed to the ledger explicitly;
no module-level handle is kept.
"""

import logging
import ssl
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Any
import backoff
import asyncpg
from urllib.parse import urlparse, urlunparse, parse_qs

from .exceptions import DatabaseError, DatabaseSchemaError, StorageError
from .lib.schema_manager import SchemaManager

logger = logging.getLogger(__name__)

def _get_ssl_context() -> ssl.SSLContext:
    """Create SSL context for CockroachDB Cloud connections."""
    ssl_context = ssl.create_default_context()
    ssl_context.verify_mode = ssl.CERT_REQUIRED
    ssl_context.check_hostname = True
    return ssl_context

def _get_connection_kwargs(db_url: str) -> Dict[str, Any]:
    """Get connection kwargs from database URL.

    Args:
        db_url: Database connection URL

    Returns:
        Dict of connection parameters
    """
    parsed = urlparse(db_url)
    params = parse_qs(parsed.query)

    kwargs: Dict[str, Any] = {
        'server_settings': {
            'statement_timeout': '300000',  # 5 minutes
        }
    }

    # Local clusters run with sslmode=disable
    if params.get('sslmode', ['require'])[0] != 'disable':
        kwargs['ssl'] = _get_ssl_context()

    return kwargs

def _database_name(db_url: str) -> str:
    """Extract the database name from a connection URL."""
    parsed = urlparse(db_url)
    db_name = parsed.path.strip('/')
    if not db_name:
        params = parse_qs(parsed.query)
        db_name = params.get('database', ['defaultdb'])[0]
    return db_name

@backoff.on_exception(
    backoff.expo,
    (asyncpg.exceptions.PostgresConnectionError, asyncpg.exceptions.CannotConnectNowError, OSError),
    max_tries=5
)
async def create_database_if_not_exists(db_url: str, admin_db: str = 'defaultdb') -> None:
    """Create the database if it doesn't exist.

    Args:
        db_url: Database connection URL
        admin_db: Database to connect to while creating the target one

    Raises:
        Exception: If database creation fails after retries
    """
    db_name = _database_name(db_url)
    if db_name == admin_db:
        return

    base_url = urlunparse(urlparse(db_url)._replace(path=f'/{admin_db}'))
    logger.info(f"Connecting to {admin_db} to create {db_name} if needed")

    conn = await asyncpg.connect(base_url, **_get_connection_kwargs(base_url))
    try:
        exists = await conn.fetchval(
            'SELECT EXISTS(SELECT 1 FROM pg_database WHERE datname = $1)',
            db_name
        )

        if not exists:
            await conn.execute(f'CREATE DATABASE "{db_name}"')
            logger.info(f"Created database {db_name}")
    finally:
        await conn.close()

@backoff.on_exception(
    backoff.expo,
    (asyncpg.exceptions.PostgresConnectionError, asyncpg.exceptions.CannotConnectNowError, OSError),
    max_tries=5
)
async def init_db(db_url: str, force_recreate: bool = False) -> asyncpg.Pool:
    """Initialize the database connection pool and schema.

    Args:
        db_url: Database URL
        force_recreate: If True, drop and recreate all tables

    Returns:
        The connection pool

    Raises:
        ValueError: If database URL is not provided
        DatabaseError: If initialization fails after retries
    """
    if not db_url:
        raise ValueError("Database URL not provided")

    await create_database_if_not_exists(db_url)

    pool = await asyncpg.create_pool(
        db_url,
        min_size=2,          # Minimum idle connections
        max_size=20,         # Maximum connections
        max_queries=10000,   # Reset connection after this many queries
        max_inactive_connection_lifetime=300.0,  # 5 minutes
        command_timeout=60.0,  # 1 minute command timeout
        **_get_connection_kwargs(db_url)
    )

    try:
        schema_manager = SchemaManager(pool)
        if force_recreate:
            logger.info("Force recreate requested. Dropping all tables...")
            await schema_manager.drop_all()
        await schema_manager.initialize()
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        await pool.close()
        if isinstance(e, DatabaseError):
            raise
        raise DatabaseError(f"Database initialization failed: {e}") from e

    return pool

async def close(pool: asyncpg.Pool) -> None:
    """Close the database connection pool."""
    await pool.close()

@asynccontextmanager
async def connect(db_url: str, force_recreate: bool = False) -> AsyncIterator[asyncpg.Pool]:
    """Open a pool for the lifetime of the block and close it afterwards."""
    pool = await init_db(db_url, force_recreate=force_recreate)
    try:
        yield pool
    finally:
        await close(pool)

# Export public interface
__all__ = [
    'init_db', 'close', 'connect',
    'StorageError', 'DatabaseError', 'DatabaseSchemaError'
]
