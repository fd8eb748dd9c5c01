# backend/wealth_engine/database.py
"""
Database connection and session management for the state document store.

This module configures SQLAlchemy with:
- StaticPool for SQLite (one shared connection, so in-memory databases
  survive across sessions)
- Pre-ping pooled connections for server databases
- Table creation for the document table

Only SqlAlchemyPersistenceProvider talks to the database; the engine is
created on demand so importing the package never opens a connection.
"""

import logging

from sqlalchemy import Engine, create_engine, text
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from .config import Settings, settings as default_settings
from .models import Base

logger = logging.getLogger(__name__)


def create_engine_from_settings(settings: Settings | None = None) -> Engine:
    """
    Create SQLAlchemy engine with environment-appropriate configuration.

    Configuration varies by database type:
    - SQLite: StaticPool and check_same_thread=False (store locks writes itself)
    - Anything else: default QueuePool with pre-ping
    """
    settings = settings or default_settings

    if settings.is_sqlite:
        logger.info(f"Configuring SQLite state store ({settings.environment})")
        return create_engine(
            settings.database_url,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
            echo=settings.debug,
        )

    logger.info("Configuring state store connection pool")
    return create_engine(
        settings.database_url,
        pool_pre_ping=True,
        echo=settings.debug,
    )


def create_session_factory(engine: Engine, create_tables: bool = True) -> sessionmaker[Session]:
    """
    Session factory bound to ``engine``.

    Args:
        engine: Engine from create_engine_from_settings()
        create_tables: Create the document table if it does not exist
    """
    if create_tables:
        Base.metadata.create_all(bind=engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def check_database_health(engine: Engine) -> dict:
    """
    Check database connectivity.

    Returns:
        dict: {"status": "healthy"} or {"status": "unhealthy", "error": ...}
    """
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return {"status": "healthy", "database": engine.dialect.name}
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return {"status": "unhealthy", "error": str(e)}
