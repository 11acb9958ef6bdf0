# =====================================================
# FILE: approvalflow/core/database.py
# Database Connection and Session Management
# =====================================================

from sqlalchemy import create_engine, text
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from sqlalchemy.pool import NullPool
from contextlib import contextmanager
from typing import Generator
import logging

from approvalflow.core.config import settings

logger = logging.getLogger(__name__)

DATABASE_URL = settings.DATABASE_URL


def build_engine_args(database_url: str) -> dict:
    """Engine keyword arguments for the given URL"""
    engine_args = {
        "pool_pre_ping": settings.DB_POOL_PRE_PING,
        "echo": settings.DB_ECHO,
    }

    if database_url.startswith("sqlite"):
        # SQLite connections are shared across threads by the session layer
        engine_args["connect_args"] = {"check_same_thread": False}
    elif settings.DEBUG:
        # No connection pooling in development
        engine_args["poolclass"] = NullPool
    else:
        engine_args["pool_size"] = settings.DB_POOL_SIZE
        engine_args["max_overflow"] = settings.DB_MAX_OVERFLOW

    return engine_args


engine = create_engine(DATABASE_URL, **build_engine_args(DATABASE_URL))

SessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
    expire_on_commit=False
)

# Base class for models
Base = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency (request-scoped)
    """
    db = SessionLocal()
    try:
        yield db
    except Exception as e:
        logger.error(f" Database session error: {str(e)}")
        db.rollback()
        raise
    finally:
        db.close()


@contextmanager
def get_db_session():
    """
    Context manager for database operations outside of a request scope
    """
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception as e:
        logger.error(f" Database operation failed: {str(e)}")
        session.rollback()
        raise
    finally:
        session.close()


def test_connection(bind=None) -> bool:
    """
    Test database connection
    """
    try:
        with (bind or engine).connect() as conn:
            conn.execute(text("SELECT 1"))
            logger.info(" Database connection test successful")
            return True
    except Exception as e:
        logger.error(f" Database connection test failed: {str(e)}")
        return False


def init_db(bind=None):
    """
    Create all tables
    """
    # Register every model on Base.metadata
    import approvalflow.models  # noqa: F401

    try:
        Base.metadata.create_all(bind=bind or engine, checkfirst=True)
        logger.info(" Database tables created successfully")
    except Exception as e:
        logger.error(f" Failed to create database tables: {str(e)}")
        raise


def drop_all_tables(bind=None):
    """
    Drop all tables from the database
    WARNING: This will delete all data!
    """
    try:
        Base.metadata.drop_all(bind=bind or engine)
        logger.info(" All database tables dropped successfully")
    except Exception as e:
        logger.error(f" Failed to drop database tables: {str(e)}")
        raise
