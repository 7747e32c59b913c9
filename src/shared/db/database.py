"""
Database utility for connecting to and interacting with the database.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from shared.utils.configs import db_configs
from shared.utils.errors import DatabaseError
from shared.utils.helpers import prepare_database_url
from shared.utils.logger import logger
from shared.utils.types import ErrorType


class Database:
    """Database is a service class.

    Responsible for managing database interactions for the analytics core:
    read sessions over the event, rollup and catalog tables, and write
    sessions for the persisted strength scores. It integrates with SQLAlchemy
    for asynchronous database operations.

    Attributes:
        engine (AsyncEngine): The SQLAlchemy asynchronous engine for database connections.
        async_session (async_sessionmaker): The session maker for creating asynchronous sessions.

    Methods:
        initialize():
            Create the engine and session maker on first use.

        session():
            Asynchronous context manager for handling database sessions.

        close():
            Cleans up resources by properly disposing of the database engine.
    """

    def __init__(self, db_url: Optional[str] = None):
        self.raw_url = db_url or db_configs["pg_database_url"]
        self.engine = None
        self.async_session = None

    async def initialize(self):
        """Initialize the database engine and session maker."""
        if self.async_session is not None:
            return self
        try:
            db_url, connect_args = prepare_database_url(self.raw_url)
            self.engine = create_async_engine(
                db_url,
                echo=db_configs["echo"],
                pool_size=db_configs["pool_size"],
                max_overflow=db_configs["max_overflow"],
                pool_timeout=db_configs["pool_timeout"],
                pool_recycle=db_configs["pool_recycle"],
                pool_pre_ping=db_configs["pool_pre_ping"],
                isolation_level=db_configs["isolation_level"],
                connect_args=connect_args,
            )

            self.async_session = async_sessionmaker(
                self.engine, class_=AsyncSession, expire_on_commit=False
            )

            logger.info("Successfully initialized database connection")
            return self

        except Exception as e:
            logger.error(f"Failed to initialize database: {str(e)}")
            raise DatabaseError(
                message=f"Failed to initialize database: {str(e)}",
                error_type=ErrorType.DATABASE_ERROR,
                status_code=500,
            )

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Context manager for database sessions."""
        if not self.async_session:
            await self.initialize()

        session = self.async_session()
        try:
            logger.debug("Starting new database session")
            yield session
            await session.commit()
            logger.debug("Session committed successfully")
        except SQLAlchemyError as e:
            logger.error(f"Error in database session: {str(e)}")
            await session.rollback()
            logger.error("Session rolled back due to error")
            raise DatabaseError(
                message=f"Database session error: {str(e)}",
                error_type=ErrorType.DATABASE_ERROR,
                status_code=503,
            )
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
            logger.debug("Database session closed")

    async def close(self):
        """Close the database connection."""
        if self.engine:
            await self.engine.dispose()
            self.engine = None
            self.async_session = None
            logger.info("Database connection closed")


# Create a global database instance
db = Database()
