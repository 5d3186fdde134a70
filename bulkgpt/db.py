# bulkgpt/db.py
import os
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from bulkgpt import monitoring
from bulkgpt.errors import PersistenceError, StoreNotInitializedError
from bulkgpt.schemas import PersistedRecord

DEFAULT_DB_PATH = "responses.db"

Base = declarative_base()


def _make_engine(path: str) -> AsyncEngine:
    return create_async_engine(f"sqlite+aiosqlite:///{path}")


class ResultStore:
    """
    Append-only table of prompt/response pairs in a local SQLite file.

    One engine is opened by initialize() and shared by every append until
    close(). Each append is its own transaction.
    """

    def __init__(self, path: Optional[str] = DEFAULT_DB_PATH):
        self.path = path
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker] = None

    @property
    def initialized(self) -> bool:
        return self._session_factory is not None

    async def initialize(self, path: Optional[str] = None, recreate: bool = False) -> None:
        """
        Open (creating if absent) the SQLite file at `path` and ensure the
        responses table exists. With recreate=True any existing file is deleted
        first; this is the only place rows are ever removed.
        """
        path = path or self.path
        if not path:
            raise StoreNotInitializedError("No storage path configured")
        if self._engine is not None:
            await self.close()

        if recreate and os.path.exists(path):
            try:
                os.remove(path)
            except OSError as e:
                raise PersistenceError(f"Could not delete database file {path}: {e}") from e
            monitoring.logger.info("Database file deleted for recreation", extra={"db_path": path})

        # import models lazily so Base metadata has the responses table
        import bulkgpt.models as models  # noqa: F401

        engine = _make_engine(path)
        try:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except SQLAlchemyError as e:
            await engine.dispose()
            raise PersistenceError(f"Could not open database {path}: {e}") from e

        self.path = path
        self._engine = engine
        self._session_factory = async_sessionmaker(engine, expire_on_commit=False)
        monitoring.logger.info("Result store opened", extra={"db_path": path, "recreated": recreate})

    def _require_session_factory(self) -> async_sessionmaker:
        if self._session_factory is None:
            raise StoreNotInitializedError("Database is not initialized")
        return self._session_factory

    async def append(self, record: Dict[str, Any]) -> int:
        """
        Insert one row and return its id.
        record should include:
          - gptPrompt (str)
          - response (str)
          - options (str)  # serialized RequestConfig, optional
        """
        session_factory = self._require_session_factory()
        from bulkgpt.models import ResponseRecord

        row = ResponseRecord(
            gpt_prompt=record["gptPrompt"],
            response=record["response"],
            options=record.get("options"),
        )
        try:
            async with session_factory() as session:
                session.add(row)
                await session.commit()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Error writing response to database: {e}") from e
        monitoring.logger.debug("Response written to database", extra={"record_id": row.id})
        return row.id

    async def read_all(self) -> List[PersistedRecord]:
        """Every row in insertion order."""
        session_factory = self._require_session_factory()
        from bulkgpt.models import ResponseRecord

        try:
            async with session_factory() as session:
                result = await session.execute(select(ResponseRecord).order_by(ResponseRecord.id))
                return [PersistedRecord(**rr.to_dict()) for rr in result.scalars().all()]
        except SQLAlchemyError as e:
            raise PersistenceError(f"Error reading data from database: {e}") from e

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
        self._engine = None
        self._session_factory = None
