"""
Persistence gateway: point lookups, upserts and filtered listings over the
channels, videos, transcripts and summaries resources.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Generic, Iterable, List, Optional, Type, TypeVar

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from models.records import ChannelRecord, VideoRecord, TranscriptRecord, SummaryRecord
from storage.database import DatabaseManager, Channel, Video, Transcript, Summary
from utils.error_utils import ErrorKind, PipelineError

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=BaseModel)


class PersistenceError(PipelineError):
    """A read or write against the store failed."""
    kind = ErrorKind.PERSISTENCE


@dataclass(frozen=True)
class Where:
    """A single filter condition for list_where."""

    field: str
    op: str
    value: Any = None

    @classmethod
    def eq(cls, field: str, value: Any) -> "Where":
        return cls(field, "eq", value)

    @classmethod
    def in_(cls, field: str, values: Iterable[Any]) -> "Where":
        return cls(field, "in", tuple(values))

    @classmethod
    def is_true(cls, field: str) -> "Where":
        return cls(field, "eq", True)

    def matches(self, record: BaseModel) -> bool:
        current = getattr(record, self.field)
        if self.op == "eq":
            return current == self.value
        if self.op == "in":
            return current in self.value
        raise ValueError(f"Unsupported filter operator: {self.op}")


class Resource(ABC, Generic[R]):
    """One record kind in the store."""

    record_model: Type[R]
    key_field: str

    @abstractmethod
    async def get(self, key: str) -> Optional[R]:
        """Return the record with the given key, or None."""

    @abstractmethod
    async def upsert(self, record: R, conflict_key: Optional[str] = None) -> R:
        """Insert the record, or replace the one sharing its conflict key."""

    @abstractmethod
    async def list_where(
        self,
        *conditions: Where,
        order_by: Optional[str] = None,
        descending: bool = False
    ) -> List[R]:
        """Return records matching every condition."""


@dataclass
class PersistenceGateway:
    """The four resources the pipeline reads and upserts."""

    channels: Resource[ChannelRecord]
    videos: Resource[VideoRecord]
    transcripts: Resource[TranscriptRecord]
    summaries: Resource[SummaryRecord]

    async def close(self) -> None:
        pass


class SqlResource(Resource[R]):
    """Resource backed by a SQLAlchemy ORM table."""

    def __init__(self, manager: DatabaseManager, orm_model, record_model: Type[R], key_field: str):
        self.manager = manager
        self.orm_model = orm_model
        self.record_model = record_model
        self.key_field = key_field

    def _column(self, field: str):
        return getattr(self.orm_model, field)

    async def get(self, key: str) -> Optional[R]:
        try:
            async with self.manager.get_session() as session:
                result = await session.execute(
                    select(self.orm_model).where(self._column(self.key_field) == key)
                )
                row = result.scalar_one_or_none()
                return self.record_model.model_validate(row) if row else None
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to read {self.orm_model.__tablename__} {key}: {e}") from e

    async def upsert(self, record: R, conflict_key: Optional[str] = None) -> R:
        conflict_key = conflict_key or self.key_field
        values = record.model_dump()
        try:
            async with self.manager.get_session() as session:
                result = await session.execute(
                    select(self.orm_model).where(self._column(conflict_key) == values[conflict_key])
                )
                row = result.scalar_one_or_none()

                if row:
                    for field, value in values.items():
                        setattr(row, field, value)
                else:
                    session.add(self.orm_model(**values))

                logger.debug(f"Upserted {self.orm_model.__tablename__} {values[conflict_key]}")
                return record
        except SQLAlchemyError as e:
            raise PersistenceError(
                f"Failed to upsert {self.orm_model.__tablename__} {values.get(conflict_key)}: {e}"
            ) from e

    async def list_where(
        self,
        *conditions: Where,
        order_by: Optional[str] = None,
        descending: bool = False
    ) -> List[R]:
        query = select(self.orm_model)
        for condition in conditions:
            column = self._column(condition.field)
            if condition.op == "eq":
                query = query.where(column == condition.value)
            elif condition.op == "in":
                query = query.where(column.in_(condition.value))
            else:
                raise ValueError(f"Unsupported filter operator: {condition.op}")

        if order_by:
            column = self._column(order_by)
            query = query.order_by(column.desc() if descending else column.asc())

        try:
            async with self.manager.get_session() as session:
                result = await session.execute(query)
                return [self.record_model.model_validate(row) for row in result.scalars().all()]
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to query {self.orm_model.__tablename__}: {e}") from e


class SqlGateway(PersistenceGateway):
    """Gateway over the SQLAlchemy tables."""

    def __init__(self, manager: DatabaseManager):
        self.manager = manager
        super().__init__(
            channels=SqlResource(manager, Channel, ChannelRecord, "id"),
            videos=SqlResource(manager, Video, VideoRecord, "id"),
            transcripts=SqlResource(manager, Transcript, TranscriptRecord, "video_id"),
            summaries=SqlResource(manager, Summary, SummaryRecord, "video_id"),
        )

    @classmethod
    async def connect(cls, database_url: str, echo: bool = False) -> "SqlGateway":
        manager = DatabaseManager(database_url, echo=echo)
        await manager.init_database()
        return cls(manager)

    async def close(self) -> None:
        await self.manager.close()
