"""
Database models and connection management using SQLAlchemy async.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator

from sqlalchemy import (
    Boolean, Column, DateTime, ForeignKey, Integer, JSON, String, Text, Index, text
)
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.pool import StaticPool

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Channel(Base):
    """Channel table for tracked YouTube channels."""

    __tablename__ = "channels"

    id = Column(String(64), primary_key=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    thumbnail_url = Column(String(500), nullable=True)
    subscriber_count = Column(String(32), nullable=True)
    channel_summary = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    # Relationships
    videos = relationship("Video", back_populates="channel")

    def __repr__(self):
        return f"<Channel(id={self.id}, title={self.title})>"


class Video(Base):
    """Video table for episode metadata and transcript state."""

    __tablename__ = "videos"

    id = Column(String(64), primary_key=True)
    channel_id = Column(String(64), ForeignKey("channels.id"), nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    published_at = Column(DateTime(timezone=True), nullable=False)
    thumbnail_url = Column(String(500), nullable=True)
    duration = Column(String(20), nullable=True)  # ISO 8601 format
    duration_minutes = Column(Integer, default=0, nullable=False)
    has_transcript = Column(Boolean, default=False, nullable=False)
    transcript_fetched_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    # Relationships
    channel = relationship("Channel", back_populates="videos")
    transcript = relationship("Transcript", back_populates="video", uselist=False)
    summary = relationship("Summary", back_populates="video", uselist=False)

    def __repr__(self):
        return f"<Video(id={self.id}, title={self.title[:50]})>"


class Transcript(Base):
    """Transcript table, one row per video."""

    __tablename__ = "transcripts"

    video_id = Column(String(64), ForeignKey("videos.id"), primary_key=True)
    content = Column(Text, nullable=False)
    language = Column(String(16), default="en", nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    video = relationship("Video", back_populates="transcript")

    def __repr__(self):
        return f"<Transcript(video_id={self.video_id}, chars={len(self.content or '')})>"


class Summary(Base):
    """Summary table, one row per video."""

    __tablename__ = "summaries"

    video_id = Column(String(64), ForeignKey("videos.id"), primary_key=True)
    summary = Column(Text, nullable=False)
    key_topics = Column(JSON, default=list, nullable=False)
    highlights = Column(JSON, default=list, nullable=False)
    model = Column(String(100), nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    video = relationship("Video", back_populates="summary")

    def __repr__(self):
        return f"<Summary(video_id={self.video_id}, model={self.model})>"


# Indexes for performance
Index('idx_channel_videos', Video.channel_id, Video.published_at)


class DatabaseManager:
    """Manages database connections and operations."""

    def __init__(self, database_url: str, echo: bool = False):
        self.database_url = database_url
        self.echo = echo
        self.engine = None
        self.async_session_factory = None

    async def init_database(self) -> None:
        """Initialize database connection and create tables."""
        is_sqlite = "sqlite" in self.database_url
        engine_options = {"echo": self.echo}
        if is_sqlite:
            engine_options["poolclass"] = StaticPool
            engine_options["connect_args"] = {"check_same_thread": False}

        self.engine = create_async_engine(self.database_url, **engine_options)

        self.async_session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False
        )

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

            # Enable SQLite optimizations
            if is_sqlite:
                await conn.execute(text("PRAGMA foreign_keys=ON"))
                if ":memory:" not in self.database_url:
                    await conn.execute(text("PRAGMA journal_mode=WAL"))
                await conn.execute(text("PRAGMA synchronous=NORMAL"))

    @asynccontextmanager
    async def get_session(self) -> AsyncIterator[AsyncSession]:
        """Get database session."""
        if not self.async_session_factory:
            await self.init_database()

        async with self.async_session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def close(self) -> None:
        """Close database connections."""
        if self.engine:
            await self.engine.dispose()
            self.engine = None
            self.async_session_factory = None
