"""Database setup with SQLAlchemy async support (SQLite for local, Postgres for prod)."""

from __future__ import annotations

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKeyConstraint,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy import JSON as SA_JSON
from sqlalchemy.dialects.postgresql import JSONB as PG_JSONB
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all ORM models."""
    pass


def _json_type():
    """
    Use JSONB on Postgres, otherwise JSON.
    Keeps models portable across SQLite/Postgres.
    """
    return SA_JSON().with_variant(PG_JSONB, "postgresql")


class SourceORM(Base):
    """Sources table - one row per content origin and owner."""

    __tablename__ = "sources"

    source_id = Column(String, primary_key=True)
    owner = Column(String, primary_key=True, default="")
    summary = Column(Text, nullable=False, default="")
    total_word_count = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    __table_args__ = (Index("idx_sources_owner", "owner"),)


class CrawledPageORM(Base):
    """Crawled pages table - embedded markdown chunks."""

    __tablename__ = "crawled_pages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    url = Column(String, nullable=False)
    chunk_number = Column(Integer, nullable=False)
    content = Column(Text, nullable=False)

    # Named page_metadata to avoid clashing with SQLAlchemy's "metadata"
    page_metadata = Column("metadata", _json_type(), default=dict)

    source_id = Column(String, nullable=False)
    embedding = Column(_json_type(), nullable=False)
    owner = Column(String, nullable=False, default="")

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("url", "chunk_number", "owner", name="uq_crawled_pages_url_chunk_owner"),
        ForeignKeyConstraint(["source_id", "owner"], ["sources.source_id", "sources.owner"]),
        Index("idx_crawled_pages_source", "source_id"),
        Index("idx_crawled_pages_owner", "owner"),
    )


class CodeExampleORM(Base):
    """Code examples table - fenced blocks with generated summaries."""

    __tablename__ = "code_examples"

    id = Column(Integer, primary_key=True, autoincrement=True)
    url = Column(String, nullable=False)
    chunk_number = Column(Integer, nullable=False)
    content = Column(Text, nullable=False)
    summary = Column(Text, nullable=False, default="")

    page_metadata = Column("metadata", _json_type(), default=dict)

    source_id = Column(String, nullable=False)
    embedding = Column(_json_type(), nullable=False)
    owner = Column(String, nullable=False, default="")

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("url", "chunk_number", "owner", name="uq_code_examples_url_chunk_owner"),
        ForeignKeyConstraint(["source_id", "owner"], ["sources.source_id", "sources.owner"]),
        Index("idx_code_examples_source", "source_id"),
        Index("idx_code_examples_owner", "owner"),
    )


def _is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


class Database:
    """Owns the async engine and session factory for one database URL."""

    def __init__(self, url: str, echo: bool = False):
        engine_kwargs = {"echo": echo}

        # Pooling options should NOT be forced on SQLite.
        if not _is_sqlite(url):
            engine_kwargs.update(
                {
                    "pool_pre_ping": True,
                    "pool_size": 5,
                    "max_overflow": 5,
                }
            )

        self.url = url
        self.engine = create_async_engine(url, **engine_kwargs)
        self.session_factory = async_sessionmaker(self.engine, expire_on_commit=False)

    def session(self) -> AsyncSession:
        """Open a new session; use as ``async with db.session() as session``."""
        return self.session_factory()

    async def init(self):
        """Create tables if they don't exist."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def dispose(self):
        await self.engine.dispose()
