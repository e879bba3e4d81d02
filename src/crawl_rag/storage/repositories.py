"""Repository pattern for database operations."""

from datetime import datetime, timezone
from typing import Any

import numpy as np
from sqlalchemy import delete, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from crawl_rag.models.document import CodeExampleRecord, Source, StoredDocument
from crawl_rag.models.search import SearchResult
from crawl_rag.storage.database import CodeExampleORM, CrawledPageORM, SourceORM


def owner_key(owner: str | None) -> str:
    """Map an optional owner onto the stored column value ("" = unowned)."""
    return owner or ""


def escape_like(text: str) -> str:
    """Escape LIKE wildcards so the text matches literally (escape char is a backslash)."""
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def cosine_similarities(matrix: np.ndarray, query: np.ndarray) -> np.ndarray:
    """Cosine similarity of each row against the query, clamped to [0, 1]."""
    norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
    safe_norms = np.where(norms == 0, 1.0, norms)
    similarities = (matrix @ query) / safe_norms
    similarities[norms == 0] = 0.0
    return np.clip(similarities, 0.0, 1.0)


class SourceRepository:
    """Repository for source CRUD operations, scoped per owner."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, source_id: str, owner: str | None = None) -> Source | None:
        """Get one owner's row for a source."""
        result = await self.session.execute(
            select(SourceORM).where(
                SourceORM.source_id == source_id,
                SourceORM.owner == owner_key(owner),
            )
        )
        orm = result.scalar_one_or_none()
        return self._to_model(orm) if orm else None

    async def get_all(self, owner: str | None = None) -> list[Source]:
        """Get all sources ordered by ID, optionally restricted to one owner."""
        query = select(SourceORM).order_by(SourceORM.source_id, SourceORM.owner)
        if owner:
            query = query.where(SourceORM.owner == owner)
        result = await self.session.execute(query)
        return [self._to_model(orm) for orm in result.scalars()]

    async def upsert(
        self,
        source_id: str,
        summary: str,
        total_word_count: int,
        owner: str | None = None,
    ) -> Source:
        """Update the owner's row for the source if it exists, otherwise create it."""
        existing = await self.get(source_id, owner)
        if existing:
            await self.session.execute(
                update(SourceORM)
                .where(
                    SourceORM.source_id == source_id,
                    SourceORM.owner == owner_key(owner),
                )
                .values(
                    summary=summary,
                    total_word_count=total_word_count,
                    updated_at=datetime.now(timezone.utc),
                )
            )
        else:
            self.session.add(
                SourceORM(
                    source_id=source_id,
                    summary=summary,
                    total_word_count=total_word_count,
                    owner=owner_key(owner),
                )
            )
        await self.session.commit()
        return await self.get(source_id, owner)

    def _to_model(self, orm: SourceORM) -> Source:
        return Source(
            source_id=orm.source_id,
            summary=orm.summary,
            total_word_count=orm.total_word_count,
            owner=orm.owner or None,
            created_at=orm.created_at,
            updated_at=orm.updated_at,
        )


class _ChunkTableRepository:
    """Shared operations for the two embedded-chunk tables."""

    orm_class: type[CrawledPageORM] | type[CodeExampleORM]

    def __init__(self, session: AsyncSession):
        self.session = session

    async def delete_by_urls(self, urls: list[str], owner: str | None = None) -> int:
        """Delete every row for the given URLs within one owner scope."""
        if not urls:
            return 0
        result = await self.session.execute(
            delete(self.orm_class).where(
                self.orm_class.url.in_(urls),
                self.orm_class.owner == owner_key(owner),
            )
        )
        await self.session.commit()
        return result.rowcount

    async def delete_by_url(self, url: str, owner: str | None = None) -> int:
        return await self.delete_by_urls([url], owner)

    async def insert_many(self, records: list[StoredDocument]) -> int:
        """Insert records in one transaction; rolls back and re-raises on failure."""
        try:
            self.session.add_all([self._to_orm(record) for record in records])
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        return len(records)

    async def insert_one(self, record: StoredDocument) -> None:
        await self.insert_many([record])

    async def get_by_url(self, url: str, owner: str | None = None) -> list[SearchResult]:
        """Get the rows stored for a URL, ordered by chunk number."""
        result = await self.session.execute(
            select(self.orm_class)
            .where(self.orm_class.url == url, self.orm_class.owner == owner_key(owner))
            .order_by(self.orm_class.chunk_number)
        )
        return [self._to_result(orm) for orm in result.scalars()]

    async def match(
        self,
        query_embedding: list[float],
        match_count: int = 10,
        filter: dict[str, Any] | None = None,
        source_filter: str | None = None,
        owner_filter: str | None = None,
    ) -> list[SearchResult]:
        """
        Rank rows by cosine similarity to the query embedding.

        Args:
            query_embedding: Query vector
            match_count: Maximum rows to return
            filter: Key/value pairs every row's metadata must contain
            source_filter: Restrict to one source_id
            owner_filter: Restrict to one owner

        Returns:
            Rows with ``similarity`` set, best first
        """
        query = select(self.orm_class)
        if source_filter:
            query = query.where(self.orm_class.source_id == source_filter)
        if owner_filter:
            query = query.where(self.orm_class.owner == owner_filter)

        result = await self.session.execute(query)
        dimensions = len(query_embedding)
        rows = [
            orm
            for orm in result.scalars()
            if len(orm.embedding or []) == dimensions and self._metadata_matches(orm, filter)
        ]
        if not rows or match_count <= 0:
            return []

        matrix = np.asarray([orm.embedding for orm in rows], dtype=np.float64)
        similarities = cosine_similarities(matrix, np.asarray(query_embedding, dtype=np.float64))
        order = np.argsort(-similarities, kind="stable")[:match_count]

        return [self._to_result(rows[i], similarity=float(similarities[i])) for i in order]

    async def keyword_search(
        self,
        query: str,
        limit: int = 10,
        source: str | None = None,
        owner: str | None = None,
    ) -> list[SearchResult]:
        """Case-insensitive substring match over the searchable text columns."""
        pattern = f"%{escape_like(query)}%"
        statement = select(self.orm_class).where(
            or_(*(column.ilike(pattern, escape="\\") for column in self._keyword_columns()))
        )
        if source:
            statement = statement.where(self.orm_class.source_id == source)
        if owner:
            statement = statement.where(self.orm_class.owner == owner)
        statement = statement.order_by(self.orm_class.id).limit(limit)

        result = await self.session.execute(statement)
        return [self._to_result(orm) for orm in result.scalars()]

    def _keyword_columns(self) -> list:
        return [self.orm_class.content]

    @staticmethod
    def _metadata_matches(orm, filter: dict[str, Any] | None) -> bool:
        if not filter:
            return True
        metadata = orm.page_metadata or {}
        return all(metadata.get(key) == value for key, value in filter.items())

    def _to_orm(self, record: StoredDocument):
        return self.orm_class(
            url=record.url,
            chunk_number=record.chunk_number,
            content=record.content,
            page_metadata=record.metadata,
            source_id=record.source_id,
            embedding=record.embedding,
            owner=owner_key(record.owner),
        )

    def _to_result(self, orm, similarity: float = 0.0) -> SearchResult:
        return SearchResult(
            id=orm.id,
            url=orm.url,
            content=orm.content,
            metadata=orm.page_metadata or {},
            source_id=orm.source_id,
            similarity=similarity,
            chunk_number=orm.chunk_number,
        )


class CrawledPageRepository(_ChunkTableRepository):
    """Repository for crawled page chunks."""

    orm_class = CrawledPageORM


class CodeExampleRepository(_ChunkTableRepository):
    """Repository for code examples; keyword search also covers summaries."""

    orm_class = CodeExampleORM

    def _keyword_columns(self) -> list:
        return [CodeExampleORM.content, CodeExampleORM.summary]

    def _to_orm(self, record: CodeExampleRecord) -> CodeExampleORM:
        orm = super()._to_orm(record)
        orm.summary = record.summary
        return orm

    def _to_result(self, orm: CodeExampleORM, similarity: float = 0.0) -> SearchResult:
        result = super()._to_result(orm, similarity)
        result.summary = orm.summary
        return result
