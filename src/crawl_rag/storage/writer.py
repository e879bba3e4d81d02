"""Batched, replace-on-ingest writes of chunks, code examples and sources."""

import asyncio
from dataclasses import dataclass

import structlog
from sqlalchemy.exc import SQLAlchemyError

from crawl_rag.ingestion.urls import extract_source_id
from crawl_rag.llm.chat import ChatClient
from crawl_rag.llm.embeddings import EmbeddingClient, is_zero_vector
from crawl_rag.models.document import CodeExampleRecord, Source, StoredDocument
from crawl_rag.observability.metrics import CHUNKS_STORED, CODE_EXAMPLES_STORED
from crawl_rag.retry import RetryPolicy
from crawl_rag.storage.database import Database
from crawl_rag.storage.repositories import (
    CodeExampleRepository,
    CrawledPageRepository,
    SourceRepository,
)

logger = structlog.get_logger()


@dataclass
class InsertStats:
    """Tally of rows written and rows that could not be written."""

    inserted: int = 0
    failed: int = 0

    def __add__(self, other: "InsertStats") -> "InsertStats":
        return InsertStats(self.inserted + other.inserted, self.failed + other.failed)


RepositoryClass = type[CrawledPageRepository] | type[CodeExampleRepository]


class StorageWriter:
    """
    Write embedded rows to the store.

    Ingesting a URL first deletes every row previously stored for it (in
    the same owner scope), then inserts the new rows in batches. A batch
    insert is retried with exponential backoff; if it still fails, its rows
    are inserted one at a time and the failures are counted, not raised.
    """

    def __init__(
        self,
        db: Database,
        embeddings: EmbeddingClient,
        chat: ChatClient | None = None,
        batch_size: int = 20,
        retry_policy: RetryPolicy | None = None,
        use_contextual_embeddings: bool = False,
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.db = db
        self.embeddings = embeddings
        self.chat = chat
        self.batch_size = batch_size
        self.retry_policy = retry_policy or RetryPolicy(max_attempts=3, base_delay=1.0)
        self.use_contextual_embeddings = use_contextual_embeddings

    async def upsert_source(
        self,
        source_id: str,
        summary: str,
        total_word_count: int,
        owner: str | None = None,
    ) -> Source:
        async with self.db.session() as session:
            source = await SourceRepository(session).upsert(source_id, summary, total_word_count, owner)
        logger.info("source_upserted", source_id=source_id, word_count=total_word_count)
        return source

    async def replace_documents(
        self,
        urls: list[str],
        chunk_numbers: list[int],
        contents: list[str],
        metadatas: list[dict],
        url_to_full_document: dict[str, str],
        owner: str | None = None,
    ) -> InsertStats:
        """
        Replace the stored chunks of every URL in ``urls``.

        When contextual embeddings are enabled each chunk is situated within
        its full document first; the situated text is what gets embedded and
        stored.
        """
        await self._delete_existing(CrawledPageRepository, urls, owner)

        stats = InsertStats()
        for start in range(0, len(contents), self.batch_size):
            end = start + self.batch_size
            batch_contents = contents[start:end]
            batch_metadatas = [dict(m) for m in metadatas[start:end]]

            if self.use_contextual_embeddings and self.chat is not None:
                situated = await asyncio.gather(
                    *(
                        self.chat.situate_chunk(url_to_full_document.get(url, ""), content)
                        for url, content in zip(urls[start:end], batch_contents)
                    )
                )
                batch_contents = []
                for (text, contextualized), metadata in zip(situated, batch_metadatas):
                    batch_contents.append(text)
                    if contextualized:
                        metadata["contextual_embedding"] = True

            vectors = await self.embeddings.embed_batch(batch_contents)

            records = []
            for i, (content, metadata, vector) in enumerate(zip(batch_contents, batch_metadatas, vectors)):
                metadata["chunk_size"] = len(content)
                records.append(
                    StoredDocument(
                        url=urls[start + i],
                        chunk_number=chunk_numbers[start + i],
                        content=content,
                        metadata=metadata,
                        source_id=extract_source_id(urls[start + i]),
                        embedding=vector,
                        owner=owner,
                    )
                )

            stats = stats + await self._insert_batch(CrawledPageRepository, records, "crawled_pages")

        CHUNKS_STORED.inc(stats.inserted)
        logger.info("documents_stored", inserted=stats.inserted, failed=stats.failed, urls=len(set(urls)))
        return stats

    async def replace_code_examples(
        self,
        urls: list[str],
        chunk_numbers: list[int],
        codes: list[str],
        summaries: list[str],
        metadatas: list[dict],
        owner: str | None = None,
    ) -> InsertStats:
        """Replace the stored code examples of every URL in ``urls``."""
        await self._delete_existing(CodeExampleRepository, urls, owner)

        stats = InsertStats()
        for start in range(0, len(codes), self.batch_size):
            end = start + self.batch_size
            texts = [
                f"{code}\n\nSummary: {summary}"
                for code, summary in zip(codes[start:end], summaries[start:end])
            ]
            vectors = await self.embeddings.embed_batch(texts)

            # A zero vector means the provider failed for that text; try it once more
            for i, vector in enumerate(vectors):
                if is_zero_vector(vector):
                    vectors[i] = await self.embeddings.embed_one(texts[i])

            records = [
                CodeExampleRecord(
                    url=urls[start + i],
                    chunk_number=chunk_numbers[start + i],
                    content=codes[start + i],
                    summary=summaries[start + i],
                    metadata=metadatas[start + i],
                    source_id=extract_source_id(urls[start + i]),
                    embedding=vector,
                    owner=owner,
                )
                for i, vector in enumerate(vectors)
            ]

            stats = stats + await self._insert_batch(CodeExampleRepository, records, "code_examples")

        CODE_EXAMPLES_STORED.inc(stats.inserted)
        logger.info("code_examples_stored", inserted=stats.inserted, failed=stats.failed, urls=len(set(urls)))
        return stats

    async def _delete_existing(self, repository_class: RepositoryClass, urls: list[str], owner: str | None):
        unique_urls = list(dict.fromkeys(urls))
        if not unique_urls:
            return

        try:
            async with self.db.session() as session:
                deleted = await repository_class(session).delete_by_urls(unique_urls, owner)
            logger.debug("existing_rows_deleted", table=repository_class.orm_class.__tablename__, rows=deleted)
            return
        except SQLAlchemyError as e:
            logger.warning("bulk_delete_failed", urls=len(unique_urls), error=str(e))

        for url in unique_urls:
            try:
                async with self.db.session() as session:
                    await repository_class(session).delete_by_url(url, owner)
            except SQLAlchemyError as e:
                logger.error("delete_failed", url=url, error=str(e))

    async def _insert_batch(
        self,
        repository_class: RepositoryClass,
        records: list[StoredDocument],
        table: str,
    ) -> InsertStats:
        if not records:
            return InsertStats()

        async def insert_all() -> int:
            async with self.db.session() as session:
                return await repository_class(session).insert_many(records)

        try:
            inserted = await self.retry_policy.run(insert_all, f"insert_{table}")
            logger.debug("batch_inserted", table=table, count=inserted)
            return InsertStats(inserted=inserted)
        except SQLAlchemyError as e:
            logger.warning("batch_insert_failed", table=table, count=len(records), error=str(e))

        return await self._insert_individually(repository_class, records, table)

    async def _insert_individually(
        self,
        repository_class: RepositoryClass,
        records: list[StoredDocument],
        table: str,
    ) -> InsertStats:
        stats = InsertStats()
        for record in records:
            try:
                async with self.db.session() as session:
                    await repository_class(session).insert_one(record)
                stats.inserted += 1
            except SQLAlchemyError as e:
                stats.failed += 1
                logger.error("row_insert_failed", table=table, url=record.url, chunk_number=record.chunk_number, error=str(e))

        logger.info("individual_inserts_complete", table=table, inserted=stats.inserted, total=len(records))
        return stats
