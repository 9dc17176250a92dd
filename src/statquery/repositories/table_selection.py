"""
Table Selection Repository.

Narrows the declared schema catalog to the tables most relevant to a
question before schema reflection, keeping the SQL prompt small.

Each declared table is described as "<schema>.<table>: <col>, <col>, ..."
and embedded; the question is embedded once; tables are ranked by cosine
similarity. A table is kept if it scores at or above the threshold, or if it
is the best-scoring table, and the result is capped at max_selected_tables.

Selection fails open: with no embedding client, an embedding failure, or
only degenerate (zero-norm) vectors, every declared table is returned.
"""

import asyncio
import hashlib
from collections import OrderedDict
from typing import List, Optional, Sequence

from statquery.config import NL2SQLConfig
from statquery.domain.catalog import SchemaCatalog, SelectedTable
from statquery.domain.errors import DatabaseError, EmbeddingError
from statquery.domain.pipeline import TableEmbedding
from statquery.domain.types import Vector
from statquery.infrastructure.embedding_client import EmbeddingClient
from statquery.repositories.schema_repository import SchemaRepository
from statquery.utils.logging import get_module_logger
from statquery.utils.similarity import cosine_similarity
from statquery.utils.tracing import current_trace_id

logger = get_module_logger()


def describe_table(schema_name: str, table_name: str, column_names: Sequence[str]) -> str:
    """
    Text embedded for a table.

    Example:
        >>> describe_table("f1", "Drivers", ["forename", "surname"])
        'f1.Drivers: forename, surname'
    """
    text = f"{schema_name}.{table_name}"
    if column_names:
        text += f": {', '.join(column_names)}"
    return text


def rank_tables(
    query_vector: Vector,
    table_embeddings: Sequence[TableEmbedding],
    threshold: float,
    max_tables: int,
) -> List[SelectedTable]:
    """
    Rank table embeddings against the query vector and apply the selection rule.

    Zero-norm vectors are excluded. Ties keep input order. Returns an empty
    list only when every candidate was excluded.
    """
    scored: List[SelectedTable] = []
    for embedding in table_embeddings:
        try:
            similarity = cosine_similarity(query_vector, embedding.vector)
        except ValueError as e:
            logger.warning(
                "Skipping table with mismatched embedding",
                table=f"{embedding.schema_name}.{embedding.table_name}",
                error=str(e),
            )
            continue
        if similarity is None:
            continue
        scored.append(
            SelectedTable(
                schema_name=embedding.schema_name,
                table_name=embedding.table_name,
                similarity=similarity,
            )
        )

    # sorted() is stable, so equal scores stay in catalog order
    ranked = sorted(scored, key=lambda t: t.similarity, reverse=True)

    selected = [
        table for index, table in enumerate(ranked)
        if index == 0 or table.similarity >= threshold
    ]
    return selected[:max_tables]


class TableEmbeddingCache:
    """
    Bounded in-process LRU cache of table embeddings.

    Keys hash the schema, table and column list, so a column change yields a
    new key. A max_size of 0 disables caching.
    """

    def __init__(self, max_size: int = 256):
        self.max_size = max_size
        self._entries: "OrderedDict[str, TableEmbedding]" = OrderedDict()

    @staticmethod
    def make_key(schema_name: str, table_name: str, column_names: Sequence[str]) -> str:
        raw = f"{schema_name}|{table_name}|{','.join(column_names)}"
        return hashlib.sha256(raw.encode("utf-8")).hexdigest()

    def get(self, key: str) -> Optional[TableEmbedding]:
        entry = self._entries.get(key)
        if entry is not None:
            self._entries.move_to_end(key)
        return entry

    def put(self, key: str, embedding: TableEmbedding) -> None:
        if self.max_size <= 0:
            return
        self._entries[key] = embedding
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_size:
            self._entries.popitem(last=False)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class TableSelectionRepository:
    """
    Repository for embedding-based table gating.

    Usage:
        repo = TableSelectionRepository(embedding_client, schema_repo, nl2sql_config)
        tables = await repo.select_tables("Who won the 2023 title?", catalog)
    """

    def __init__(
        self,
        embedding_client: Optional[EmbeddingClient],
        schema_repository: SchemaRepository,
        config: NL2SQLConfig,
        cache: Optional[TableEmbeddingCache] = None,
    ):
        self.embedding_client = embedding_client
        self.schema_repository = schema_repository
        self.config = config
        self.cache = cache if cache is not None else TableEmbeddingCache(config.embedding_cache_size)

    def _gating_available(self) -> bool:
        return self.embedding_client is not None and self.embedding_client.is_connected()

    async def select_tables(self, rewritten_query: str, catalog: SchemaCatalog) -> List[SelectedTable]:
        """
        Select the declared tables most relevant to the question.

        Returns:
            Schema-qualified tables, best first. Never contains a table that
            is not declared in the catalog.
        """
        trace_id = current_trace_id()
        all_tables = catalog.all_tables()

        if not all_tables:
            return []

        if not self._gating_available():
            logger.info(
                "No embedding client configured, selecting all declared tables",
                table_count=len(all_tables),
                trace_id=trace_id,
            )
            return all_tables

        try:
            query_vector = await self.embedding_client.embed_text(rewritten_query)
            table_embeddings = await self._embed_tables(catalog)
        except (EmbeddingError, DatabaseError) as e:
            logger.warning(
                "Table gating failed, selecting all declared tables",
                error=str(e),
                error_type=type(e).__name__,
                trace_id=trace_id,
            )
            return all_tables

        selected = rank_tables(
            query_vector,
            table_embeddings,
            threshold=self.config.similarity_threshold,
            max_tables=self.config.max_selected_tables,
        )

        if not selected:
            logger.warning(
                "All table embeddings were degenerate, selecting all declared tables",
                trace_id=trace_id,
            )
            return all_tables

        logger.info(
            "Embedding-gated tables selected",
            query=rewritten_query,
            selected=[t.qualified_name for t in selected],
            similarities=[round(t.similarity, 4) for t in selected],
            trace_id=trace_id,
        )

        return selected

    async def _embed_tables(self, catalog: SchemaCatalog) -> List[TableEmbedding]:
        """Embed every declared table concurrently, keeping catalog order."""
        results = await asyncio.gather(
            *(self._embed_table(schema_name, table_name)
              for schema_name, table_name in catalog.iter_tables()),
            return_exceptions=True,
        )

        embeddings: List[TableEmbedding] = []
        for result in results:
            if isinstance(result, BaseException):
                raise result
            embeddings.append(result)
        return embeddings

    async def _embed_table(self, schema_name: str, table_name: str) -> TableEmbedding:
        column_names = await self.schema_repository.get_column_names(schema_name, table_name)
        key = TableEmbeddingCache.make_key(schema_name, table_name, column_names)

        cached = self.cache.get(key)
        if cached is not None:
            return cached

        text = describe_table(schema_name, table_name, column_names)
        vector = await self.embedding_client.embed_text(text)

        embedding = TableEmbedding(
            schema_name=schema_name,
            table_name=table_name,
            description_text=text,
            vector=vector,
        )
        self.cache.put(key, embedding)
        return embedding
