"""Relevance aggregation: rank help-center articles against release notes.

Vector path (preferred):
1. Embed the query text
2. Embed each article's title + body prefix in fixed-size batches, with a
   bounded number of batches in flight and a timeout per call
3. Score with cosine similarity, sort once after every batch has returned,
   keep the top N

Lexical path (fallback): used when no embedding provider is configured, the
query embedding fails, or every document batch fails. Results are marked
with used_fallback=True so callers can adjust confidence messaging.

A failing batch is logged and skipped; the ranking proceeds over the
documents that were embedded successfully. Failures are remembered for the
lifetime of the aggregator (one request), so later calls do not repeat them.
"""

import asyncio
import logging
from collections.abc import Sequence

from app.core.config import Settings, get_settings
from app.core.embeddings import EmbeddingProvider
from app.core.errors import ProviderError
from app.core.lexical_match import score_documents
from app.core.logging import get_logger, log_with_context
from app.core.schemas_analysis import Document, RelevanceResult, ScoredDocument
from app.core.similarity import rank

logger = get_logger(__name__)


class RelevanceAggregator:
    """
    Request-scoped orchestrator for article relevance scoring.

    Holds the semaphore that bounds concurrent embedding calls and a memo of
    document vectors, so gap coverage checks in the same request reuse the
    vectors computed for the main ranking. Documents whose batch failed are
    not retried within the request. Once the query embedding fails, or every
    batch fails, the vector path stays down for the rest of the request.
    """

    def __init__(
        self,
        embedding_provider: EmbeddingProvider | None,
        *,
        batch_size: int = 20,
        concurrency: int = 4,
        timeout_seconds: float = 8.0,
        max_documents: int = 500,
        max_chars: int = 4000,
        top_n: int = 5,
    ):
        if batch_size < 1 or concurrency < 1:
            raise ValueError("batch_size and concurrency must be positive")

        self.provider = embedding_provider
        self.batch_size = batch_size
        self.timeout_seconds = timeout_seconds
        self.max_documents = max_documents
        self.max_chars = max_chars
        self.top_n = top_n
        self._semaphore = asyncio.Semaphore(concurrency)
        self._doc_vectors: dict[tuple[str, str | None], list[float]] = {}
        self._failed_docs: set[tuple[str, str | None]] = set()
        # Reason the vector path went down for this request, if it did
        self._vector_path_down: str | None = None

    @classmethod
    def from_settings(
        cls,
        embedding_provider: EmbeddingProvider | None,
        settings: Settings | None = None,
    ) -> "RelevanceAggregator":
        settings = settings or get_settings()
        return cls(
            embedding_provider,
            batch_size=settings.EMBEDDING_BATCH_SIZE,
            concurrency=settings.EMBEDDING_CONCURRENCY,
            timeout_seconds=settings.EMBEDDING_TIMEOUT_SECONDS,
            max_documents=settings.MAX_CORPUS_DOCUMENTS,
            max_chars=settings.MAX_CHARS_PER_DOCUMENT,
            top_n=settings.TOP_N_ARTICLES,
        )

    @property
    def has_vector_path(self) -> bool:
        return self.provider is not None

    # =========================================================================
    # Public operations
    # =========================================================================

    async def find_relevant_documents(
        self,
        query_text: str,
        corpus: Sequence[Document],
        top_n: int | None = None,
    ) -> RelevanceResult:
        """
        Rank corpus documents by relevance to the query text.

        Args:
            query_text: Release notes (or a single topic)
            corpus: Candidate documents
            top_n: Number of documents to keep (defaults to self.top_n)

        Returns:
            RelevanceResult with documents sorted by relevance_score (0-1) descending
        """
        top_n = self.top_n if top_n is None else top_n
        if not corpus:
            return RelevanceResult()

        documents = list(corpus[: self.max_documents])
        if len(corpus) > len(documents):
            logger.info(f"Corpus capped at {len(documents)} of {len(corpus)} documents")

        if self.provider is None:
            return self._lexical(query_text, documents, top_n, reason="no embedding provider")
        if self._vector_path_down:
            return self._lexical(query_text, documents, top_n, reason=self._vector_path_down)

        try:
            query_vector = (await self._embed([query_text[: self.max_chars]]))[0]
        except Exception as e:
            logger.warning(f"Query embedding failed, using lexical fallback: {e}")
            self._vector_path_down = "query embedding failed"
            return self._lexical(query_text, documents, top_n, reason=self._vector_path_down)

        vectors, failed_batches = await self._document_vectors(documents)
        if not vectors:
            self._vector_path_down = "all embedding batches failed"
            return self._lexical(query_text, documents, top_n, reason=self._vector_path_down)

        ranked = rank(query_vector, [(i, vectors[i]) for i in range(len(documents)) if i in vectors])
        scored = [ScoredDocument.from_document(documents[i], score) for i, score in ranked]

        log_with_context(
            logger,
            logging.INFO,
            "Vector relevance ranking complete",
            scored=len(scored),
            failed_batches=failed_batches,
            top_n=top_n,
        )

        return RelevanceResult(
            documents=scored[:top_n],
            used_fallback=False,
            scored_count=len(scored),
            failed_batches=failed_batches,
        )

    async def has_similar_document(
        self,
        text: str,
        corpus: Sequence[Document],
        threshold: float,
    ) -> bool:
        """
        Whether any corpus document scores strictly above threshold for text.

        Only the vector path counts; lexical scores are not comparable to the
        coverage threshold.

        Raises:
            ProviderError: If the vector path is unavailable for this text
        """
        if self.provider is None:
            raise ProviderError("embedding", "UNAVAILABLE", "No embedding provider configured")
        if self._vector_path_down:
            raise ProviderError(
                "embedding", "UNAVAILABLE", f"Vector path down: {self._vector_path_down}"
            )
        if not corpus:
            return False

        result = await self.find_relevant_documents(text, corpus, top_n=1)
        if result.used_fallback:
            raise ProviderError("embedding", "UNAVAILABLE", f"Vector scoring failed for {text!r}")

        return any(doc.relevance_score > threshold for doc in result.documents)

    # =========================================================================
    # Internals
    # =========================================================================

    def _lexical(
        self,
        query_text: str,
        documents: list[Document],
        top_n: int,
        reason: str,
    ) -> RelevanceResult:
        logger.info(f"Lexical fallback matching ({reason}) over {len(documents)} documents")
        scored = [doc for doc in score_documents(query_text, documents) if doc.relevance_score > 0]
        scored.sort(key=lambda d: d.relevance_score, reverse=True)
        return RelevanceResult(
            documents=scored[:top_n],
            used_fallback=True,
            scored_count=len(scored),
        )

    async def _embed(self, texts: list[str]) -> list[list[float]]:
        """One provider call, bounded by the semaphore and the timeout."""
        async with self._semaphore:
            vectors = await asyncio.wait_for(self.provider.embed(texts), self.timeout_seconds)
        if len(vectors) != len(texts):
            raise ProviderError(
                getattr(self.provider, "name", "embedding"),
                "BAD_RESPONSE",
                f"Expected {len(texts)} embeddings, got {len(vectors)}",
            )
        return vectors

    def _document_text(self, doc: Document) -> str:
        return f"{doc.title}\n\n{doc.body[: self.max_chars]}"

    @staticmethod
    def _memo_key(doc: Document) -> tuple[str, str | None]:
        return (doc.id, doc.updated_at)

    async def _embed_batch(
        self,
        batch_num: int,
        total_batches: int,
        indices: list[int],
        documents: list[Document],
    ) -> list[tuple[int, list[float]]] | None:
        """Embed one batch; returns its own result slot, or None on failure."""
        try:
            vectors = await self._embed([self._document_text(documents[i]) for i in indices])
        except Exception as e:
            log_with_context(
                logger,
                logging.WARNING,
                f"Embedding batch {batch_num}/{total_batches} failed, skipping: {e}",
                batch=batch_num,
                size=len(indices),
            )
            return None
        return list(zip(indices, vectors))

    async def _document_vectors(
        self,
        documents: list[Document],
    ) -> tuple[dict[int, list[float]], int]:
        """Vectors by document position, plus the number of failed batches."""
        vectors: dict[int, list[float]] = {}
        pending: list[int] = []
        for i, doc in enumerate(documents):
            key = self._memo_key(doc)
            memo = self._doc_vectors.get(key)
            if memo is not None:
                vectors[i] = memo
            elif key not in self._failed_docs:
                pending.append(i)

        if not pending:
            return vectors, 0

        batches = [pending[i : i + self.batch_size] for i in range(0, len(pending), self.batch_size)]
        logger.debug(f"Embedding {len(pending)} documents in {len(batches)} batches")

        slots = await asyncio.gather(
            *(
                self._embed_batch(n, len(batches), batch, documents)
                for n, batch in enumerate(batches, start=1)
            )
        )

        # Merge per-batch slots only after every batch has returned
        failed = 0
        for batch, slot in zip(batches, slots):
            if slot is None:
                failed += 1
                self._failed_docs.update(self._memo_key(documents[i]) for i in batch)
                continue
            for i, vector in slot:
                vectors[i] = vector
                self._doc_vectors[self._memo_key(documents[i])] = vector

        return vectors, failed
