"""Retrieval augmentor: top-K grounding documents for a query.

Similarity ranking belongs to the vector store. This layer only caps the
result at ``k``, keeps the store's order, attaches source ids and renders the
context block used in the synthesis prompt.
"""

from typing import List, Optional

from drone_agent.domain.exceptions import BusinessError, RetrievalError
from drone_agent.domain.models import RetrievedDocument
from drone_agent.infrastructure.logging.logger import logger
from drone_agent.retrieval.vector_store import VectorStore


class RetrievalAugmentor:
    def __init__(self, vector_store: VectorStore, default_k: int = 2):
        self._vector_store = vector_store
        self.default_k = default_k

    async def retrieve(self, query: str, k: Optional[int] = None) -> List[RetrievedDocument]:
        """Return at most ``k`` documents; an empty list when nothing matches.

        Raises RetrievalError when the vector store cannot be queried.
        """
        limit = self.default_k if k is None else k
        if limit <= 0 or not query.strip():
            return []
        try:
            chunks = await self._vector_store.similarity_search(query, limit)
        except RetrievalError:
            raise
        except BusinessError as e:
            raise RetrievalError(code="RETRIEVAL_FAILED", message=e.message, http_status=e.http_status)
        except Exception as e:
            raise RetrievalError(code="RETRIEVAL_FAILED", message=str(e) or type(e).__name__)
        docs = [
            RetrievedDocument(
                source_id=str(chunk.metadata.get("source") or chunk.metadata.get("id") or f"doc-{i}"),
                content=chunk.content,
                score=chunk.score,
                metadata=dict(chunk.metadata),
            )
            for i, chunk in enumerate(chunks[:limit])
        ]
        logger.info(
            "retrieval.done",
            extra={"extra": {"k": limit, "returned": len(docs), "sources": [d.source_id for d in docs]}},
        )
        return docs


def format_context(documents: List[RetrievedDocument]) -> str:
    """Render documents as ``Source: ...`` / ``Content: ...`` blocks."""
    return "\n".join(f"Source: {doc.source_id}\nContent: {doc.content}" for doc in documents)
