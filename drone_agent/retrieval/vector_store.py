"""Vector store contract and an in-process implementation.

``similarity_search(query, k)`` returns chunks ordered by descending score.
InMemoryVectorStore keeps L2-normalized embeddings in a numpy matrix and
ranks by inner product (cosine similarity).
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Sequence

import numpy as np

from drone_agent.domain.exceptions import BusinessError, RetrievalError
from drone_agent.providers.base import EmbeddingClient


@dataclass
class ScoredChunk:
    content: str
    metadata: Dict[str, Any] = field(default_factory=dict)
    score: float = 0.0


class VectorStore(Protocol):
    async def similarity_search(self, query: str, k: int) -> List[ScoredChunk]:
        ...


def _normalize(matrix: np.ndarray) -> np.ndarray:
    norms = np.linalg.norm(matrix, axis=-1, keepdims=True)
    norms[norms == 0] = 1.0
    return matrix / norms


class InMemoryVectorStore:
    def __init__(self, embeddings: EmbeddingClient):
        self._embeddings = embeddings
        self._texts: List[str] = []
        self._metadatas: List[Dict[str, Any]] = []
        self._matrix: Optional[np.ndarray] = None
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._texts)

    async def add_texts(self, texts: Sequence[str], metadatas: Optional[Sequence[Dict[str, Any]]] = None) -> int:
        """Embed and index ``texts``; returns the number of chunks added."""
        texts = list(texts)
        if not texts:
            return 0
        metas = [dict(m) for m in metadatas] if metadatas is not None else [{} for _ in texts]
        if len(metas) != len(texts):
            raise ValueError("metadatas must match texts in length")
        try:
            vectors = await self._embeddings.embed_documents(texts)
        except BusinessError as e:
            raise RetrievalError(code="EMBEDDING_FAILED", message=e.message, http_status=e.http_status)
        block = _normalize(np.asarray(vectors, dtype="float32"))
        async with self._lock:
            if self._matrix is None:
                self._matrix = block
            else:
                if block.shape[1] != self._matrix.shape[1]:
                    raise ValueError(
                        f"Embedding dimension {block.shape[1]} does not match index dimension {self._matrix.shape[1]}"
                    )
                self._matrix = np.vstack([self._matrix, block])
            self._texts.extend(texts)
            self._metadatas.extend(metas)
        return len(texts)

    async def similarity_search(self, query: str, k: int) -> List[ScoredChunk]:
        if k <= 0 or self._matrix is None:
            return []
        try:
            qvec = await self._embeddings.embed_query(query)
        except BusinessError as e:
            raise RetrievalError(code="EMBEDDING_FAILED", message=e.message, http_status=e.http_status)
        q = _normalize(np.asarray(qvec, dtype="float32").reshape(1, -1))
        async with self._lock:
            if q.shape[1] != self._matrix.shape[1]:
                raise RetrievalError(
                    code="DIMENSION_MISMATCH",
                    message=f"Query dimension {q.shape[1]} does not match index dimension {self._matrix.shape[1]}",
                )
            scores = self._matrix @ q[0]
            # stable sort keeps insertion order among equal scores
            order = np.argsort(-scores, kind="stable")[:k]
            return [
                ScoredChunk(content=self._texts[i], metadata=dict(self._metadatas[i]), score=float(scores[i]))
                for i in order
            ]
