from drone_agent.retrieval.augmentor import RetrievalAugmentor, format_context
from drone_agent.retrieval.vector_store import InMemoryVectorStore, ScoredChunk, VectorStore

__all__ = ["RetrievalAugmentor", "format_context", "InMemoryVectorStore", "ScoredChunk", "VectorStore"]
