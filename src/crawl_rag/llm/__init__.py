"""Model provider clients."""

from crawl_rag.llm.chat import ChatClient
from crawl_rag.llm.embeddings import EmbeddingClient, is_zero_vector

__all__ = ["ChatClient", "EmbeddingClient", "is_zero_vector"]
