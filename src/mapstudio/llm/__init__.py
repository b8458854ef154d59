"""External capability clients for the resolver's AI and embedding tiers.

Provides the capability protocols plus an Anthropic text-generation client
and a ChromaDB-backed embedding client.
"""

from mapstudio.llm.client import StudioLLMClient
from mapstudio.llm.embeddings import ChromaEmbeddingClient
from mapstudio.llm.protocols import Embedder, TextGenerator

__all__ = ["ChromaEmbeddingClient", "Embedder", "StudioLLMClient", "TextGenerator"]
