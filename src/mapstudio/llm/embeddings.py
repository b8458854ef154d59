"""Embedding client backed by a ChromaDB embedding function.

Uses ChromaDB's default embedding model (all-MiniLM-L6-v2 via ONNX) for
local, GPU-free embedding generation, or any other chromadb embedding
function passed in (e.g. ``OpenAIEmbeddingFunction``).
"""

from __future__ import annotations

from typing import Any

from chromadb.utils import embedding_functions
from loguru import logger


class ChromaEmbeddingClient:
    """Implements the :class:`~mapstudio.llm.protocols.Embedder` capability.

    Failures are not caught here; the resolver's embedding tier isolates
    them per field.
    """

    def __init__(self, embedding_function: Any | None = None) -> None:
        """Create the client.

        Args:
            embedding_function: A chromadb ``EmbeddingFunction`` (callable taking
                a list of documents). Defaults to chromadb's bundled ONNX model.
        """
        self._fn = embedding_function or embedding_functions.DefaultEmbeddingFunction()

    def embed(self, text: str) -> list[float]:
        """Embed a single text into a fixed-length float vector."""
        vectors = self._fn([text])
        if vectors is None or len(vectors) == 0:
            logger.debug("Embedding function returned no vector")
            return []
        return [float(x) for x in vectors[0]]
