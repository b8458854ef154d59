"""Tests for ChromaEmbeddingClient with injected embedding functions."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from mapstudio.llm.embeddings import ChromaEmbeddingClient
from mapstudio.llm.protocols import Embedder


class TestChromaEmbeddingClient:
    def test_embed_returns_first_vector_as_floats(self) -> None:
        fn = MagicMock(return_value=[np.array([0.1, 0.2, 0.3], dtype=np.float32)])
        client = ChromaEmbeddingClient(embedding_function=fn)

        vector = client.embed("path: user.id, type: number, description: ")

        fn.assert_called_once_with(["path: user.id, type: number, description: "])
        assert len(vector) == 3
        assert all(isinstance(x, float) for x in vector)

    def test_empty_result_is_empty_vector(self) -> None:
        client = ChromaEmbeddingClient(embedding_function=MagicMock(return_value=[]))
        assert client.embed("anything") == []

    def test_errors_propagate_to_caller(self) -> None:
        fn = MagicMock(side_effect=RuntimeError("model missing"))
        client = ChromaEmbeddingClient(embedding_function=fn)
        with pytest.raises(RuntimeError, match="model missing"):
            client.embed("x")

    @patch("mapstudio.llm.embeddings.embedding_functions.DefaultEmbeddingFunction")
    def test_defaults_to_chroma_default_function(self, mock_default: MagicMock) -> None:
        ChromaEmbeddingClient()
        mock_default.assert_called_once_with()

    def test_satisfies_embedder_protocol(self) -> None:
        client = ChromaEmbeddingClient(embedding_function=MagicMock(return_value=[[1.0]]))
        assert isinstance(client, Embedder)
