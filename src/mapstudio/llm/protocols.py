"""Narrow capability interfaces consumed by the correspondence resolver.

The resolver depends only on these protocols, so tiers 2 and 3 can be
exercised with in-memory stubs and wired to network-backed clients at the
integration boundary.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class TextGenerator(Protocol):
    """Text-generation capability with schema-constrained JSON output."""

    def generate_structured_json(
        self,
        hint: str,
        response_schema: dict[str, Any],
        context_json: str,
    ) -> str:
        """Return JSON text that conforms exactly to ``response_schema``."""
        ...


@runtime_checkable
class Embedder(Protocol):
    """Embedding capability. An empty vector means "unavailable"."""

    def embed(self, text: str) -> list[float]: ...
