"""Correspondence resolver orchestrator.

Combines the three tiers in strict sequence:

1. Lexical matching (deterministic, always attempted)
2. AI-assisted matching (only when tier 1 found nothing)
3. Embedding gap fill (always, for targets still uncovered)

and finally re-runs tier 1 when the combined result is still empty.
Tier failures degrade to partial results; ``resolve`` never raises for
capability errors.
"""

from __future__ import annotations

from loguru import logger

from mapstudio.llm.protocols import Embedder, TextGenerator
from mapstudio.mapping.assisted import assisted_suggestions
from mapstudio.mapping.embedding import embedding_gap_fill
from mapstudio.mapping.lexical import lexical_suggestions
from mapstudio.models.fields import FieldPath
from mapstudio.models.mapping import Suggestion


class CorrespondenceResolver:
    """Produces maximal-coverage source-to-target suggestions.

    Usage::

        resolver = CorrespondenceResolver(
            generator=StudioLLMClient(),
            embedder=ChromaEmbeddingClient(),
        )
        suggestions = resolver.resolve(source_fields, target_fields)

    Either capability may be None, in which case its tier is skipped.
    """

    def __init__(
        self,
        generator: TextGenerator | None = None,
        embedder: Embedder | None = None,
    ) -> None:
        self._generator = generator
        self._embedder = embedder

    def resolve(
        self,
        source_fields: list[FieldPath],
        target_fields: list[FieldPath],
    ) -> list[Suggestion]:
        """Resolve suggestions for one source/target pair.

        Args:
            source_fields: Flattened source fields.
            target_fields: Parsed target fields, in schema order.

        Returns:
            Tier 1/2 suggestions in target-schema order, followed by tier 3
            gap-fill suggestions. Each source path appears at most once.
        """
        logger.info(
            "Resolving correspondences | sources={s} targets={t}",
            s=len(source_fields),
            t=len(target_fields),
        )

        suggestions = lexical_suggestions(source_fields, target_fields)
        logger.info("Lexical tier produced {n} suggestions", n=len(suggestions))

        if not suggestions and self._generator is not None:
            suggestions = assisted_suggestions(self._generator, source_fields, target_fields)
            logger.info("AI-assisted tier produced {n} suggestions", n=len(suggestions))

        if self._embedder is not None:
            suggestions = embedding_gap_fill(
                self._embedder, suggestions, source_fields, target_fields
            )

        if not suggestions:
            suggestions = lexical_suggestions(source_fields, target_fields)

        logger.info(
            "Resolution complete | suggestions={n} uncovered_targets={u}",
            n=len(suggestions),
            u=len({t.path for t in target_fields} - {s.target_path for s in suggestions}),
        )
        return suggestions
