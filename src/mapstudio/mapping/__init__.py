"""Correspondence resolution between source fields and target fields.

Three tiers (lexical, AI-assisted, embedding gap fill) orchestrated by the
resolver, plus structural validation and export rendering.
"""

from mapstudio.mapping.resolver import CorrespondenceResolver
from mapstudio.mapping.validation import build_validation_report

__all__ = ["CorrespondenceResolver", "build_validation_report"]
