"""Staged (agent-based) validation and the LLM/web capabilities it escalates to."""

from .base import NotFoundExplainer, QueryVariantGenerator, WebSearcher, apply_variant
from .explanation import OllamaExplainer, fallback_explanation
from .pipeline import Stage, StagedValidator
from .query_enhancement import OllamaQueryEnhancer
from .web_search import PerplexityWebSearcher

__all__ = [
    "NotFoundExplainer",
    "OllamaExplainer",
    "OllamaQueryEnhancer",
    "PerplexityWebSearcher",
    "QueryVariantGenerator",
    "Stage",
    "StagedValidator",
    "WebSearcher",
    "apply_variant",
    "fallback_explanation",
]
