"""LLM Service for Sentinela.

OpenAI-compatible chat client used by the contextual risk analyzer.
"""
from .base_llm import (
    BaseLLM,
    LLMConfig,
    LLMProvider,
    LLMResponse,
    OpenAICompatibleLLM,
    create_llm,
)

__version__ = "0.1.0"

__all__ = [
    "BaseLLM",
    "LLMConfig",
    "LLMProvider",
    "LLMResponse",
    "OpenAICompatibleLLM",
    "create_llm",
]
