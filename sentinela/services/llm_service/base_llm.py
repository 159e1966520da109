"""Base LLM interface and implementations.

Provides the abstract base class and an OpenAI-compatible chat client.
DeepSeek exposes the same chat-completions API, so both providers share
one implementation and differ only in base URL and model.
"""

import logging
import os
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

import openai

logger = logging.getLogger(__name__)

DEEPSEEK_BASE_URL = "https://api.deepseek.com"


class LLMProvider(Enum):
    """Supported LLM providers."""
    OPENAI = "openai"
    DEEPSEEK = "deepseek"


@dataclass(frozen=True)
class LLMConfig:
    """Configuration for LLM inference."""
    provider: LLMProvider
    model_name: str
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    max_tokens: int = 800
    temperature: float = 0.3
    timeout_seconds: float = 25.0
    max_prompt_chars: int = 10000

    @classmethod
    def from_env(cls) -> "LLMConfig":
        """Build config from environment variables.

        Environment variables:
            LLM_PROVIDER: "deepseek" (default) or "openai"
            LLM_MODEL: Model name (default deepseek-chat)
            LLM_API_KEY: API key (DEEPSEEK_API_KEY also accepted)
            LLM_BASE_URL: Override the provider endpoint
        """
        provider = LLMProvider(os.getenv("LLM_PROVIDER", "deepseek").lower())
        default_base_url = DEEPSEEK_BASE_URL if provider == LLMProvider.DEEPSEEK else None
        return cls(
            provider=provider,
            model_name=os.getenv("LLM_MODEL", "deepseek-chat"),
            api_key=os.getenv("LLM_API_KEY") or os.getenv("DEEPSEEK_API_KEY"),
            base_url=os.getenv("LLM_BASE_URL", default_base_url),
        )


@dataclass
class LLMResponse:
    """Response from LLM inference."""
    text: str
    model: str
    provider: str
    tokens_used: Optional[int] = None
    latency_ms: Optional[float] = None
    metadata: Optional[Dict] = None


class BaseLLM(ABC):
    """Abstract base class for LLM implementations."""

    def __init__(self, config: LLMConfig):
        """Initialize LLM with configuration.

        Args:
            config: LLM configuration
        """
        self.config = config
        logger.info(
            "LLM_INITIALIZED",
            extra={
                "provider": config.provider.value,
                "model": config.model_name
            }
        )

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        **kwargs
    ) -> LLMResponse:
        """Generate response from LLM.

        Args:
            prompt: User prompt
            system_prompt: Optional system prompt for context
            **kwargs: Additional provider-specific parameters

        Returns:
            LLMResponse object

        Raises:
            ValueError: If prompt is invalid
        """
        pass

    def validate_prompt(self, prompt: str) -> bool:
        """Validate prompt before sending to LLM."""
        if not prompt or not prompt.strip():
            logger.warning("LLM_PROMPT_EMPTY")
            return False

        if len(prompt) > self.config.max_prompt_chars:
            logger.warning(
                "LLM_PROMPT_TOO_LONG",
                extra={"length": len(prompt)}
            )
            return False

        return True


class OpenAICompatibleLLM(BaseLLM):
    """Chat-completions client for OpenAI and DeepSeek."""

    def __init__(self, config: LLMConfig, client: Optional[openai.AsyncOpenAI] = None):
        """Initialize client.

        Args:
            config: LLM configuration with API key
            client: Preconfigured client (tests)
        """
        super().__init__(config)

        if client is None and not config.api_key:
            raise ValueError(f"{config.provider.value} API key required")

        self.client = client or openai.AsyncOpenAI(
            api_key=config.api_key,
            base_url=config.base_url,
            timeout=config.timeout_seconds,
            max_retries=0,
        )

    async def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        **kwargs
    ) -> LLMResponse:
        if not self.validate_prompt(prompt):
            raise ValueError("Invalid prompt")

        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        start_time = time.time()

        try:
            response = await self.client.chat.completions.create(
                model=self.config.model_name,
                messages=messages,
                max_tokens=kwargs.get("max_tokens", self.config.max_tokens),
                temperature=kwargs.get("temperature", self.config.temperature),
            )
        except Exception as e:
            logger.error(
                "LLM_GENERATION_FAILED",
                extra={
                    "provider": self.config.provider.value,
                    "model": self.config.model_name,
                    "error": str(e),
                    "error_type": type(e).__name__,
                }
            )
            raise

        latency_ms = (time.time() - start_time) * 1000
        generated_text = response.choices[0].message.content or ""
        tokens_used = response.usage.total_tokens if response.usage else None

        logger.info(
            "LLM_GENERATION_COMPLETED",
            extra={
                "provider": self.config.provider.value,
                "model": self.config.model_name,
                "latency_ms": latency_ms,
                "tokens_used": tokens_used
            }
        )

        return LLMResponse(
            text=generated_text,
            model=self.config.model_name,
            provider=self.config.provider.value,
            tokens_used=tokens_used,
            latency_ms=latency_ms
        )


def create_llm(config: LLMConfig) -> BaseLLM:
    """Factory function to create LLM instance.

    Raises:
        ValueError: If provider not supported
    """
    if config.provider in (LLMProvider.OPENAI, LLMProvider.DEEPSEEK):
        return OpenAICompatibleLLM(config)
    raise ValueError(f"Unsupported provider: {config.provider}")
