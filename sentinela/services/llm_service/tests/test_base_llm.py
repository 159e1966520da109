"""Tests for the OpenAI-compatible LLM client."""
import pytest
from unittest.mock import AsyncMock, MagicMock

from sentinela.services.llm_service.base_llm import (
    DEEPSEEK_BASE_URL,
    LLMConfig,
    LLMProvider,
    OpenAICompatibleLLM,
    create_llm,
)


def completion(text, total_tokens=42):
    response = MagicMock()
    response.choices = [MagicMock()]
    response.choices[0].message.content = text
    response.usage.total_tokens = total_tokens
    return response


@pytest.fixture
def config():
    return LLMConfig(provider=LLMProvider.DEEPSEEK, model_name="deepseek-chat", api_key="sk-test")


@pytest.fixture
def client():
    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=completion('{"ok": true}'))
    return client


class TestLLMConfig:

    def test_defaults(self, config):
        assert config.temperature == 0.3
        assert config.max_tokens == 800

    def test_from_env_deepseek(self, monkeypatch):
        monkeypatch.delenv("LLM_PROVIDER", raising=False)
        monkeypatch.delenv("LLM_API_KEY", raising=False)
        monkeypatch.delenv("LLM_BASE_URL", raising=False)
        monkeypatch.setenv("DEEPSEEK_API_KEY", "sk-deepseek")

        config = LLMConfig.from_env()

        assert config.provider == LLMProvider.DEEPSEEK
        assert config.api_key == "sk-deepseek"
        assert config.base_url == DEEPSEEK_BASE_URL

    def test_from_env_openai(self, monkeypatch):
        monkeypatch.setenv("LLM_PROVIDER", "openai")
        monkeypatch.setenv("LLM_MODEL", "gpt-4o-mini")
        monkeypatch.setenv("LLM_API_KEY", "sk-openai")
        monkeypatch.delenv("LLM_BASE_URL", raising=False)

        config = LLMConfig.from_env()

        assert config.provider == LLMProvider.OPENAI
        assert config.model_name == "gpt-4o-mini"
        assert config.base_url is None


class TestOpenAICompatibleLLM:

    def test_api_key_required(self):
        with pytest.raises(ValueError):
            OpenAICompatibleLLM(LLMConfig(provider=LLMProvider.DEEPSEEK, model_name="deepseek-chat"))

    @pytest.mark.asyncio
    async def test_generate(self, config, client):
        llm = OpenAICompatibleLLM(config, client=client)

        response = await llm.generate("analiza esto", system_prompt="eres un psicólogo")

        assert response.text == '{"ok": true}'
        assert response.tokens_used == 42
        assert response.provider == "deepseek"
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "deepseek-chat"
        assert kwargs["temperature"] == 0.3
        assert kwargs["messages"][0] == {"role": "system", "content": "eres un psicólogo"}
        assert kwargs["messages"][1] == {"role": "user", "content": "analiza esto"}

    @pytest.mark.asyncio
    async def test_empty_prompt_rejected(self, config, client):
        llm = OpenAICompatibleLLM(config, client=client)

        with pytest.raises(ValueError):
            await llm.generate("   ")
        client.chat.completions.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_api_error_propagates(self, config, client):
        client.chat.completions.create.side_effect = RuntimeError("rate limited")
        llm = OpenAICompatibleLLM(config, client=client)

        with pytest.raises(RuntimeError):
            await llm.generate("hola")


class TestCreateLLM:

    def test_creates_client_for_deepseek(self, config):
        llm = create_llm(config)

        assert isinstance(llm, OpenAICompatibleLLM)
        assert llm.config.provider == LLMProvider.DEEPSEEK
