from types import SimpleNamespace

import pytest

from llm.factory import get_llm_provider
from llm.providers.openai import DEFAULT_MODEL, OpenAIProvider


class TestGetLLMProvider:
    """Tests for get_llm_provider."""

    def test_disabled(self, test_config):
        assert get_llm_provider(test_config) is None

    def test_openai(self, test_config):
        test_config.llm_enabled = True
        test_config.llm_openai_api_key = "sk-test"

        provider = get_llm_provider(test_config)

        assert isinstance(provider, OpenAIProvider)
        assert provider.model == "gpt-4o-mini"
        assert provider.is_ready is True

    def test_local_server_without_key(self, test_config):
        test_config.llm_enabled = True
        test_config.llm_openai_base_url = "http://localhost:8080/v1"

        provider = get_llm_provider(test_config)

        assert isinstance(provider, OpenAIProvider)

    def test_missing_key(self, test_config):
        test_config.llm_enabled = True

        with pytest.raises(ValueError, match="openai_api_key"):
            get_llm_provider(test_config)

    def test_no_provider(self, test_config):
        test_config.llm_enabled = True
        test_config.llm_provider = ""

        assert get_llm_provider(test_config) is None

    def test_unknown_provider(self, test_config):
        test_config.llm_enabled = True
        test_config.llm_provider = "mystery"

        with pytest.raises(ValueError, match="Unknown LLM provider"):
            get_llm_provider(test_config)


def _chunk(content):
    return SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=content))])


class TestOpenAIProvider:
    """Tests for OpenAIProvider.generate against a stubbed client."""

    def _provider(self, create):
        provider = OpenAIProvider(api_key="sk-test")
        provider.client = SimpleNamespace(
            chat=SimpleNamespace(completions=SimpleNamespace(create=create))
        )
        return provider

    def test_joins_streamed_deltas(self):
        calls = []

        def create(**kwargs):
            calls.append(kwargs)
            return iter([_chunk('{"amount"'), SimpleNamespace(choices=[]), _chunk(None), _chunk(": 15}")])

        provider = self._provider(create)
        text = provider.generate([{"role": "user", "content": "lunch 15"}])

        assert text == '{"amount": 15}'
        assert calls[0]["stream"] is True
        assert calls[0]["model"] == DEFAULT_MODEL
        assert calls[0]["messages"] == [{"role": "user", "content": "lunch 15"}]

    def test_reraises_api_errors(self):
        def create(**kwargs):
            raise ConnectionError("refused")

        with pytest.raises(ConnectionError):
            self._provider(create).generate([{"role": "user", "content": "x"}])
