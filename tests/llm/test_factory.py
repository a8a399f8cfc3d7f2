from dataclasses import replace

import pytest

from llm import get_command_generator
from llm.providers.openai import OpenAIProvider


class TestGetCommandGenerator:
    """Tests for choosing a command generator from configuration."""

    def test_disabled(self, test_config):
        assert get_command_generator(test_config) is None

    def test_openai(self, test_config):
        config = replace(test_config, llm_enabled=True, llm_openai_api_key="sk-test", llm_openai_model="gpt-4o")

        generator = get_command_generator(config)

        assert isinstance(generator, OpenAIProvider)
        assert generator.model == "gpt-4o"
        assert len(generator.tools) == 12

    def test_openai_without_key(self, test_config):
        config = replace(test_config, llm_enabled=True)

        with pytest.raises(ValueError, match="openai_api_key"):
            get_command_generator(config)

    def test_no_provider(self, test_config):
        config = replace(test_config, llm_enabled=True, llm_provider="")

        assert get_command_generator(config) is None

    def test_unknown_provider(self, test_config):
        config = replace(test_config, llm_enabled=True, llm_provider="carrier-pigeon")

        with pytest.raises(ValueError, match="Unknown LLM provider"):
            get_command_generator(config)
