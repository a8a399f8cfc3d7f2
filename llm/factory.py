"""Factory for creating command generator instances."""

from typing import Optional
from config import Config
from llm.providers.base import CommandGenerator
from llm.providers.openai import OpenAIProvider
from logger import get_logger

logger = get_logger("llm")


def get_command_generator(config: Config) -> Optional[CommandGenerator]:
    """Create a command generator based on configuration.

    Args:
        config: Application configuration.

    Returns:
        CommandGenerator instance, or None if the assistant is disabled.

    Raises:
        ValueError: If provider is configured but settings are invalid.
    """
    if not config.llm_enabled:
        logger.info("Assistant is disabled")
        return None

    provider_name = config.llm_provider

    if provider_name == "openai":
        if not config.llm_openai_api_key:
            raise ValueError(
                "OpenAI provider selected but llm openai_api_key not configured"
            )

        model = config.llm_openai_model
        logger.info(f"Initializing OpenAI provider (model: {model or 'default'})")
        return OpenAIProvider(api_key=config.llm_openai_api_key, model=model)

    elif not provider_name:
        logger.info("No LLM provider configured")
        return None

    else:
        raise ValueError(f"Unknown LLM provider: {provider_name}")
