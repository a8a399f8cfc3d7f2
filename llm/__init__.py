"""LLM integration: turns chat messages into category and payee commands."""

from llm.factory import get_command_generator

__all__ = ["get_command_generator"]
