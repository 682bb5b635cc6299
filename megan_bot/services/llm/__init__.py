from megan_bot.services.llm.base import LLMProvider, LLMProviderError, LLMResponse
from megan_bot.services.llm.openai_provider import OpenAIProvider

__all__ = ["LLMProvider", "LLMProviderError", "LLMResponse", "OpenAIProvider"]
