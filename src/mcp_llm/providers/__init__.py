"""Provider implementations."""

from .base import ChatClient
from .bedrock import BedrockClient
from .models import ChatMessage, ChatResponse, ContentPart
from .ollama import OllamaClient
from .openai import OpenAIClient

__all__ = [
    "BedrockClient",
    "ChatClient",
    "ChatMessage",
    "ChatResponse",
    "ContentPart",
    "OllamaClient",
    "OpenAIClient",
]
