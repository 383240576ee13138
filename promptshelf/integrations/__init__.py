"""
PromptShelf Integrations

External generative-model services used by the prompt library.
"""

from promptshelf.integrations.base import GenerativeClient
from promptshelf.integrations.gemini import GeminiClient

__all__ = [
    "GenerativeClient",
    "GeminiClient",
]
