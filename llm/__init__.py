"""LLM integration module"""

from .client import LLMClient
from .prompts import JSONTask, InvestigationPrompt

__all__ = [
    "LLMClient",
    "JSONTask",
    "InvestigationPrompt",
]
