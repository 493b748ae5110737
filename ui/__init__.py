"""User interface components"""

from .progress import ProgressTracker, ConsoleProgress
from .prompts import UserPrompt, ConsolePrompt

__all__ = [
    "ProgressTracker",
    "ConsoleProgress",
    "UserPrompt",
    "ConsolePrompt",
]

