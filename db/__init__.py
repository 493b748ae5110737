"""Project persistence"""

from .project_store import JsonProjectStore

__all__ = [
    "JsonProjectStore",
]
