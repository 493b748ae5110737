"""Stage 2: Data Validation"""

from .validator import DataValidator

__all__ = ["DataValidator"]
