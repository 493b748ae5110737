"""Stage 1: Column Classification"""

from .classifier import Classifier

__all__ = ["Classifier"]
