"""Pipeline stages"""

from .s0_reception import Receiver
from .s1_classification import Classifier
from .s2_validation import DataValidator
from .s3_analysis import AnalysisOrchestrator, HeuristicAnalysisEngine, LLMAnalysisEngine

__all__ = [
    "Receiver",
    "Classifier",
    "DataValidator",
    "AnalysisOrchestrator",
    "HeuristicAnalysisEngine",
    "LLMAnalysisEngine",
]
