"""Stage 3: Analysis"""

from .cache import AnalysisCache
from .engine import HeuristicAnalysisEngine, build_engine
from .llm_engine import LLMAnalysisEngine
from .orchestrator import AnalysisOrchestrator, PHASE_PLAN

__all__ = [
    "AnalysisCache",
    "HeuristicAnalysisEngine",
    "LLMAnalysisEngine",
    "AnalysisOrchestrator",
    "PHASE_PLAN",
    "build_engine",
]
