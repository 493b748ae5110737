"""Stage 3: Analysis - Phased, progress-reporting analysis run"""

import asyncio
import logging
from typing import Optional, Callable, Any

from core.interfaces import Stage, AnalysisEngine
from core.models import AnalysisContext, AnalysisResult, AnalysisRunState
from core.enums import AnalysisPhase
from core.exceptions import InvalidContextError, EngineError
from ui.progress import ProgressTracker, PHASE_LABELS
from utils.callbacks import notify
from config import settings
from .cache import AnalysisCache
from .engine import HeuristicAnalysisEngine

logger = logging.getLogger(__name__)


# Progress reached when each phase completes
PHASE_PLAN = [
    (AnalysisPhase.VALIDATING, 5),
    (AnalysisPhase.EXAMINING_EVIDENCE, 15),
    (AnalysisPhase.RECOGNIZING_PATTERNS, 30),
    (AnalysisPhase.STATISTICAL_ANALYSIS, 50),
    (AnalysisPhase.CROSS_REFERENCING, 70),
    (AnalysisPhase.RUNNING_ENGINE, 85),
    (AnalysisPhase.FINALIZING, 95),
    (AnalysisPhase.DONE, 100),
]

# Waypoints with no work of their own; they only pace the progress display
COSMETIC_PHASES = {
    AnalysisPhase.EXAMINING_EVIDENCE,
    AnalysisPhase.RECOGNIZING_PATTERNS,
    AnalysisPhase.STATISTICAL_ANALYSIS,
    AnalysisPhase.CROSS_REFERENCING,
    AnalysisPhase.FINALIZING,
}

ProgressCallback = Callable[[float], Any]


class AnalysisOrchestrator(Stage[AnalysisContext, AnalysisResult]):
    """
    Stage 3: Analysis

    Walks the analysis phases in order, reporting progress, and delegates
    the actual work to an AnalysisEngine during the running_engine phase.
    Only one run may be active at a time.
    """

    @property
    def name(self) -> str:
        return "Analysis"

    @property
    def stage_number(self) -> int:
        return 3

    def __init__(
        self,
        engine: Optional[AnalysisEngine] = None,
        progress: Optional[ProgressTracker] = None,
        cache: Optional[AnalysisCache] = None,
        phase_delay: Optional[float] = None,
        engine_timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        retry_delay: Optional[float] = None
    ):
        self.engine = engine or HeuristicAnalysisEngine()
        self.progress = progress
        self.cache = cache
        self.phase_delay = settings.ANALYSIS_PHASE_DELAY if phase_delay is None else phase_delay
        self.engine_timeout = settings.ENGINE_TIMEOUT if engine_timeout is None else engine_timeout
        self.max_retries = settings.ENGINE_MAX_RETRIES if max_retries is None else max_retries
        self.retry_delay = settings.ENGINE_RETRY_DELAY if retry_delay is None else retry_delay

        self.state = AnalysisRunState()
        self._active = False

    @property
    def is_running(self) -> bool:
        return self._active

    def validate_input(self, input_data: AnalysisContext) -> bool:
        return (
            isinstance(input_data, AnalysisContext)
            and bool(input_data.research_question.strip())
            and bool(input_data.parsed_tables)
        )

    async def execute(self, input_data: AnalysisContext) -> AnalysisResult:
        """Execute analysis stage"""
        return await self.run(input_data)

    async def run(
        self,
        context: AnalysisContext,
        on_progress: Optional[ProgressCallback] = None
    ) -> Optional[AnalysisResult]:
        """
        Run every phase and return the engine's result.

        Returns None without side effects when another run is active.

        Raises:
            InvalidContextError: Blank question or no tables (before any phase)
            EngineError: The engine failed, timed out or returned an invalid payload
        """
        if self._active:
            logger.info("Analysis already running, ignoring duplicate run request")
            return None

        self._check_context(context)
        self._active = True
        self.state = AnalysisRunState()
        phase = AnalysisPhase.VALIDATING
        result = None

        try:
            for phase, target in PHASE_PLAN:
                self.state.phase = phase
                await notify(
                    self.progress.start_phase if self.progress else None,
                    phase, PHASE_LABELS[phase]
                )

                if phase == AnalysisPhase.VALIDATING:
                    self._check_context(context)
                elif phase == AnalysisPhase.RUNNING_ENGINE:
                    result = await self._run_engine(context)
                elif phase in COSMETIC_PHASES and self.phase_delay > 0:
                    await asyncio.sleep(self.phase_delay)

                await self._advance(phase, target, on_progress)

            self.state.result = result
            self.state.completed = True
            await notify(self.progress.complete if self.progress else None)
            logger.info("Analysis complete: confidence %s", result.confidence)
            return result

        except Exception as e:
            logger.warning("Analysis failed during %s: %s", phase.value, e)
            self.state = AnalysisRunState(phase=phase, progress_percent=0, error=str(e))
            await notify(self.progress.fail if self.progress else None, phase, str(e))
            raise

        finally:
            self._active = False

    def reset(self):
        """Forget the last run's state; an in-flight run keeps going"""
        self.state = AnalysisRunState()

    def _check_context(self, context: AnalysisContext):
        if not context.research_question or not context.research_question.strip():
            raise InvalidContextError("Research question is required")
        if not context.parsed_tables:
            raise InvalidContextError("At least one parsed table is required")

    async def _advance(
        self,
        phase: AnalysisPhase,
        target: float,
        on_progress: Optional[ProgressCallback]
    ):
        self.state.progress_percent = max(self.state.progress_percent, target)
        percent = self.state.progress_percent
        await notify(on_progress, percent)
        if self.progress:
            await notify(self.progress.update, percent)
            await notify(self.progress.complete_phase, phase)

    async def _run_engine(self, context: AnalysisContext) -> AnalysisResult:
        if self.cache is not None:
            cached = self.cache.get(context)
            if cached is not None:
                logger.info("Using cached analysis result")
                return cached

        attempts = self.max_retries + 1
        last_error: Optional[Exception] = None

        for attempt in range(1, attempts + 1):
            try:
                raw = await asyncio.wait_for(
                    self.engine.analyze(context),
                    timeout=self.engine_timeout
                )
                result = raw if isinstance(raw, AnalysisResult) else AnalysisResult.model_validate(raw)
                if self.cache is not None:
                    self.cache.put(context, result)
                return result
            except asyncio.TimeoutError:
                last_error = EngineError(
                    f"Analysis engine timed out after {self.engine_timeout}s",
                    attempts=attempt
                )
            except Exception as e:
                last_error = e

            logger.warning(
                "Analysis engine attempt %d/%d failed: %s",
                attempt, attempts, last_error
            )
            if attempt < attempts and self.retry_delay > 0:
                await asyncio.sleep(self.retry_delay * (2 ** (attempt - 1)))

        raise EngineError(
            f"Analysis engine failed after {attempts} attempt(s): {last_error}",
            attempts=attempts
        ) from last_error
