import asyncio

import pytest

from stages.s0_reception import Receiver
from stages.s3_analysis import AnalysisOrchestrator, AnalysisCache, PHASE_PLAN
from core.interfaces import AnalysisEngine
from core.models import AnalysisContext, AnalysisResult, RawSource
from core.enums import AnalysisPhase
from core.exceptions import InvalidContextError, EngineError
from ui.progress import ProgressTracker


class StubEngine(AnalysisEngine):
    def __init__(self, result=None, failures: int = 0, delay: float = 0.0):
        self.result = result or AnalysisResult(insights="stub", confidence="high", recommendations=["r"])
        self.failures = failures
        self.delay = delay
        self.calls = 0

    async def analyze(self, context):
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.calls <= self.failures:
            raise RuntimeError(f"engine failure {self.calls}")
        return self.result


class RecordingTracker(ProgressTracker):
    def __init__(self):
        self.events = []

    def start_phase(self, phase, label):
        self.events.append(("start", phase))

    async def complete_phase(self, phase):
        self.events.append(("complete", phase))

    def update(self, percent):
        self.events.append(("update", percent))

    def fail(self, phase, message):
        self.events.append(("fail", phase))

    def complete(self):
        self.events.append(("done", None))


def _context(question: str = "How many rows are there?") -> AnalysisContext:
    table = Receiver().parse(RawSource(name="d.csv", content=b"name,age\nJohn,25\nJane,30"))
    return AnalysisContext(research_question=question, parsed_tables=[table])


def _orchestrator(engine=None, **kwargs) -> AnalysisOrchestrator:
    kwargs.setdefault("phase_delay", 0)
    kwargs.setdefault("retry_delay", 0)
    kwargs.setdefault("max_retries", 0)
    return AnalysisOrchestrator(engine=engine or StubEngine(), **kwargs)


@pytest.mark.asyncio
async def test_successful_run_reports_monotonic_progress_ending_at_100():
    engine = StubEngine()
    orchestrator = _orchestrator(engine)
    progress = []

    result = await orchestrator.run(_context(), on_progress=progress.append)

    assert result == engine.result
    assert progress == [target for _, target in PHASE_PLAN]
    assert progress == sorted(progress)
    assert progress[-1] == 100
    assert orchestrator.state.completed
    assert orchestrator.state.phase == AnalysisPhase.DONE
    assert orchestrator.state.result == result
    assert engine.calls == 1


@pytest.mark.asyncio
async def test_async_progress_callback_is_awaited():
    received = []

    async def on_progress(percent):
        await asyncio.sleep(0)
        received.append(percent)

    await _orchestrator().run(_context(), on_progress=on_progress)

    assert received[-1] == 100


@pytest.mark.asyncio
async def test_tracker_sees_phases_in_order():
    tracker = RecordingTracker()

    await _orchestrator(progress=tracker).run(_context())

    started = [phase for kind, phase in tracker.events if kind == "start"]
    assert started == [phase for phase, _ in PHASE_PLAN]
    assert tracker.events[-1] == ("done", None)


@pytest.mark.asyncio
@pytest.mark.parametrize("question", ["", "   "])
async def test_blank_question_fails_before_any_phase(question):
    tracker = RecordingTracker()
    engine = StubEngine()
    orchestrator = _orchestrator(engine, progress=tracker)
    progress = []

    with pytest.raises(InvalidContextError):
        await orchestrator.run(_context(question), on_progress=progress.append)

    assert progress == []
    assert tracker.events == []
    assert engine.calls == 0
    assert not orchestrator.is_running


@pytest.mark.asyncio
async def test_no_tables_fails_fast():
    with pytest.raises(InvalidContextError):
        await _orchestrator().run(AnalysisContext(research_question="Why?"))


@pytest.mark.asyncio
async def test_second_run_while_active_is_ignored():
    engine = StubEngine(delay=0.05)
    orchestrator = _orchestrator(engine)
    first_progress, second_progress = [], []

    first, second = await asyncio.gather(
        orchestrator.run(_context(), on_progress=first_progress.append),
        orchestrator.run(_context(), on_progress=second_progress.append),
    )

    assert first == engine.result
    assert second is None
    assert second_progress == []
    assert first_progress[-1] == 100
    assert engine.calls == 1


@pytest.mark.asyncio
async def test_invalid_run_while_active_is_ignored():
    engine = StubEngine(delay=0.05)
    orchestrator = _orchestrator(engine)

    first, second = await asyncio.gather(
        orchestrator.run(_context()),
        orchestrator.run(_context("  ")),
    )

    assert first == engine.result
    assert second is None
    assert engine.calls == 1


@pytest.mark.asyncio
async def test_engine_failure_wraps_and_resets_progress():
    tracker = RecordingTracker()
    orchestrator = _orchestrator(StubEngine(failures=5), progress=tracker)

    with pytest.raises(EngineError) as exc_info:
        await orchestrator.run(_context())

    assert "engine failure" in str(exc_info.value)
    assert exc_info.value.attempts == 1
    assert orchestrator.state.progress_percent == 0
    assert not orchestrator.state.completed
    assert orchestrator.state.result is None
    assert orchestrator.state.error
    assert orchestrator.state.phase == AnalysisPhase.RUNNING_ENGINE
    assert ("fail", AnalysisPhase.RUNNING_ENGINE) in tracker.events
    assert not orchestrator.is_running


@pytest.mark.asyncio
async def test_engine_is_retried_until_success():
    engine = StubEngine(failures=2)
    orchestrator = _orchestrator(engine, max_retries=2)

    result = await orchestrator.run(_context())

    assert result == engine.result
    assert engine.calls == 3


@pytest.mark.asyncio
async def test_retries_exhausted():
    engine = StubEngine(failures=10)
    orchestrator = _orchestrator(engine, max_retries=2)

    with pytest.raises(EngineError) as exc_info:
        await orchestrator.run(_context())

    assert exc_info.value.attempts == 3
    assert engine.calls == 3


@pytest.mark.asyncio
async def test_engine_timeout_is_an_engine_error():
    orchestrator = _orchestrator(StubEngine(delay=1.0), engine_timeout=0.01)

    with pytest.raises(EngineError) as exc_info:
        await orchestrator.run(_context())

    assert "timed out" in str(exc_info.value)


@pytest.mark.asyncio
async def test_dict_payload_is_validated():
    class DictEngine(AnalysisEngine):
        async def analyze(self, context):
            return {"insights": "from dict", "confidence": "low", "recommendations": [], "results": []}

    result = await _orchestrator(DictEngine()).run(_context())

    assert isinstance(result, AnalysisResult)
    assert result.insights == "from dict"


@pytest.mark.asyncio
async def test_invalid_payload_is_an_engine_error():
    class BadEngine(AnalysisEngine):
        async def analyze(self, context):
            return {"confidence": "high"}

    with pytest.raises(EngineError):
        await _orchestrator(BadEngine()).run(_context())


@pytest.mark.asyncio
async def test_new_run_allowed_after_failure():
    engine = StubEngine(failures=1)
    orchestrator = _orchestrator(engine)

    with pytest.raises(EngineError):
        await orchestrator.run(_context())
    result = await orchestrator.run(_context())

    assert result == engine.result


@pytest.mark.asyncio
async def test_cache_hit_skips_engine_but_walks_phases():
    engine = StubEngine()
    cache = AnalysisCache(max_size=5, ttl_seconds=60)
    orchestrator = _orchestrator(engine, cache=cache)

    await orchestrator.run(_context())
    progress = []
    result = await orchestrator.run(_context(), on_progress=progress.append)

    assert result == engine.result
    assert engine.calls == 1
    assert progress[-1] == 100
    assert cache.stats["hits"] == 1


@pytest.mark.asyncio
async def test_cache_separates_same_shaped_tables_with_different_values():
    engine = StubEngine()
    cache = AnalysisCache(max_size=5, ttl_seconds=60)
    orchestrator = _orchestrator(engine, cache=cache)
    receiver = Receiver()
    low = receiver.parse(RawSource(name="d.csv", content=b"revenue\n100\n200"))
    high = receiver.parse(RawSource(name="d.csv", content=b"revenue\n900\n800"))

    await orchestrator.run(AnalysisContext(research_question="Average revenue?", parsed_tables=[low]))
    await orchestrator.run(AnalysisContext(research_question="Average revenue?", parsed_tables=[high]))

    assert engine.calls == 2
    assert cache.stats["hits"] == 0
    assert len(cache) == 2


@pytest.mark.asyncio
async def test_reset_clears_state():
    orchestrator = _orchestrator()
    await orchestrator.run(_context())

    orchestrator.reset()

    assert orchestrator.state.result is None
    assert orchestrator.state.progress_percent == 0


def test_cache_evicts_least_recently_used():
    cache = AnalysisCache(max_size=2, ttl_seconds=60)
    result = AnalysisResult(insights="x")
    a, b, c = _context("question a"), _context("question b"), _context("question c")

    cache.put(a, result)
    cache.put(b, result)
    assert cache.get(a) is result
    cache.put(c, result)

    assert cache.get(b) is None
    assert cache.get(a) is result
    assert len(cache) == 2


def test_cache_entries_expire():
    cache = AnalysisCache(max_size=2, ttl_seconds=-1)
    cache.put(_context(), AnalysisResult(insights="x"))

    assert cache.get(_context()) is None
    assert cache.stats["misses"] == 1


def test_cache_key_depends_on_mode_and_question():
    base = _context()
    educational = base.model_copy(update={"educational_mode": True})

    assert AnalysisCache.make_key(base) == AnalysisCache.make_key(_context())
    assert AnalysisCache.make_key(base) != AnalysisCache.make_key(educational)
    assert AnalysisCache.make_key(base) != AnalysisCache.make_key(_context("Other?"))
