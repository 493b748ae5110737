"""Progress tracking"""

from abc import ABC, abstractmethod

from core.enums import AnalysisPhase


PHASE_LABELS = {
    AnalysisPhase.VALIDATING: "Validating data sources",
    AnalysisPhase.EXAMINING_EVIDENCE: "Examining the evidence",
    AnalysisPhase.RECOGNIZING_PATTERNS: "Recognizing patterns",
    AnalysisPhase.STATISTICAL_ANALYSIS: "Running statistical analysis",
    AnalysisPhase.CROSS_REFERENCING: "Cross-referencing findings",
    AnalysisPhase.RUNNING_ENGINE: "Running analysis engine",
    AnalysisPhase.FINALIZING: "Finalizing insights",
    AnalysisPhase.DONE: "Done",
}


class ProgressTracker(ABC):
    """Abstract progress tracker; methods may be sync or async"""

    @abstractmethod
    def start_phase(self, phase: AnalysisPhase, label: str):
        """Start a phase"""
        pass

    @abstractmethod
    def complete_phase(self, phase: AnalysisPhase):
        """Complete a phase"""
        pass

    @abstractmethod
    def update(self, percent: float):
        """Report overall progress (0-100)"""
        pass

    @abstractmethod
    def fail(self, phase: AnalysisPhase, message: str):
        """Mark phase as failed"""
        pass

    @abstractmethod
    def complete(self):
        """Mark analysis as complete"""
        pass


class ConsoleProgress(ProgressTracker):
    """Console-based progress tracker"""

    def __init__(self):
        self.completed = set()
        self.current = None
        self.percent = 0.0

    def start_phase(self, phase: AnalysisPhase, label: str):
        self.current = phase
        print(f"[◉] {label}...")

    def complete_phase(self, phase: AnalysisPhase):
        self.completed.add(phase)
        self.current = None
        print(f"[✓] {PHASE_LABELS.get(phase, phase.value)} ({self.percent:.0f}%)")

    def update(self, percent: float):
        self.percent = percent

    def fail(self, phase: AnalysisPhase, message: str):
        print(f"[✗] {PHASE_LABELS.get(phase, phase.value)} failed - {message}")

    def complete(self):
        print("\n[✓] Analysis complete!")
