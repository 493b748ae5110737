"""Abstract base classes for Data Detective components"""

from abc import ABC, abstractmethod
from typing import Generic, TypeVar

InputT = TypeVar("InputT")
OutputT = TypeVar("OutputT")


class Stage(ABC, Generic[InputT, OutputT]):
    """Abstract base class for all pipeline stages"""

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable stage name"""
        pass

    @property
    @abstractmethod
    def stage_number(self) -> int:
        """Stage number (0-3)"""
        pass

    @abstractmethod
    async def execute(self, input_data: InputT) -> OutputT:
        """Execute the stage"""
        pass

    @abstractmethod
    def validate_input(self, input_data: InputT) -> bool:
        """Validate input before processing"""
        pass


class FileParser(ABC):
    """Abstract base class for format parsers"""

    @property
    @abstractmethod
    def supported_extensions(self) -> list[str]:
        """List of supported file extensions"""
        pass

    @abstractmethod
    def parse(self, source: "RawSource") -> "ParsedTable":
        """Parse a raw source into a ParsedTable"""
        pass


class AnalysisEngine(ABC):
    """External collaborator that turns an AnalysisContext into a result"""

    @abstractmethod
    async def analyze(self, context: "AnalysisContext") -> "AnalysisResult":
        """Run the analysis; any exception is wrapped by the orchestrator"""
        pass


class ConnectorPort(ABC):
    """Extension point for non-file data sources"""

    @property
    @abstractmethod
    def connector_types(self) -> list[str]:
        """Connector type names this port answers to"""
        pass

    @abstractmethod
    async def fetch(self, config: "ConnectionConfig") -> "ParsedTable":
        """Fetch a table for the given configuration"""
        pass


class ProjectStore(ABC):
    """Persistence collaborator for analysis projects"""

    @abstractmethod
    async def save_analysis_project(
        self,
        project_name: str,
        research_question: str,
        business_context: str,
        tables: list,
    ) -> "SavedProject":
        """Persist a project and return its handle"""
        pass

    @abstractmethod
    async def load_analysis_project(self, project_id: str) -> "SavedProject":
        """Load a previously saved project"""
        pass


class LLMTask(ABC):
    """Abstract base class for LLM-powered tasks"""

    @property
    @abstractmethod
    def prompt_template(self) -> str:
        """Prompt template for this task"""
        pass

    @abstractmethod
    def build_prompt(self, context: dict) -> str:
        """Build prompt from context"""
        pass

    @abstractmethod
    def parse_response(self, response: str) -> dict:
        """Parse LLM response into structured data"""
        pass
