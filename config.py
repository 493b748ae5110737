"""Configuration and environment settings"""

from pydantic_settings import BaseSettings
from typing import Optional, List
from pathlib import Path


class Settings(BaseSettings):
    """Application configuration"""

    # Logging
    LOG_LEVEL: str = "INFO"

    # Output
    OUTPUT_DIR: str = "./output"

    # Parsing
    PARSER_SAMPLE_SIZE: int = 5
    PLACEHOLDER_ROWS: int = 100
    MAX_PREVIEW_ROWS: int = 5

    # Column classification
    CLASSIFIER_SAMPLE_SIZE: int = 5
    TYPE_CONSISTENCY_THRESHOLD: float = 0.8

    # Validation
    DUPLICATE_ROW_SAMPLE_SIZE: int = 1000

    # Analysis
    ANALYSIS_ENGINE: str = "heuristic"  # heuristic or llm
    ANALYSIS_PHASE_DELAY: float = 0.2  # seconds, UX pacing between cosmetic phases
    ENGINE_TIMEOUT: float = 60.0  # seconds
    ENGINE_MAX_RETRIES: int = 2
    ENGINE_RETRY_DELAY: float = 1.0  # seconds
    ANALYSIS_CACHE_SIZE: int = 50
    ANALYSIS_CACHE_TTL: float = 300.0  # seconds

    # Project flow
    INGESTION_PROGRESS_SHARE: int = 20  # percent of the combined scale

    # Connectors
    ALLOW_DEMO_CONNECTORS: bool = False

    # LLM Configuration
    ANTHROPIC_API_KEY: Optional[str] = None
    OPENAI_API_KEY: Optional[str] = None

    # LLM Provider Priority (comma-separated: anthropic,openai)
    LLM_PROVIDER_PRIORITY: str = "anthropic,openai"

    # LLM Model Selection
    ANTHROPIC_MODEL: str = "claude-sonnet-4-20250514"
    OPENAI_MODEL: str = "gpt-4o"

    # LLM Settings
    LLM_MAX_TOKENS: int = 4096
    LLM_MAX_RETRIES: int = 3
    LLM_RETRY_DELAY: float = 2.0  # seconds
    LLM_TIMEOUT: float = 60.0  # seconds

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"

    def get_llm_provider_priority(self) -> List[str]:
        """Get LLM provider priority list"""
        return [p.strip() for p in self.LLM_PROVIDER_PRIORITY.split(",") if p.strip()]

    def get_output_path(self, subdir: str = "") -> Path:
        """Get output directory path"""
        path = Path(self.OUTPUT_DIR) / subdir
        path.mkdir(parents=True, exist_ok=True)
        return path


settings = Settings()
