"""JSON file persistence for analysis projects"""

import asyncio
import logging
import re
import uuid
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from core.interfaces import ProjectStore
from core.models import ParsedTable, SavedProject
from core.exceptions import PersistenceError
from config import settings

logger = logging.getLogger(__name__)


PROJECT_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")


class JsonProjectStore(ProjectStore):
    """Stores each project as OUTPUT_DIR/projects/<id>.json"""

    def __init__(self, directory: Optional[Path] = None):
        self.directory = Path(directory) if directory else settings.get_output_path("projects")
        self.directory.mkdir(parents=True, exist_ok=True)

    async def save_analysis_project(
        self,
        project_name: str,
        research_question: str,
        business_context: str,
        tables: list[ParsedTable],
    ) -> SavedProject:
        """
        Persist a project

        Returns:
            SavedProject handle with its id and file path

        Raises:
            PersistenceError: If the file cannot be written
        """
        project_id = f"project-{uuid.uuid4().hex[:12]}"
        path = self._path_for(project_id)
        project = SavedProject(
            id=project_id,
            project_name=project_name,
            research_question=research_question,
            business_context=business_context,
            tables=list(tables),
            path=str(path),
        )

        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(
                None,
                lambda: path.write_text(project.model_dump_json(indent=2), encoding="utf-8")
            )
        except (OSError, ValueError) as e:
            raise PersistenceError(f"Failed to save project {project_name}: {e}") from e

        logger.info("Saved project %s to %s", project_id, path)
        return project

    async def load_analysis_project(self, project_id: str) -> SavedProject:
        """
        Load a saved project

        Raises:
            PersistenceError: Unknown id or unreadable file
        """
        path = self._path_for(project_id)
        if not path.exists():
            raise PersistenceError(f"Project not found: {project_id}")

        loop = asyncio.get_running_loop()
        try:
            raw = await loop.run_in_executor(None, lambda: path.read_text(encoding="utf-8"))
            return SavedProject.model_validate_json(raw)
        except (OSError, ValidationError) as e:
            raise PersistenceError(f"Failed to load project {project_id}: {e}") from e

    def list_projects(self) -> list[str]:
        return sorted(p.stem for p in self.directory.glob("*.json"))

    def _path_for(self, project_id: str) -> Path:
        if not PROJECT_ID_PATTERN.match(project_id):
            raise PersistenceError(f"Invalid project id: {project_id!r}")
        return self.directory / f"{project_id}.json"
