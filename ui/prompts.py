"""User interaction prompts"""

from abc import ABC, abstractmethod
from typing import Optional

from core.models import ColumnClassification, ColumnMapping


class UserPrompt(ABC):
    """Abstract user prompt interface"""

    @abstractmethod
    async def yes_no(self, question: str) -> bool:
        """Ask yes/no question"""
        pass

    @abstractmethod
    async def confirm_column_mapping(
        self,
        classification: ColumnClassification,
        default: ColumnMapping
    ) -> ColumnMapping:
        """Let the user accept or edit the default column mapping"""
        pass


class ConsolePrompt(UserPrompt):
    """Console-based user prompts"""

    async def yes_no(self, question: str) -> bool:
        """Ask yes/no question"""
        while True:
            response = input(f"{question} (Y/N): ").strip().upper()
            if response in ['Y', 'YES']:
                return True
            elif response in ['N', 'NO']:
                return False
            else:
                print("Please enter Y or N")

    async def confirm_column_mapping(
        self,
        classification: ColumnClassification,
        default: ColumnMapping
    ) -> ColumnMapping:
        print("\nSuggested column mapping:")
        print(f"  User ID:    {default.user_id_column or '-'}")
        print(f"  Timestamp:  {default.timestamp_column or '-'}")
        print(f"  Event:      {default.event_column or '-'}")
        print(f"  Values:     {', '.join(default.value_columns) or '-'}")
        print(f"  Categories: {', '.join(default.category_columns) or '-'}")

        if await self.yes_no("Use this mapping?"):
            return default

        return ColumnMapping(
            user_id_column=self._ask_single("User ID column", default.user_id_column),
            timestamp_column=self._ask_single("Timestamp column", default.timestamp_column),
            event_column=self._ask_single("Event column", default.event_column),
            value_columns=self._ask_many("Value columns", default.value_columns),
            category_columns=self._ask_many("Category columns", default.category_columns),
        )

    def _ask_single(self, label: str, current: Optional[str]) -> Optional[str]:
        response = input(f"{label} [{current or '-'}] ('-' for none): ").strip()
        if not response:
            return current
        return None if response == "-" else response

    def _ask_many(self, label: str, current: list[str]) -> list[str]:
        response = input(f"{label} [{', '.join(current) or '-'}] (comma-separated, '-' for none): ").strip()
        if not response:
            return current
        if response == "-":
            return []
        return [name.strip() for name in response.split(",") if name.strip()]
