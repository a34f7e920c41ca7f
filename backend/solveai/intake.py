"""
Ad-hoc uploads attached to a single solve session.

Intake files are transcribed as soon as they are added and their text is
merged into the question, never into the folder context.
"""
import logging
import uuid
from dataclasses import dataclass
from typing import Optional

from .solver import Solver
from .utils import is_extractable_type, make_preview

logger = logging.getLogger(__name__)


@dataclass
class IntakeItem:
    id: str
    name: str
    mime_type: str
    data: bytes
    preview: Optional[str] = None
    extracted_text: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.data)


class UploadCollector:
    """Collects the question text sources of one compose-and-solve session."""

    def __init__(self, solver: Solver):
        self.solver = solver
        self._items: list[IntakeItem] = []

    @property
    def items(self) -> list[IntakeItem]:
        return list(self._items)

    async def add(self, name: str, mime_type: str, data: bytes) -> Optional[IntakeItem]:
        """
        Add an uploaded image or PDF and transcribe it.

        Other file types are skipped.

        Returns:
            The new item, or None if the file was skipped
        """
        if not is_extractable_type(mime_type):
            logger.info("Skipping intake file %s with unsupported type %s", name, mime_type)
            return None

        item = IntakeItem(
            id=str(uuid.uuid4()),
            name=name,
            mime_type=mime_type,
            data=data,
            preview=make_preview(data) if mime_type.startswith("image/") else None,
        )
        item.extracted_text = await self.solver.extract_text_from_image(data, mime_type)
        self._items.append(item)
        return item

    def remove(self, item_id: str) -> bool:
        before = len(self._items)
        self._items = [item for item in self._items if item.id != item_id]
        return len(self._items) < before

    def clear(self):
        self._items = []

    def compose_question(self, typed_text: Optional[str] = "") -> str:
        """Typed question text followed by each item's transcription, blank-line separated."""
        parts = [typed_text or ""]
        parts.extend(item.extracted_text or "" for item in self._items)
        return "\n\n".join(part.strip() for part in parts if part and part.strip())
