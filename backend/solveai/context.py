"""
Builds the context materials and folder info for a solve request.
"""
import logging
from dataclasses import dataclass, field
from typing import Optional

from .database import CatalogStore
from .errors import InvalidPayloadError
from .models import ContextFile, FolderInfo
from .solver import Solver
from .utils import decode_inline_payload, is_extractable_type, is_text_type

logger = logging.getLogger(__name__)


def tag_material(name: str, text: str) -> str:
    return f"[{name}]\n{text}"


def placeholder_material(name: str) -> str:
    return f"[{name}] - Arquivo de contexto"


@dataclass
class AssembledContext:
    context_materials: list[str] = field(default_factory=list)
    folder_info: Optional[FolderInfo] = None


class ContextAssembler:
    """Turns a catalog folder into solver context."""

    def __init__(self, catalog: CatalogStore, solver: Solver):
        self.catalog = catalog
        self.solver = solver

    async def assemble(self, folder_id: Optional[str]) -> AssembledContext:
        """
        Build context for the selected folder.

        Files are emitted in enumeration order. A file whose text cannot be
        extracted is represented by a placeholder label and the rest of the
        folder is still assembled.
        """
        assembled = AssembledContext()
        if not folder_id:
            return assembled

        folder = await self.catalog.get_folder_by_id(folder_id)
        if folder is None:
            logger.warning("Selected folder %s does not exist", folder_id)
            return assembled

        assembled.folder_info = FolderInfo(
            name=folder.name,
            book_reference=folder.book_reference or None,
            notes=folder.notes or None,
        )

        for context_file in await self.catalog.get_files_by_folder(folder_id):
            assembled.context_materials.append(await self._material_for(context_file))

        return assembled

    async def _material_for(self, context_file: ContextFile) -> str:
        if context_file.extracted_text:
            return tag_material(context_file.name, context_file.extracted_text)

        if is_extractable_type(context_file.type):
            try:
                text = await self.solver.extract_text_from_image(context_file.data, context_file.type)
            except Exception as e:
                logger.warning("Could not extract text from %s: %s", context_file.name, e)
                return placeholder_material(context_file.name)

            if text:
                try:
                    await self.catalog.set_extracted_text(context_file.id, text)
                except Exception as e:
                    logger.warning("Could not cache extracted text of %s: %s", context_file.name, e)
            return tag_material(context_file.name, text)

        if is_text_type(context_file.type):
            try:
                content, _ = decode_inline_payload(context_file.data)
                return tag_material(context_file.name, content.decode("utf-8"))
            except (InvalidPayloadError, UnicodeDecodeError) as e:
                logger.warning("Could not read text file %s: %s", context_file.name, e)

        return placeholder_material(context_file.name)
