"""
Local catalog of context folders and their files, stored in ChromaDB.

Two collections are used: "folders" and "files". Record fields live in the
collection metadata, the inline file payload lives in the document slot, and
files are looked up by their "folder_id" metadata key.
"""
import asyncio
import logging
import threading
import uuid
from datetime import datetime, timezone
from typing import Optional

import chromadb
from fastapi.concurrency import run_in_threadpool

from .config import CATALOG_PATH
from .errors import ContextFileNotFoundError, FolderNotFoundError, ValidationError
from .models import ContextFile, Folder, FolderPatch
from .utils import format_file_size

logger = logging.getLogger(__name__)

FOLDERS_COLLECTION = "folders"
FILES_COLLECTION = "files"

# Records are looked up by id and metadata only, never by similarity, so every
# record shares one fixed vector and no embedding function is configured.
PLACEHOLDER_EMBEDDING = [1.0]


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _clean_metadata(metadata: dict) -> dict:
    # ChromaDB rejects None metadata values
    return {key: value for key, value in metadata.items() if value is not None}


def _folder_from_record(record_id: str, metadata: dict) -> Folder:
    return Folder(
        id=record_id,
        name=metadata["name"],
        book_reference=metadata.get("book_reference"),
        notes=metadata.get("notes"),
        created_at=metadata["created_at"],
    )


def _file_from_record(record_id: str, metadata: dict, document: str) -> ContextFile:
    return ContextFile(
        id=record_id,
        folder_id=metadata["folder_id"],
        name=metadata["name"],
        type=metadata.get("type", ""),
        size=metadata.get("size", 0),
        data=document or "",
        extracted_text=metadata.get("extracted_text"),
        created_at=metadata["created_at"],
    )


class CatalogStore:
    """Folder/file catalog wrapper for ChromaDB."""

    def __init__(self, client):
        self.client = client
        self.folders = client.get_or_create_collection(
            name=FOLDERS_COLLECTION,
            embedding_function=None,
        )
        self.files = client.get_or_create_collection(
            name=FILES_COLLECTION,
            embedding_function=None,
        )
        self._write_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Folders
    # ------------------------------------------------------------------

    async def create_folder(self, name: str) -> Folder:
        """
        Create a new, empty folder.

        Args:
            name: Display name; must not be blank

        Returns:
            The stored folder
        """
        name = (name or "").strip()
        if not name:
            raise ValidationError("O nome da pasta é obrigatório")

        folder_id = str(uuid.uuid4())
        metadata = {"name": name, "created_at": _now()}

        def add_folder():
            with self._write_lock:
                self.folders.add(
                    ids=[folder_id],
                    embeddings=[PLACEHOLDER_EMBEDDING],
                    documents=[name],
                    metadatas=[metadata],
                )

        await run_in_threadpool(add_folder)
        logger.info("Created folder %s (%s)", folder_id, name)
        return _folder_from_record(folder_id, metadata)

    async def get_all_folders(self) -> list[Folder]:
        results = await run_in_threadpool(self.folders.get, include=["metadatas"])
        folders = [
            _folder_from_record(record_id, metadata)
            for record_id, metadata in zip(results["ids"], results["metadatas"])
        ]
        folders.sort(key=lambda folder: folder.created_at)
        return folders

    async def get_folder_by_id(self, folder_id: str) -> Optional[Folder]:
        """Return the folder, or None when no folder has this id."""
        results = await run_in_threadpool(self.folders.get, ids=[folder_id], include=["metadatas"])
        if not results["ids"]:
            return None
        return _folder_from_record(results["ids"][0], results["metadatas"][0])

    async def update_folder(self, folder_id: str, patch: FolderPatch) -> Folder:
        """
        Merge the set fields of a patch into an existing folder.

        Raises:
            FolderNotFoundError: if the folder does not exist
        """
        changes = patch.changes()

        def merge():
            with self._write_lock:
                results = self.folders.get(ids=[folder_id], include=["metadatas"])
                if not results["ids"]:
                    raise FolderNotFoundError(folder_id)
                merged = dict(results["metadatas"][0])
                merged.update(changes)
                self.folders.update(
                    ids=[folder_id],
                    embeddings=[PLACEHOLDER_EMBEDDING],
                    metadatas=[_clean_metadata(merged)],
                )
                return merged

        merged = await run_in_threadpool(merge)
        return _folder_from_record(folder_id, merged)

    async def delete_folder(self, folder_id: str) -> None:
        """Delete a folder after deleting every file it owns."""
        for context_file in await self.get_files_by_folder(folder_id):
            await self.delete_file(context_file.id)

        def delete():
            with self._write_lock:
                self.folders.delete(ids=[folder_id])

        await run_in_threadpool(delete)
        logger.info("Deleted folder %s", folder_id)

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    async def get_files_by_folder(self, folder_id: str) -> list[ContextFile]:
        results = await run_in_threadpool(
            self.files.get,
            where={"folder_id": folder_id},
            include=["metadatas", "documents"],
        )
        files = [
            _file_from_record(record_id, metadata, document)
            for record_id, metadata, document in zip(
                results["ids"], results["metadatas"], results["documents"]
            )
        ]
        files.sort(key=lambda context_file: context_file.created_at)
        return files

    async def get_file_by_id(self, file_id: str) -> Optional[ContextFile]:
        results = await run_in_threadpool(
            self.files.get,
            ids=[file_id],
            include=["metadatas", "documents"],
        )
        if not results["ids"]:
            return None
        return _file_from_record(results["ids"][0], results["metadatas"][0], results["documents"][0])

    async def add_file(
        self,
        folder_id: str,
        name: str,
        mime_type: str,
        size: int,
        data: str,
        extracted_text: Optional[str] = None,
    ) -> ContextFile:
        """
        Store a file in a folder.

        Args:
            folder_id: Owning folder
            name: Original filename
            mime_type: MIME type of the content
            size: Size of the original content in bytes
            data: Inline content as a base64 data URL
            extracted_text: Previously extracted text, if any

        Returns:
            The stored file record
        """
        if await self.get_folder_by_id(folder_id) is None:
            raise FolderNotFoundError(folder_id)

        file_id = str(uuid.uuid4())
        metadata = _clean_metadata({
            "folder_id": folder_id,
            "name": name,
            "type": mime_type or "",
            "size": int(size),
            "extracted_text": extracted_text,
            "created_at": _now(),
        })

        def add():
            with self._write_lock:
                self.files.add(
                    ids=[file_id],
                    embeddings=[PLACEHOLDER_EMBEDDING],
                    documents=[data],
                    metadatas=[metadata],
                )

        await run_in_threadpool(add)
        logger.info("Stored file %s in folder %s (%s)", name, folder_id, format_file_size(int(size)))
        return _file_from_record(file_id, metadata, data)

    async def set_extracted_text(self, file_id: str, text: str) -> ContextFile:
        """Cache the extracted text of a file; the only mutable file field."""

        def update():
            with self._write_lock:
                results = self.files.get(ids=[file_id], include=["metadatas", "documents"])
                if not results["ids"]:
                    raise ContextFileNotFoundError(file_id)
                metadata = dict(results["metadatas"][0])
                metadata["extracted_text"] = text
                self.files.update(
                    ids=[file_id],
                    embeddings=[PLACEHOLDER_EMBEDDING],
                    metadatas=[metadata],
                )
                return metadata, results["documents"][0]

        metadata, document = await run_in_threadpool(update)
        return _file_from_record(file_id, metadata, document)

    async def delete_file(self, file_id: str) -> None:
        """Delete a file; deleting a missing id is a no-op."""

        def delete():
            with self._write_lock:
                self.files.delete(ids=[file_id])

        await run_in_threadpool(delete)

    async def get_folder_file_count(self, folder_id: str) -> int:
        return len(await self.get_files_by_folder(folder_id))


# ---------------------------------------------------------------------------
# Shared handle
# ---------------------------------------------------------------------------

_catalog: Optional[CatalogStore] = None
_opening: Optional[asyncio.Task] = None


async def _open_catalog(path: str) -> CatalogStore:
    global _catalog
    client = await run_in_threadpool(chromadb.PersistentClient, path=path)
    _catalog = CatalogStore(client)
    logger.info("Opened catalog at %s", path)
    return _catalog


async def open_catalog(path: Optional[str] = None) -> CatalogStore:
    """
    Return the process-wide catalog, opening it on first use.

    Concurrent first callers all wait on the same opening task, so the
    underlying client is created once.
    """
    global _opening
    if _catalog is not None:
        return _catalog
    if _opening is None:
        _opening = asyncio.ensure_future(_open_catalog(path or CATALOG_PATH))
    try:
        return await asyncio.shield(_opening)
    except Exception:
        # Let the next caller retry
        _opening = None
        raise


def close_catalog() -> None:
    """Drop the shared catalog handle."""
    global _catalog, _opening
    _catalog = None
    _opening = None
