"""
Client file service.

WHAT: Business logic for client documents: upload, listing, retrieval, zip
bundles, labels and deletion.

WHY: Documents are stored in object storage with metadata in the database.
This service keeps the two in step and applies the ownership rule (a
client only ever sees its own files). Whether a client may read files at
all is decided earlier by the file-access gate.

HOW: Coordinates ClientFileDAO with a FileStorage backend. Storage keys are
laid out as ``clients/<client_id>/<category>/<year>/<uuid>_<name>``.
"""

import io
import logging
import mimetypes
import uuid
import zipfile
from typing import List, Optional, Sequence, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from caportal.core.config import settings
from caportal.core.exceptions import (
    AccessDeniedError,
    ClientFileNotFoundError,
    ClientNotFoundError,
    FileStorageError,
    FileUploadError,
    ValidationError,
)
from caportal.dao.client import ClientDAO
from caportal.dao.client_file import ClientFileDAO
from caportal.models.client_file import ClientFile, FileCategory
from caportal.models.user import User
from caportal.services.storage import FileStorage


logger = logging.getLogger(__name__)

# Preview types the browser can render inline
PREVIEW_TYPES = {
    ".pdf": "application/pdf",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".txt": "text/plain",
}


def sanitize_filename(filename: str) -> str:
    """
    Sanitize a filename for use in a storage key and a download header.

    Removes path separators, quotes and control characters and limits the
    length to 200 characters, keeping the extension.
    """
    filename = filename.replace("/", "_").replace("\\", "_").replace('"', "'")
    filename = "".join(ch for ch in filename if ch.isprintable()).strip()

    if len(filename) > 200:
        name, ext = filename.rsplit(".", 1) if "." in filename else (filename, "")
        filename = f"{name[:190]}.{ext}" if ext else name[:200]

    return filename or "file"


def preview_content_type(filename: str) -> str:
    """MIME type used for inline preview, guessed from the extension."""
    lower = filename.lower()
    for ext, content_type in PREVIEW_TYPES.items():
        if lower.endswith(ext):
            return content_type
    guessed, _ = mimetypes.guess_type(filename)
    return guessed or "application/octet-stream"


class FileService:
    """
    Service for client document operations.

    Example:
        service = FileService(db, storage)
        record = await service.upload(
            uploader=current_user,
            client_id=3,
            category=FileCategory.ITR,
            year="2024-25",
            original_file_name="form16.pdf",
            data=b"...",
        )
    """

    def __init__(self, session: AsyncSession, storage: FileStorage):
        self.session = session
        self.storage = storage
        self.file_dao = ClientFileDAO(session)
        self.client_dao = ClientDAO(session)

    @staticmethod
    def _storage_key(client_id: int, category: FileCategory, year: Optional[str], name: str) -> str:
        period = sanitize_filename(year) if year else "general"
        return f"clients/{client_id}/{category.value}/{period}/{uuid.uuid4().hex[:8]}_{name.replace(' ', '_')}"

    @staticmethod
    def ensure_owner(principal: User, file: ClientFile) -> None:
        """Raise AccessDeniedError if a CLIENT principal does not own the file."""
        if not principal.is_staff and file.client_id != principal.client_id:
            raise AccessDeniedError(message="Access denied", file_id=file.id)

    async def upload(
        self,
        uploader: User,
        client_id: int,
        category: FileCategory,
        original_file_name: str,
        data: bytes,
        year: Optional[str] = None,
        month: Optional[str] = None,
        doc_type: Optional[str] = None,
        file_name: Optional[str] = None,
        content_type: Optional[str] = None,
        tags: Optional[List[str]] = None,
    ) -> ClientFile:
        """
        Store a document for a client and record its metadata.

        GST uploads with a month get the month prefixed to the display name.
        If the metadata insert fails, the stored object is removed again.

        Raises:
            ValidationError: Year missing for a non USER_DOCS category
            FileUploadError: Empty or oversized file
            ClientNotFoundError: Unknown client
            FileStorageError: Storage rejected the object
        """
        if category is not FileCategory.USER_DOCS and not year:
            raise ValidationError(message="Year is required for this category", category=category.value)
        if not data:
            raise FileUploadError(message="No file uploaded")
        if len(data) > settings.max_upload_size_bytes:
            raise FileUploadError(
                message=f"File size exceeds maximum allowed ({settings.MAX_UPLOAD_SIZE_MB}MB)",
                file_size=len(data),
                max_size=settings.max_upload_size_bytes,
            )

        if await self.client_dao.get_by_id(client_id) is None:
            raise ClientNotFoundError(message=f"Client {client_id} not found", client_id=client_id)

        display_name = sanitize_filename(file_name or original_file_name)
        if category is FileCategory.GST and month:
            if not display_name.lower().startswith(month.lower()):
                display_name = f"{month} - {display_name}"

        key = self._storage_key(client_id, category, year, display_name)
        await self.storage.put(key, data, content_type)

        try:
            record = await self.file_dao.create(
                client_id=client_id,
                category=category,
                year=year,
                month=month,
                doc_type=doc_type,
                file_name=display_name,
                original_file_name=original_file_name,
                storage_key=key,
                file_size=len(data),
                content_type=content_type,
                uploaded_by=uploader.id,
                tags=list(tags or []),
            )
        except Exception:
            # Object would be orphaned without a row pointing at it
            try:
                await self.storage.delete(key)
            except FileStorageError:
                logger.error("Could not remove orphaned object %s", key)
            raise

        logger.info(
            "File %s uploaded for client %s by user %s (%d bytes)",
            display_name,
            client_id,
            uploader.id,
            len(data),
        )
        return record

    async def list_files(
        self,
        principal: User,
        client_id: int,
        year: Optional[str] = None,
        category: Optional[FileCategory] = None,
        search: Optional[str] = None,
        favorites_only: bool = False,
        include_archived: bool = False,
    ) -> List[ClientFile]:
        """
        List a client's files.

        Raises:
            AccessDeniedError: CLIENT principal listing another client's files
        """
        if not principal.is_staff and client_id != principal.client_id:
            raise AccessDeniedError(message="Access denied", client_id=client_id)

        return await self.file_dao.list_for_client(
            client_id,
            year=year,
            category=category,
            search=search,
            favorites_only=favorites_only,
            include_archived=include_archived,
        )

    async def get_file(self, principal: User, file_id: int) -> ClientFile:
        """
        Load a file record the principal is allowed to see.

        Raises:
            ClientFileNotFoundError: Unknown file
            AccessDeniedError: CLIENT principal not owning the file
        """
        record = await self.file_dao.get_by_id(file_id)
        if record is None:
            raise ClientFileNotFoundError(message=f"File {file_id} not found", file_id=file_id)
        self.ensure_owner(principal, record)
        return record

    async def read(self, record: ClientFile) -> bytes:
        """Fetch a file's bytes from storage."""
        return await self.storage.get(record.storage_key)

    async def build_zip(self, principal: User, file_ids: Sequence[int]) -> bytes:
        """
        Bundle several files into one zip archive.

        Every requested file must be visible to the principal. A file that
        cannot be read from storage is replaced by an ``ERROR_<name>.txt``
        entry so the rest of the bundle still downloads.

        Raises:
            ValidationError: No file ids given
            ClientFileNotFoundError: None of the ids exist
            AccessDeniedError: CLIENT principal asking for another client's file
        """
        if not file_ids:
            raise ValidationError(message="No files selected")

        records = await self.file_dao.get_many(file_ids)
        if not records:
            raise ClientFileNotFoundError(message="No files found")

        if not principal.is_staff and any(r.client_id != principal.client_id for r in records):
            raise AccessDeniedError(message="Access denied to one or more files")

        buffer = io.BytesIO()
        used_names = set()
        with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
            for record in records:
                name = self._unique_name(record.file_name, used_names)
                try:
                    data = await self.read(record)
                except FileStorageError:
                    logger.error("Failed to add %s to zip bundle", record.storage_key)
                    archive.writestr(
                        f"ERROR_{name}.txt",
                        f"Error downloading file: {record.file_name}",
                    )
                    continue
                archive.writestr(name, data)

        return buffer.getvalue()

    @staticmethod
    def _unique_name(name: str, used: set) -> str:
        candidate, counter = name, 1
        while candidate in used:
            stem, dot, ext = name.rpartition(".")
            candidate = f"{stem} ({counter}).{ext}" if dot else f"{name} ({counter})"
            counter += 1
        used.add(candidate)
        return candidate

    async def toggle_star(self, principal: User, file_id: int) -> ClientFile:
        """Flip the starred flag. Owning client or staff."""
        record = await self.get_file(principal, file_id)
        return await self.file_dao.update(record.id, is_starred=not record.is_starred)

    async def set_notes(self, principal: User, file_id: int, notes: Optional[str]) -> ClientFile:
        """Replace the notes on a file. Owning client or staff."""
        record = await self.get_file(principal, file_id)
        return await self.file_dao.update(record.id, notes=notes)

    async def set_tags(self, principal: User, file_id: int, tags: List[str]) -> ClientFile:
        """Replace the tag list, dropping blanks and duplicates."""
        record = await self.get_file(principal, file_id)
        cleaned = []
        for tag in tags:
            tag = tag.strip()
            if tag and tag not in cleaned:
                cleaned.append(tag)
        return await self.file_dao.update(record.id, tags=cleaned)

    async def toggle_archive(self, principal: User, file_id: int) -> ClientFile:
        """Flip the archived flag. Archived files are hidden from listings."""
        record = await self.get_file(principal, file_id)
        return await self.file_dao.update(record.id, is_archived=not record.is_archived)

    async def _remove(self, record: ClientFile) -> None:
        try:
            await self.storage.delete(record.storage_key)
        except FileStorageError:
            # Record is removed regardless; the object can be cleaned up later
            logger.error("Storage delete failed for %s, removing record anyway", record.storage_key)
        await self.file_dao.delete(record.id)

    async def delete_file(self, principal: User, file_id: int) -> None:
        """Delete a file from storage and the database."""
        record = await self.get_file(principal, file_id)
        await self._remove(record)
        logger.info("File %s deleted by user %s", file_id, principal.id)

    async def bulk_delete(self, principal: User, file_ids: Sequence[int]) -> Tuple[int, List[str]]:
        """
        Delete several files.

        Returns:
            (deleted count, names of files that could not be deleted)

        Raises:
            ValidationError: No file ids given
            ClientFileNotFoundError: None of the ids exist
        """
        if not file_ids:
            raise ValidationError(message="No files selected")

        records = await self.file_dao.get_many(file_ids)
        if not records:
            raise ClientFileNotFoundError(message="No files found")

        deleted, errors = 0, []
        for record in records:
            if not principal.is_staff and record.client_id != principal.client_id:
                errors.append(record.file_name)
                continue
            await self._remove(record)
            deleted += 1

        logger.info("Bulk delete by user %s removed %d file(s)", principal.id, deleted)
        return deleted, errors

    async def purge_client(self, client_id: int) -> int:
        """
        Remove every file of a client, archived ones included.

        Used when the client itself is deleted. Returns how many files
        were removed.
        """
        records = await self.file_dao.list_for_client(client_id, include_archived=True)
        for record in records:
            await self._remove(record)
        if records:
            logger.info("Purged %d file(s) of client %s", len(records), client_id)
        return len(records)
