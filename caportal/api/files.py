"""
Client document API endpoints.

WHAT: Upload, listing, download, preview, zip bundles, labels and deletion
of client documents.

WHY: Clients fetch their ITR, GST and accounting papers from here. Every
endpoint that hands out file contents or a file listing depends on
``enforce_file_access``, so a client with overdue invoices is refused with
the figures it owes.

HOW: FastAPI router with:
- Multipart upload for the document-managing roles
- Gate dependency on the four read paths
- Ownership checks in FileService
- Audit logging of downloads and mutations

Security Considerations:
- Size limit enforced before anything reaches storage
- Download names are sanitized for the Content-Disposition header
- Storage keys are never exposed in responses
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, Response, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from caportal.core.deps import enforce_file_access, get_current_user, require_file_manager
from caportal.db.session import get_db
from caportal.models.client_file import ClientFile, FileCategory
from caportal.models.user import User
from caportal.schemas.client_file import (
    BulkDeleteResponse,
    ClientFileResponse,
    FileIdsRequest,
    NotesUpdate,
    TagsUpdate,
)
from caportal.services.access_gate import FileAccessDecision
from caportal.services.audit import AuditService
from caportal.services.file_service import FileService, preview_content_type, sanitize_filename
from caportal.services.storage import FileStorage, get_file_storage


router = APIRouter(prefix="/files", tags=["files"])


def get_file_service(
    db: AsyncSession = Depends(get_db),
    storage: FileStorage = Depends(get_file_storage),
) -> FileService:
    return FileService(db, storage)


# ============================================================================
# Upload
# ============================================================================


@router.post(
    "/upload",
    response_model=ClientFileResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Upload document",
)
async def upload_file(
    file: UploadFile = File(..., description="File to upload"),
    client_id: int = Form(...),
    category: FileCategory = Form(...),
    year: Optional[str] = Form(default=None, description="Assessment or financial year"),
    month: Optional[str] = Form(default=None, description="GST return month"),
    doc_type: Optional[str] = Form(default=None),
    file_name: Optional[str] = Form(default=None, description="Display name"),
    tags: Optional[str] = Form(default=None, description="Comma-separated tags"),
    current_user: User = Depends(require_file_manager),
    service: FileService = Depends(get_file_service),
    db: AsyncSession = Depends(get_db),
) -> ClientFile:
    """
    Upload a document for a client.

    RBAC: ADMIN, MANAGER or STAFF.

    Raises:
        ValidationError (400): Missing year, empty or oversized file
        ClientNotFoundError (404): Unknown client
        FileStorageError (502): Storage rejected the object
    """
    tag_list = [t.strip() for t in tags.split(",") if t.strip()] if tags else None
    data = await file.read()

    record = await service.upload(
        uploader=current_user,
        client_id=client_id,
        category=category,
        original_file_name=file.filename or "file",
        data=data,
        year=year,
        month=month,
        doc_type=doc_type,
        file_name=file_name,
        content_type=file.content_type,
        tags=tag_list,
    )

    await AuditService(db).log_create(
        resource_type="client_file",
        resource_id=record.id,
        actor_user_id=current_user.id,
        client_id=client_id,
        extra_data={
            "file_name": record.file_name,
            "category": category.value,
            "file_size": record.file_size,
        },
    )
    return record


# ============================================================================
# Gated reads
# ============================================================================


@router.get(
    "/client/{client_id}",
    response_model=List[ClientFileResponse],
    summary="List client documents",
)
async def list_client_files(
    client_id: int,
    year: Optional[str] = Query(default=None),
    category: Optional[FileCategory] = Query(default=None),
    search: Optional[str] = Query(default=None, max_length=100),
    favorites_only: bool = Query(default=False),
    include_archived: bool = Query(default=False),
    decision: FileAccessDecision = Depends(enforce_file_access),
    current_user: User = Depends(get_current_user),
    service: FileService = Depends(get_file_service),
) -> List[ClientFile]:
    """List a client's documents, newest first. Archived ones on request."""
    return await service.list_files(
        current_user,
        client_id,
        year=year,
        category=category,
        search=search,
        favorites_only=favorites_only,
        include_archived=include_archived,
    )


async def _serve(
    file_id: int,
    disposition: str,
    current_user: User,
    service: FileService,
    db: AsyncSession,
) -> Response:
    record = await service.get_file(current_user, file_id)
    data = await service.read(record)

    await AuditService(db).log_file_download(
        file_id=record.id,
        actor_user_id=current_user.id,
        client_id=record.client_id,
        mode=disposition,
    )

    if disposition == "inline":
        media_type = preview_content_type(record.file_name)
    else:
        media_type = record.content_type or "application/octet-stream"

    return Response(
        content=data,
        media_type=media_type,
        headers={
            "Content-Disposition": f'{disposition}; filename="{sanitize_filename(record.file_name)}"',
        },
    )


@router.get("/{file_id}/download", summary="Download document")
async def download_file(
    file_id: int,
    decision: FileAccessDecision = Depends(enforce_file_access),
    current_user: User = Depends(get_current_user),
    service: FileService = Depends(get_file_service),
    db: AsyncSession = Depends(get_db),
) -> Response:
    """Download a document as an attachment."""
    return await _serve(file_id, "attachment", current_user, service, db)


@router.get("/{file_id}/preview", summary="Preview document")
async def preview_file(
    file_id: int,
    decision: FileAccessDecision = Depends(enforce_file_access),
    current_user: User = Depends(get_current_user),
    service: FileService = Depends(get_file_service),
    db: AsyncSession = Depends(get_db),
) -> Response:
    """Serve a document inline for the browser viewer."""
    return await _serve(file_id, "inline", current_user, service, db)


@router.post("/download-zip", summary="Download documents as zip")
async def download_zip(
    data: FileIdsRequest,
    decision: FileAccessDecision = Depends(enforce_file_access),
    current_user: User = Depends(get_current_user),
    service: FileService = Depends(get_file_service),
) -> Response:
    """Bundle the selected documents into one zip archive."""
    archive = await service.build_zip(current_user, data.file_ids)
    return Response(
        content=archive,
        media_type="application/zip",
        headers={"Content-Disposition": 'attachment; filename="documents.zip"'},
    )


# ============================================================================
# Labels (owning client or staff)
# ============================================================================


@router.patch("/{file_id}/star", response_model=ClientFileResponse, summary="Toggle star")
async def toggle_star(
    file_id: int,
    current_user: User = Depends(get_current_user),
    service: FileService = Depends(get_file_service),
) -> ClientFile:
    return await service.toggle_star(current_user, file_id)


@router.patch("/{file_id}/notes", response_model=ClientFileResponse, summary="Set notes")
async def set_notes(
    file_id: int,
    data: NotesUpdate,
    current_user: User = Depends(get_current_user),
    service: FileService = Depends(get_file_service),
) -> ClientFile:
    return await service.set_notes(current_user, file_id, data.notes)


@router.patch("/{file_id}/tags", response_model=ClientFileResponse, summary="Set tags")
async def set_tags(
    file_id: int,
    data: TagsUpdate,
    current_user: User = Depends(require_file_manager),
    service: FileService = Depends(get_file_service),
) -> ClientFile:
    return await service.set_tags(current_user, file_id, data.tags)


@router.patch("/{file_id}/archive", response_model=ClientFileResponse, summary="Toggle archive")
async def toggle_archive(
    file_id: int,
    current_user: User = Depends(require_file_manager),
    service: FileService = Depends(get_file_service),
) -> ClientFile:
    return await service.toggle_archive(current_user, file_id)


# ============================================================================
# Deletion
# ============================================================================


@router.delete("/{file_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete document")
async def delete_file(
    file_id: int,
    current_user: User = Depends(require_file_manager),
    service: FileService = Depends(get_file_service),
    db: AsyncSession = Depends(get_db),
) -> None:
    """Delete a document from storage and the database."""
    record = await service.get_file(current_user, file_id)
    client_id, file_name = record.client_id, record.file_name

    await service.delete_file(current_user, file_id)

    await AuditService(db).log_delete(
        resource_type="client_file",
        resource_id=file_id,
        actor_user_id=current_user.id,
        client_id=client_id,
        extra_data={"file_name": file_name},
    )


@router.post("/bulk-delete", response_model=BulkDeleteResponse, summary="Delete several documents")
async def bulk_delete(
    data: FileIdsRequest,
    current_user: User = Depends(require_file_manager),
    service: FileService = Depends(get_file_service),
    db: AsyncSession = Depends(get_db),
) -> BulkDeleteResponse:
    """Delete several documents. Files that could not be removed are listed in errors."""
    deleted, errors = await service.bulk_delete(current_user, data.file_ids)

    await AuditService(db).log_delete(
        resource_type="client_file",
        resource_id=None,
        actor_user_id=current_user.id,
        extra_data={"file_ids": list(data.file_ids), "deleted": deleted},
    )
    return BulkDeleteResponse(
        message=f"{deleted} file(s) deleted",
        deleted_count=deleted,
        errors=errors,
    )
