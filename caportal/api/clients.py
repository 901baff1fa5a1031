"""
Client registry API endpoints.

Staff can browse every client. A CLIENT login can read only its own
record; creating and editing clients is limited to the billing roles and
only the office owner can delete one.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from caportal.core.deps import get_current_user, require_admin, require_billing, require_staff
from caportal.core.exceptions import (
    AccessDeniedError,
    ClientNotFoundError,
    ResourceAlreadyExistsError,
)
from caportal.dao.client import ClientDAO
from caportal.db.session import get_db
from caportal.models.client import Client
from caportal.models.user import User
from caportal.schemas.client import ClientCreate, ClientResponse, ClientUpdate
from caportal.services.audit import AuditService
from caportal.services.client_service import ClientService
from caportal.services.storage import FileStorage, get_file_storage


router = APIRouter(prefix="/clients", tags=["clients"])


@router.post("", response_model=ClientResponse, status_code=status.HTTP_201_CREATED)
async def create_client(
    data: ClientCreate,
    current_user: User = Depends(require_billing),
    db: AsyncSession = Depends(get_db),
) -> Client:
    """Register a new client (ADMIN/MANAGER)."""
    client_dao = ClientDAO(db)
    if await client_dao.get_by_email(data.email):
        raise ResourceAlreadyExistsError(message="A client with this email already exists")

    client = await client_dao.create(**data.model_dump())
    await AuditService(db).log_create("client", client.id, current_user.id, client_id=client.id)
    return client


@router.get("", response_model=List[ClientResponse])
async def list_clients(
    search: Optional[str] = Query(default=None, max_length=100),
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=500),
    current_user: User = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
) -> List[Client]:
    """List clients by name, optionally filtered by a search term (staff only)."""
    return await ClientDAO(db).search(search, skip=skip, limit=limit)


@router.get("/{client_id}", response_model=ClientResponse)
async def get_client(
    client_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Client:
    """Get one client. A CLIENT login can only read its own record."""
    if not current_user.is_staff and current_user.client_id != client_id:
        raise AccessDeniedError(message="You can only view your own client record")

    client = await ClientDAO(db).get_by_id(client_id)
    if client is None:
        raise ClientNotFoundError(message=f"Client {client_id} not found", client_id=client_id)
    return client


@router.put("/{client_id}", response_model=ClientResponse)
async def update_client(
    client_id: int,
    data: ClientUpdate,
    current_user: User = Depends(require_billing),
    db: AsyncSession = Depends(get_db),
) -> Client:
    """Edit a client (ADMIN/MANAGER)."""
    client_dao = ClientDAO(db)
    changes = data.model_dump(exclude_unset=True)

    if "email" in changes:
        existing = await client_dao.get_by_email(changes["email"])
        if existing is not None and existing.id != client_id:
            raise ResourceAlreadyExistsError(message="A client with this email already exists")

    client = await client_dao.update(client_id, **changes)
    if client is None:
        raise ClientNotFoundError(message=f"Client {client_id} not found", client_id=client_id)

    await AuditService(db).log_update(
        "client",
        client_id,
        current_user.id,
        changes={key: str(value) for key, value in changes.items()},
        client_id=client_id,
    )
    return client


@router.delete("/{client_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_client(
    client_id: int,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    storage: FileStorage = Depends(get_file_storage),
) -> None:
    """
    Delete a client with its files, invoices, reminders and logins (ADMIN only).

    Raises:
        ClientNotFoundError (404): Unknown client
    """
    client = await ClientService(db, storage).delete_client(client_id)

    # The client row is gone, so the entry cannot reference it
    await AuditService(db).log_delete(
        "client",
        client_id,
        admin.id,
        client_id=None,
        extra_data={"name": client.name, "email": client.email},
    )
