"""
Service catalog API endpoints.

Mounted under /billing/services. Everyone signed in can read the catalog;
only the billing roles maintain it.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from caportal.core.deps import get_current_user, require_billing
from caportal.core.exceptions import ServiceNotFoundError
from caportal.dao.service import ServiceOfferingDAO
from caportal.db.session import get_db
from caportal.models.service import ServiceOffering, ServiceCategory
from caportal.models.user import User
from caportal.schemas.service import ServiceCreate, ServiceResponse, ServiceUpdate
from caportal.services.audit import AuditService


router = APIRouter(prefix="/billing/services", tags=["billing"])


@router.get("", response_model=List[ServiceResponse])
async def list_services(
    category: Optional[ServiceCategory] = Query(default=None),
    include_inactive: bool = Query(default=False),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> List[ServiceOffering]:
    """List catalog services. Retired services only on request."""
    return await ServiceOfferingDAO(db).list_catalog(
        category=category,
        include_inactive=include_inactive and current_user.is_staff,
    )


@router.post("", response_model=ServiceResponse, status_code=status.HTTP_201_CREATED)
async def create_service(
    data: ServiceCreate,
    current_user: User = Depends(require_billing),
    db: AsyncSession = Depends(get_db),
) -> ServiceOffering:
    service = await ServiceOfferingDAO(db).create(**data.model_dump())
    await AuditService(db).log_create("service", service.id, current_user.id)
    return service


@router.put("/{service_id}", response_model=ServiceResponse)
async def update_service(
    service_id: int,
    data: ServiceUpdate,
    current_user: User = Depends(require_billing),
    db: AsyncSession = Depends(get_db),
) -> ServiceOffering:
    service = await ServiceOfferingDAO(db).update(service_id, **data.model_dump(exclude_unset=True))
    if service is None:
        raise ServiceNotFoundError(service_id=service_id)
    await AuditService(db).log_update("service", service_id, current_user.id)
    return service


@router.delete("/{service_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_service(
    service_id: int,
    current_user: User = Depends(require_billing),
    db: AsyncSession = Depends(get_db),
) -> None:
    """
    Delete a catalog service.

    Invoice items that referenced it keep their name and price.
    """
    if not await ServiceOfferingDAO(db).delete(service_id):
        raise ServiceNotFoundError(service_id=service_id)
    await AuditService(db).log_delete("service", service_id, current_user.id)
