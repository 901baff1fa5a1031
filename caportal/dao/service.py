"""
Service catalog Data Access Object.
"""

from typing import List, Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from caportal.dao.base import BaseDAO
from caportal.models.service import ServiceOffering, ServiceCategory


class ServiceOfferingDAO(BaseDAO[ServiceOffering]):
    """Data Access Object for catalog services."""

    def __init__(self, session: AsyncSession):
        super().__init__(ServiceOffering, session)

    async def list_catalog(
        self,
        category: Optional[ServiceCategory] = None,
        include_inactive: bool = False,
    ) -> List[ServiceOffering]:
        """List services grouped by category, then name."""
        query = select(ServiceOffering)
        if category is not None:
            query = query.where(ServiceOffering.category == category)
        if not include_inactive:
            query = query.where(ServiceOffering.is_active.is_(True))
        query = query.order_by(ServiceOffering.category, ServiceOffering.name)

        result = await self.session.execute(query)
        return list(result.scalars().all())
