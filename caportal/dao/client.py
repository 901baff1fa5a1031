"""
Client Data Access Object.
"""

from typing import Optional, List
from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from caportal.dao.base import BaseDAO
from caportal.models.client import Client


class ClientDAO(BaseDAO[Client]):
    """Data Access Object for the client registry."""

    def __init__(self, session: AsyncSession):
        super().__init__(Client, session)

    async def get_by_email(self, email: str) -> Optional[Client]:
        result = await self.session.execute(
            select(Client).where(func.lower(Client.email) == email.lower())
        )
        return result.scalar_one_or_none()

    async def search(self, term: Optional[str] = None, skip: int = 0, limit: int = 100) -> List[Client]:
        """
        List clients, optionally matching a search term.

        WHY: Staff look clients up by name, email, PAN or GSTIN from the
        same search box.

        Args:
            term: Case-insensitive substring to match
            skip: Pagination offset
            limit: Page size

        Returns:
            Matching clients ordered by name
        """
        query = select(Client)
        if term:
            pattern = f"%{term.lower()}%"
            query = query.where(
                or_(
                    func.lower(Client.name).like(pattern),
                    func.lower(Client.email).like(pattern),
                    func.lower(Client.pan_number).like(pattern),
                    func.lower(Client.gst_number).like(pattern),
                )
            )
        query = query.order_by(Client.name).offset(skip).limit(limit)

        result = await self.session.execute(query)
        return list(result.scalars().all())
