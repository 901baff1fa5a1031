"""
Client File Data Access Object.

WHAT: Queries over stored-document metadata.

WHY: File listings are filtered by the same handful of criteria across the
portal (filing year, category, name search, favorites, archived), so the
filter composition lives here rather than in the route.
"""

from typing import List, Optional, Sequence
from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from caportal.dao.base import BaseDAO
from caportal.models.client_file import ClientFile, FileCategory


class ClientFileDAO(BaseDAO[ClientFile]):
    """Data Access Object for ClientFile model."""

    def __init__(self, session: AsyncSession):
        super().__init__(ClientFile, session)

    async def list_for_client(
        self,
        client_id: int,
        year: Optional[str] = None,
        category: Optional[FileCategory] = None,
        search: Optional[str] = None,
        favorites_only: bool = False,
        include_archived: bool = False,
    ) -> List[ClientFile]:
        """
        List a client's files, newest upload first.

        Args:
            client_id: Owning client
            year: Filing year label filter
            category: Filing category filter
            search: Case-insensitive match on file name or document type
            favorites_only: Only starred files
            include_archived: Include archived files (hidden by default)

        Returns:
            Matching files
        """
        query = select(ClientFile).where(ClientFile.client_id == client_id)

        if year:
            query = query.where(ClientFile.year == year)
        if category is not None:
            query = query.where(ClientFile.category == category)
        if search:
            pattern = f"%{search.lower()}%"
            query = query.where(
                or_(
                    func.lower(ClientFile.original_file_name).like(pattern),
                    func.lower(ClientFile.doc_type).like(pattern),
                )
            )
        if favorites_only:
            query = query.where(ClientFile.is_starred.is_(True))
        if not include_archived:
            query = query.where(ClientFile.is_archived.is_(False))

        query = query.order_by(*self._newest_first())
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_many(self, file_ids: Sequence[int]) -> List[ClientFile]:
        """Load files by id, in ascending id order. Unknown ids are skipped."""
        if not file_ids:
            return []
        result = await self.session.execute(
            select(ClientFile).where(ClientFile.id.in_(list(file_ids))).order_by(ClientFile.id)
        )
        return list(result.scalars().all())
