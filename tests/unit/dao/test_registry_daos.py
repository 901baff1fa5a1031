"""
Unit tests for the client, user and service catalog DAOs.
"""

from decimal import Decimal

import pytest

from caportal.dao.client import ClientDAO
from caportal.dao.service import ServiceOfferingDAO
from caportal.dao.user import UserDAO
from caportal.models.service import ServiceCategory
from tests.factories import ClientFactory


class TestClientDAO:
    @pytest.mark.asyncio
    async def test_email_lookup_is_case_insensitive(self, db_session, test_client_record):
        found = await ClientDAO(db_session).get_by_email("ACCOUNTS@ashatraders.com")

        assert found.id == test_client_record.id

    @pytest.mark.asyncio
    async def test_search_by_name_pan_or_gstin(self, db_session):
        asha = await ClientFactory.create(db_session, name="Asha Traders", pan_number="AAAPA1111A")
        bharat = await ClientFactory.create(
            db_session, name="Bharat Stores", pan_number="BBBPB2222B", gst_number="27BBBPB2222B1Z5"
        )
        dao = ClientDAO(db_session)

        assert [c.id for c in await dao.search("asha")] == [asha.id]
        assert [c.id for c in await dao.search("bbbpb")] == [bharat.id]
        assert [c.id for c in await dao.search()] == [asha.id, bharat.id]


class TestUserDAO:
    @pytest.mark.asyncio
    async def test_email_lookup(self, db_session, test_staff):
        dao = UserDAO(db_session)

        assert (await dao.get_by_email("STAFF@caoffice.in")).id == test_staff.id
        assert await dao.email_exists("staff@caoffice.in") is True
        assert await dao.email_exists("nobody@caoffice.in") is False


class TestServiceOfferingDAO:
    @pytest.mark.asyncio
    async def test_catalog_hides_inactive(self, db_session):
        dao = ServiceOfferingDAO(db_session)
        itr = await dao.create(name="ITR filing", base_price=Decimal("1500"), category=ServiceCategory.ITR)
        old = await dao.create(
            name="Old GST plan", base_price=Decimal("900"), category=ServiceCategory.GST, is_active=False
        )
        gst = await dao.create(name="GST returns", base_price=Decimal("1200"), category=ServiceCategory.GST)

        assert [s.id for s in await dao.list_catalog()] == [gst.id, itr.id]
        assert [s.id for s in await dao.list_catalog(include_inactive=True)] == [gst.id, old.id, itr.id]
        assert [s.id for s in await dao.list_catalog(category=ServiceCategory.ITR)] == [itr.id]
