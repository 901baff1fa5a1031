"""
Integration tests for clients, users, the service catalog and audit logs.
"""

from decimal import Decimal

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from caportal.models.audit_log import AuditAction, AuditLog
from caportal.models.client import Client
from caportal.models.client_file import ClientFile
from caportal.models.invoice import Invoice, Payment
from caportal.models.reminder import Reminder
from caportal.models.user import User, UserRole
from tests.factories import ClientFileFactory, InvoiceFactory, ReminderFactory, auth_headers


def client_payload(**overrides):
    payload = {
        "name": "Chitra Textiles",
        "email": "accounts@chitratextiles.com",
        "phone": "9822012345",
        "pan_number": "CCCPC3333C",
        "gst_number": "27CCCPC3333C1Z2",
        "physical_file_number": "F-118",
        "rack_location": "Rack 4, Shelf B",
    }
    payload.update(overrides)
    return payload


class TestClientsAPI:
    @pytest.mark.asyncio
    async def test_create_and_fetch(self, client: AsyncClient, manager_headers):
        created = await client.post("/api/clients", json=client_payload(), headers=manager_headers)

        assert created.status_code == 201
        client_id = created.json()["id"]
        fetched = await client.get(f"/api/clients/{client_id}", headers=manager_headers)
        assert fetched.json()["rack_location"] == "Rack 4, Shelf B"

    @pytest.mark.asyncio
    async def test_duplicate_email(self, client: AsyncClient, manager_headers, test_client_record):
        response = await client.post(
            "/api/clients", json=client_payload(email="ACCOUNTS@ashatraders.com"), headers=manager_headers
        )

        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_invalid_pan(self, client: AsyncClient, manager_headers):
        response = await client.post("/api/clients", json=client_payload(pan_number="12345"), headers=manager_headers)

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_search(self, client: AsyncClient, staff_headers, test_client_record, other_client_record):
        response = await client.get("/api/clients?search=bharat", headers=staff_headers)

        assert [c["id"] for c in response.json()] == [other_client_record.id]

    @pytest.mark.asyncio
    async def test_update(self, client: AsyncClient, db_session, admin_headers, test_client_record):
        response = await client.put(
            f"/api/clients/{test_client_record.id}", json={"phone": "9000000001"}, headers=admin_headers
        )

        assert response.status_code == 200
        assert response.json()["phone"] == "9000000001"
        result = await db_session.execute(
            select(AuditLog).where(AuditLog.resource_type == "client", AuditLog.action == AuditAction.UPDATE)
        )
        assert result.scalar_one().changes == {"phone": "9000000001"}

    @pytest.mark.asyncio
    async def test_update_missing(self, client: AsyncClient, admin_headers):
        response = await client.put("/api/clients/9999", json={"phone": "9000000001"}, headers=admin_headers)

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_client_reads_only_own_record(
        self, client: AsyncClient, client_headers, test_client_record, other_client_record
    ):
        own = await client.get(f"/api/clients/{test_client_record.id}", headers=client_headers)
        other = await client.get(f"/api/clients/{other_client_record.id}", headers=client_headers)

        assert own.status_code == 200
        assert other.status_code == 403


class TestUsersAPI:
    @pytest.mark.asyncio
    async def test_admin_creates_client_login(self, client: AsyncClient, admin_headers, test_client_record):
        response = await client.post(
            "/api/users",
            json={
                "name": "Asha Accounts",
                "email": "Second.Login@AshaTraders.com",
                "password": "LongEnough123!",
                "role": "CLIENT",
                "client_id": test_client_record.id,
            },
            headers=admin_headers,
        )

        assert response.status_code == 201
        data = response.json()
        assert data["email"] == "second.login@ashatraders.com"
        assert data["client_id"] == test_client_record.id
        assert "hashed_password" not in data

        login = await client.post(
            "/api/auth/login",
            json={"email": "second.login@ashatraders.com", "password": "LongEnough123!"},
        )
        assert login.status_code == 200

    @pytest.mark.asyncio
    async def test_duplicate_email(self, client: AsyncClient, admin_headers, test_staff):
        response = await client.post(
            "/api/users",
            json={"name": "Again", "email": "staff@caoffice.in", "password": "LongEnough123!", "role": "STAFF"},
            headers=admin_headers,
        )

        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_unknown_client(self, client: AsyncClient, admin_headers):
        response = await client.post(
            "/api/users",
            json={
                "name": "Ghost",
                "email": "ghost@ghost.com",
                "password": "LongEnough123!",
                "role": "CLIENT",
                "client_id": 9999,
            },
            headers=admin_headers,
        )

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_manager_cannot_create_users(self, client: AsyncClient, manager_headers):
        response = await client.post(
            "/api/users",
            json={"name": "New", "email": "new@caoffice.in", "password": "LongEnough123!", "role": "STAFF"},
            headers=manager_headers,
        )

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_list_filters_by_role(self, client: AsyncClient, admin_headers, test_staff, test_client_user):
        response = await client.get("/api/users?role=CLIENT", headers=admin_headers)

        assert response.status_code == 200
        assert [u["id"] for u in response.json()] == [test_client_user.id]

    @pytest.mark.asyncio
    async def test_get_unknown_user(self, client: AsyncClient, admin_headers):
        response = await client.get("/api/users/9999", headers=admin_headers)

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_update_role_is_audited(self, client: AsyncClient, db_session, admin_headers, test_staff):
        response = await client.put(f"/api/users/{test_staff.id}", json={"role": "MANAGER"}, headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["role"] == "MANAGER"
        result = await db_session.execute(
            select(AuditLog).where(AuditLog.resource_type == "user", AuditLog.action == AuditAction.UPDATE)
        )
        assert result.scalar_one().changes == {"role": "MANAGER"}

    @pytest.mark.asyncio
    async def test_staff_cannot_become_client(self, client: AsyncClient, admin_headers, test_staff):
        response = await client.put(f"/api/users/{test_staff.id}", json={"role": "CLIENT"}, headers=admin_headers)

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_admin_account_not_editable(self, client: AsyncClient, admin_headers, test_admin):
        response = await client.put(f"/api/users/{test_admin.id}", json={"is_active": False}, headers=admin_headers)

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_deactivated_login_stops_working(self, client: AsyncClient, admin_headers, test_staff):
        """WHY: Deactivation is the only way to remove someone; it must cut access straight away."""
        headers = auth_headers(test_staff)

        response = await client.delete(f"/api/users/{test_staff.id}", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["is_active"] is False
        assert (await client.get("/api/auth/me", headers=headers)).status_code == 401

    @pytest.mark.asyncio
    async def test_manager_resets_client_password(self, client: AsyncClient, manager_headers, test_client_user):
        response = await client.post(f"/api/users/{test_client_user.id}/reset-password", headers=manager_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["email"] == "login@ashatraders.com"

        login = await client.post(
            "/api/auth/login", json={"email": "login@ashatraders.com", "password": data["password"]}
        )
        assert login.status_code == 200

    @pytest.mark.asyncio
    async def test_manager_cannot_reset_staff_password(self, client: AsyncClient, manager_headers, test_staff):
        response = await client.post(f"/api/users/{test_staff.id}/reset-password", headers=manager_headers)

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_staff_cannot_reset_passwords(self, client: AsyncClient, staff_headers, test_client_user):
        response = await client.post(f"/api/users/{test_client_user.id}/reset-password", headers=staff_headers)

        assert response.status_code == 403


class TestClientDeletion:
    @pytest.mark.asyncio
    async def test_admin_deletes_client_and_everything_it_owns(
        self, client: AsyncClient, db_session, file_storage, admin_headers, test_client_record, test_client_user
    ):
        """WHY: Database cascades remove rows but not stored documents; nothing may be left behind."""
        live = await ClientFileFactory.create(db_session, file_storage, test_client_record.id)
        archived = await ClientFileFactory.create(
            db_session, file_storage, test_client_record.id, file_name="old.pdf"
        )
        archived.is_archived = True
        await db_session.flush()
        await InvoiceFactory.create(db_session, test_client_record.id, payments=[Decimal("250")])
        await ReminderFactory.create(db_session, test_client_record.id)
        keys = {live.storage_key, archived.storage_key}

        response = await client.delete(f"/api/clients/{test_client_record.id}", headers=admin_headers)

        assert response.status_code == 204
        assert not keys & set(file_storage.objects)
        for model in (Client, ClientFile, Invoice, Payment, Reminder):
            result = await db_session.execute(select(model))
            assert result.scalars().all() == [], model.__name__
        result = await db_session.execute(select(User).where(User.role == UserRole.CLIENT))
        assert result.scalars().all() == []

        entry = (
            await db_session.execute(
                select(AuditLog).where(AuditLog.resource_type == "client", AuditLog.action == AuditAction.DELETE)
            )
        ).scalar_one()
        assert entry.resource_id == test_client_record.id
        assert entry.client_id is None
        assert entry.extra_data["name"] == "Asha Traders"

    @pytest.mark.asyncio
    async def test_other_clients_untouched(
        self, client: AsyncClient, db_session, admin_headers, test_client_record, other_client_record
    ):
        kept = await ReminderFactory.create(db_session, other_client_record.id)

        await client.delete(f"/api/clients/{test_client_record.id}", headers=admin_headers)

        result = await db_session.execute(select(Reminder))
        assert [r.id for r in result.scalars().all()] == [kept.id]

    @pytest.mark.asyncio
    async def test_unknown_client(self, client: AsyncClient, admin_headers):
        response = await client.delete("/api/clients/9999", headers=admin_headers)

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_manager_cannot_delete(self, client: AsyncClient, manager_headers, test_client_record):
        response = await client.delete(f"/api/clients/{test_client_record.id}", headers=manager_headers)

        assert response.status_code == 403


class TestServicesAPI:
    @pytest.mark.asyncio
    async def test_catalog_lifecycle(self, client: AsyncClient, manager_headers, client_headers):
        created = await client.post(
            "/api/billing/services",
            json={"name": "GST monthly return", "base_price": "1200.00", "category": "GST"},
            headers=manager_headers,
        )
        assert created.status_code == 201
        service_id = created.json()["id"]

        retired = await client.put(
            f"/api/billing/services/{service_id}", json={"is_active": False}, headers=manager_headers
        )
        assert retired.json()["is_active"] is False

        # Clients never see retired services, even when asking for them
        client_view = await client.get("/api/billing/services?include_inactive=true", headers=client_headers)
        staff_view = await client.get("/api/billing/services?include_inactive=true", headers=manager_headers)
        assert client_view.json() == []
        assert [s["id"] for s in staff_view.json()] == [service_id]

        deleted = await client.delete(f"/api/billing/services/{service_id}", headers=manager_headers)
        assert deleted.status_code == 204
        again = await client.delete(f"/api/billing/services/{service_id}", headers=manager_headers)
        assert again.status_code == 404

    @pytest.mark.asyncio
    async def test_staff_cannot_edit_catalog(self, client: AsyncClient, staff_headers):
        response = await client.post(
            "/api/billing/services", json={"name": "Audit", "base_price": "5000"}, headers=staff_headers
        )

        assert response.status_code == 403


class TestAuditLogsAPI:
    @pytest.mark.asyncio
    async def test_filter_by_client(
        self, client: AsyncClient, manager_headers, test_client_record, other_client_record
    ):
        await client.put(f"/api/clients/{test_client_record.id}", json={"phone": "9111111111"}, headers=manager_headers)
        await client.put(f"/api/clients/{other_client_record.id}", json={"phone": "9222222222"}, headers=manager_headers)

        response = await client.get(
            f"/api/audit-logs?client_id={test_client_record.id}&action=UPDATE", headers=manager_headers
        )

        assert response.status_code == 200
        entries = response.json()
        assert len(entries) == 1
        assert entries[0]["resource_type"] == "client"
        assert entries[0]["user_agent"] is not None

    @pytest.mark.asyncio
    async def test_staff_cannot_read_audit_logs(self, client: AsyncClient, staff_headers):
        response = await client.get("/api/audit-logs", headers=staff_headers)

        assert response.status_code == 403
