"""
Unit tests for FileService.

WHAT: Upload, listing, zip bundles, labels and deletion against the
in-memory storage double.

WHY: Verifies ownership rules (a client only ever touches its own files),
upload validation and that storage and metadata stay in step.
"""

import io
import zipfile

import pytest

from caportal.core.exceptions import (
    AccessDeniedError,
    ClientFileNotFoundError,
    ClientNotFoundError,
    FileUploadError,
    ValidationError,
)
from caportal.models.client_file import FileCategory
from caportal.services.file_service import FileService, preview_content_type, sanitize_filename
from tests.factories import ClientFileFactory


class TestHelpers:
    def test_sanitize_filename_strips_separators_and_quotes(self):
        assert sanitize_filename('../etc/"passwd"') == ".._etc_'passwd'"

    def test_sanitize_filename_keeps_extension_when_truncating(self):
        name = sanitize_filename("a" * 300 + ".pdf")

        assert len(name) <= 200
        assert name.endswith(".pdf")

    def test_sanitize_filename_never_empty(self):
        assert sanitize_filename("   ") == "file"

    def test_preview_content_type(self):
        assert preview_content_type("Form16.PDF") == "application/pdf"
        assert preview_content_type("scan.jpeg") == "image/jpeg"
        assert preview_content_type("blob.unknownext") == "application/octet-stream"


class TestUpload:
    @pytest.mark.asyncio
    async def test_upload_stores_bytes_and_metadata(
        self, db_session, file_storage, test_client_record, test_staff
    ):
        service = FileService(db_session, file_storage)

        record = await service.upload(
            uploader=test_staff,
            client_id=test_client_record.id,
            category=FileCategory.ITR,
            year="2024-25",
            original_file_name="form 16.pdf",
            data=b"%PDF-1.4",
            content_type="application/pdf",
            tags=["salary"],
        )

        assert record.id is not None
        assert record.file_size == 8
        assert record.uploaded_by == test_staff.id
        assert record.tags == ["salary"]
        assert record.storage_key.startswith(f"clients/{test_client_record.id}/ITR/2024-25/")
        assert file_storage.objects[record.storage_key] == b"%PDF-1.4"

    @pytest.mark.asyncio
    async def test_gst_upload_prefixes_month(self, db_session, file_storage, test_client_record, test_staff):
        record = await FileService(db_session, file_storage).upload(
            uploader=test_staff,
            client_id=test_client_record.id,
            category=FileCategory.GST,
            year="2024-25",
            month="April",
            original_file_name="GSTR3B.pdf",
            data=b"data",
        )

        assert record.file_name == "April - GSTR3B.pdf"
        assert record.original_file_name == "GSTR3B.pdf"

    @pytest.mark.asyncio
    async def test_year_required_outside_user_docs(self, db_session, file_storage, test_client_record, test_staff):
        service = FileService(db_session, file_storage)

        with pytest.raises(ValidationError):
            await service.upload(
                uploader=test_staff,
                client_id=test_client_record.id,
                category=FileCategory.ACCOUNTING,
                original_file_name="ledger.xlsx",
                data=b"data",
            )

        record = await service.upload(
            uploader=test_staff,
            client_id=test_client_record.id,
            category=FileCategory.USER_DOCS,
            original_file_name="aadhaar.png",
            data=b"data",
        )
        assert record.year is None

    @pytest.mark.asyncio
    async def test_empty_file_rejected(self, db_session, file_storage, test_client_record, test_staff):
        with pytest.raises(FileUploadError):
            await FileService(db_session, file_storage).upload(
                uploader=test_staff,
                client_id=test_client_record.id,
                category=FileCategory.USER_DOCS,
                original_file_name="empty.txt",
                data=b"",
            )
        assert file_storage.objects == {}

    @pytest.mark.asyncio
    async def test_unknown_client_rejected(self, db_session, file_storage, test_staff):
        with pytest.raises(ClientNotFoundError):
            await FileService(db_session, file_storage).upload(
                uploader=test_staff,
                client_id=777,
                category=FileCategory.USER_DOCS,
                original_file_name="x.txt",
                data=b"x",
            )


class TestOwnership:
    @pytest.mark.asyncio
    async def test_client_lists_only_own_files(
        self, db_session, file_storage, test_client_record, other_client_record, test_client_user
    ):
        own = await ClientFileFactory.create(db_session, file_storage, test_client_record.id)
        await ClientFileFactory.create(db_session, file_storage, other_client_record.id)
        service = FileService(db_session, file_storage)

        listed = await service.list_files(test_client_user, test_client_record.id)
        assert [f.id for f in listed] == [own.id]

        with pytest.raises(AccessDeniedError):
            await service.list_files(test_client_user, other_client_record.id)

    @pytest.mark.asyncio
    async def test_archived_hidden_unless_requested(self, db_session, file_storage, test_client_record, test_staff):
        record = await ClientFileFactory.create(db_session, file_storage, test_client_record.id)
        service = FileService(db_session, file_storage)

        await service.toggle_archive(test_staff, record.id)

        assert await service.list_files(test_staff, test_client_record.id) == []
        assert len(await service.list_files(test_staff, test_client_record.id, include_archived=True)) == 1

    @pytest.mark.asyncio
    async def test_client_cannot_open_other_clients_file(
        self, db_session, file_storage, other_client_record, test_client_user
    ):
        record = await ClientFileFactory.create(db_session, file_storage, other_client_record.id)

        with pytest.raises(AccessDeniedError):
            await FileService(db_session, file_storage).get_file(test_client_user, record.id)

    @pytest.mark.asyncio
    async def test_missing_file(self, db_session, file_storage, test_staff):
        with pytest.raises(ClientFileNotFoundError):
            await FileService(db_session, file_storage).get_file(test_staff, 404)


class TestZip:
    @pytest.mark.asyncio
    async def test_zip_contains_requested_files(self, db_session, file_storage, test_client_record, test_staff):
        a = await ClientFileFactory.create(db_session, file_storage, test_client_record.id, file_name="a.pdf", data=b"A")
        b = await ClientFileFactory.create(db_session, file_storage, test_client_record.id, file_name="a.pdf", data=b"B")

        archive = await FileService(db_session, file_storage).build_zip(test_staff, [a.id, b.id])

        with zipfile.ZipFile(io.BytesIO(archive)) as bundle:
            assert sorted(bundle.namelist()) == ["a (1).pdf", "a.pdf"]
            assert bundle.read("a.pdf") == b"A"

    @pytest.mark.asyncio
    async def test_unreadable_file_becomes_error_entry(
        self, db_session, file_storage, test_client_record, test_staff
    ):
        record = await ClientFileFactory.create(db_session, file_storage, test_client_record.id, file_name="gone.pdf")
        del file_storage.objects[record.storage_key]

        archive = await FileService(db_session, file_storage).build_zip(test_staff, [record.id])

        with zipfile.ZipFile(io.BytesIO(archive)) as bundle:
            assert bundle.namelist() == ["ERROR_gone.pdf.txt"]

    @pytest.mark.asyncio
    async def test_client_zip_with_foreign_file_denied(
        self, db_session, file_storage, test_client_record, other_client_record, test_client_user
    ):
        own = await ClientFileFactory.create(db_session, file_storage, test_client_record.id)
        foreign = await ClientFileFactory.create(db_session, file_storage, other_client_record.id)

        with pytest.raises(AccessDeniedError):
            await FileService(db_session, file_storage).build_zip(test_client_user, [own.id, foreign.id])


class TestLabelsAndDeletion:
    @pytest.mark.asyncio
    async def test_star_toggles(self, db_session, file_storage, test_client_record, test_client_user):
        record = await ClientFileFactory.create(db_session, file_storage, test_client_record.id)
        service = FileService(db_session, file_storage)

        assert (await service.toggle_star(test_client_user, record.id)).is_starred is True
        assert (await service.toggle_star(test_client_user, record.id)).is_starred is False

    @pytest.mark.asyncio
    async def test_tags_are_cleaned(self, db_session, file_storage, test_client_record, test_staff):
        record = await ClientFileFactory.create(db_session, file_storage, test_client_record.id)

        updated = await FileService(db_session, file_storage).set_tags(
            test_staff, record.id, [" salary ", "", "salary", "AY24"]
        )

        assert updated.tags == ["salary", "AY24"]

    @pytest.mark.asyncio
    async def test_delete_removes_object_and_row(self, db_session, file_storage, test_client_record, test_staff):
        record = await ClientFileFactory.create(db_session, file_storage, test_client_record.id)
        key = record.storage_key
        service = FileService(db_session, file_storage)

        await service.delete_file(test_staff, record.id)

        assert key not in file_storage.objects
        with pytest.raises(ClientFileNotFoundError):
            await service.get_file(test_staff, record.id)

    @pytest.mark.asyncio
    async def test_bulk_delete_skips_foreign_files(
        self, db_session, file_storage, test_client_record, other_client_record, test_client_user
    ):
        own = await ClientFileFactory.create(db_session, file_storage, test_client_record.id)
        foreign = await ClientFileFactory.create(
            db_session, file_storage, other_client_record.id, file_name="other.pdf"
        )

        deleted, errors = await FileService(db_session, file_storage).bulk_delete(
            test_client_user, [own.id, foreign.id]
        )

        assert deleted == 1
        assert errors == ["other.pdf"]

    @pytest.mark.asyncio
    async def test_purge_client_includes_archived(
        self, db_session, file_storage, test_client_record, other_client_record
    ):
        """WHY: Archived files are hidden from listings but still occupy storage."""
        live = await ClientFileFactory.create(db_session, file_storage, test_client_record.id)
        archived = await ClientFileFactory.create(db_session, file_storage, test_client_record.id, file_name="old.pdf")
        archived.is_archived = True
        foreign = await ClientFileFactory.create(db_session, file_storage, other_client_record.id)
        await db_session.flush()

        removed = await FileService(db_session, file_storage).purge_client(test_client_record.id)

        assert removed == 2
        assert set(file_storage.objects) == {foreign.storage_key}
        assert live.storage_key not in file_storage.objects
