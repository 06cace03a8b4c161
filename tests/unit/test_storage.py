"""
Unit tests for the MinIO attachment store adapter.
"""

from unittest.mock import MagicMock

import pytest

from expense_claims.core.enums import AttachmentOwnerKind
from expense_claims.services.storage import (
    MinioAttachmentStore,
    UploadedFile,
    build_object_name,
    validate_upload,
)
from expense_claims.utils.errors import ValidationError

BASE_URL = "https://files.example.test"
BUCKET = "wd-attachments"


@pytest.fixture
def client():
    client = MagicMock()
    client.bucket_exists.return_value = True
    return client


@pytest.fixture
def store(client):
    return MinioAttachmentStore(client=client, bucket=BUCKET, base_url=BASE_URL + "/")


@pytest.mark.unit
class TestObjectNames:
    def test_claim_prefix(self):
        name = build_object_name(AttachmentOwnerKind.CLAIM, 12, "Receipt.PDF")
        assert name.startswith("claims/12/claim_12_")
        assert name.endswith(".pdf")

    def test_item_prefix(self):
        name = build_object_name(AttachmentOwnerKind.ITEM, 40, "photo.jpg")
        assert name.startswith("items/40/item_40_")

    def test_names_are_unique(self):
        first = build_object_name(AttachmentOwnerKind.ITEM, 1, "a.png")
        second = build_object_name(AttachmentOwnerKind.ITEM, 1, "a.png")
        assert first != second


@pytest.mark.unit
class TestValidateUpload:
    def test_accepts_pdf(self):
        validate_upload(UploadedFile(file_name="r.pdf", content=b"x"))

    def test_rejects_extension(self):
        with pytest.raises(ValidationError):
            validate_upload(UploadedFile(file_name="run.exe", content=b"x"))

    def test_rejects_missing_name(self):
        with pytest.raises(ValidationError):
            validate_upload(UploadedFile(file_name="", content=b"x"))


@pytest.mark.unit
class TestUrls:
    def test_round_trip_object_name(self, store):
        url = store.url_for("items/3/item_3_1_ab.pdf")
        assert url == f"{BASE_URL}/{BUCKET}/items/3/item_3_1_ab.pdf"
        assert store.object_name_from_url(url) == "items/3/item_3_1_ab.pdf"

    def test_foreign_url(self, store):
        assert store.object_name_from_url("https://elsewhere.test/other/x.pdf") is None


@pytest.mark.unit
class TestMinioCalls:
    @pytest.mark.asyncio
    async def test_upload_puts_object(self, store, client):
        stored = await store.upload(
            AttachmentOwnerKind.CLAIM,
            5,
            UploadedFile(file_name="r.pdf", content=b"12345", content_type="application/pdf"),
        )

        args = client.put_object.call_args
        assert args.args[0] == BUCKET
        assert args.args[1].startswith("claims/5/claim_5_")
        assert args.args[3] == 5
        assert args.kwargs["content_type"] == "application/pdf"
        assert stored.url == f"{BASE_URL}/{BUCKET}/{args.args[1]}"
        assert stored.size == 5
        assert stored.mime_type == "application/pdf"

    @pytest.mark.asyncio
    async def test_upload_creates_missing_bucket(self, store, client):
        client.bucket_exists.return_value = False
        await store.upload(AttachmentOwnerKind.ITEM, 1, UploadedFile(file_name="a.png", content=b"x"))
        client.make_bucket.assert_called_once_with(BUCKET)

    @pytest.mark.asyncio
    async def test_delete_removes_object(self, store, client):
        await store.delete(f"{BASE_URL}/{BUCKET}/items/3/item_3_1_ab.pdf")
        client.remove_object.assert_called_once_with(BUCKET, "items/3/item_3_1_ab.pdf")

    @pytest.mark.asyncio
    async def test_delete_is_idempotent(self, store, client):
        url = f"{BASE_URL}/{BUCKET}/items/3/item_3_1_ab.pdf"
        await store.delete(url)
        await store.delete(url)
        assert client.remove_object.call_count == 2

    @pytest.mark.asyncio
    async def test_delete_ignores_foreign_urls(self, store, client):
        await store.delete("https://elsewhere.test/other/x.pdf")
        client.remove_object.assert_not_called()
