"""
Tests for the Azure Blob Storage bucket adapter.

The SDK is replaced by mocks in sys.modules; no network access.
"""
from __future__ import annotations

import io
import sys
import types
from unittest.mock import MagicMock, patch

import pytest

from thanos_blocks.settings import Settings
from thanos_blocks.storage.azure import AzureBucket
from thanos_blocks.storage.errors import BucketError, ObjectNotFoundError

CONN_STR = "DefaultEndpointsProtocol=https;AccountName=devstore;AccountKey=testkey"


class ResourceNotFoundError(Exception):
    """Stand-in for azure.core.exceptions.ResourceNotFoundError."""


@pytest.fixture
def azure_sdk():
    """Install a mocked azure SDK and return the BlobServiceClient mock."""
    service_cls = MagicMock(name="BlobServiceClient")
    blob_mod = types.ModuleType("azure.storage.blob")
    blob_mod.BlobServiceClient = service_cls
    exc_mod = types.ModuleType("azure.core.exceptions")
    exc_mod.ResourceNotFoundError = ResourceNotFoundError

    modules = {
        "azure": types.ModuleType("azure"),
        "azure.storage": types.ModuleType("azure.storage"),
        "azure.storage.blob": blob_mod,
        "azure.core": types.ModuleType("azure.core"),
        "azure.core.exceptions": exc_mod,
    }
    with patch.dict(sys.modules, modules):
        yield service_cls


def container_of(service_cls):
    """The container client mock handed out by either constructor path."""
    return service_cls.from_connection_string.return_value.get_container_client.return_value


def settings(**kwargs):
    return Settings(bucket_url="az://blocks", **kwargs)


class TestAzureBucketConstruction:
    """Test constructor validation; no SDK needed."""

    def test_requires_auth(self):
        with pytest.raises(ValueError, match="Azure authentication not configured"):
            AzureBucket("blocks", settings=settings())

    def test_requires_container(self):
        with pytest.raises(ValueError, match="container name is required"):
            AzureBucket("", settings=settings(az_connection_string=CONN_STR))

    def test_connection_string(self):
        bkt = AzureBucket("blocks", settings=settings(az_connection_string=CONN_STR))
        assert bkt.name == "az://blocks"

    def test_account_key(self):
        bkt = AzureBucket("blocks", settings=settings(az_account="acct", az_key="key"))
        assert bkt.name == "az://blocks"

    def test_methods_require_azure_sdk(self):
        bkt = AzureBucket("blocks", settings=settings(az_connection_string=CONN_STR))

        with patch.dict(sys.modules, {"azure.storage.blob": None}):
            with pytest.raises(ImportError, match="azure-storage-blob package required"):
                bkt.exists("a/b")
            with pytest.raises(ImportError, match="azure-storage-blob package required"):
                bkt.upload("a/b", io.BytesIO(b"x"))


class TestAzureConnectionPatterns:

    def test_connection_string(self, azure_sdk):
        bkt = AzureBucket("blocks", settings=settings(az_connection_string=CONN_STR, timeout_s=5))
        bkt.exists("k")

        azure_sdk.from_connection_string.assert_called_once_with(CONN_STR, connection_timeout=5)
        azure_sdk.from_connection_string.return_value.get_container_client.assert_called_once_with("blocks")

    def test_connection_string_with_endpoint(self, azure_sdk):
        s = settings(az_connection_string=CONN_STR, az_blob_endpoint="http://127.0.0.1:10000/")
        AzureBucket("blocks", settings=s).exists("k")

        azure_sdk.assert_called_once_with(
            account_url="http://127.0.0.1:10000/devstore",
            credential={"account_name": "devstore", "account_key": "testkey"},
            connection_timeout=60.0,
        )

    def test_connection_string_without_key_with_endpoint(self, azure_sdk):
        s = settings(az_connection_string="AccountName=devstore;SharedAccessSignature=sv=x",
                     az_blob_endpoint="http://127.0.0.1:10000")
        AzureBucket("blocks", settings=s).exists("k")

        azure_sdk.assert_called_once_with(account_url="http://127.0.0.1:10000/devstore",
                                          credential=None, connection_timeout=60.0)

    def test_account_key(self, azure_sdk):
        AzureBucket("blocks", settings=settings(az_account="acct", az_key="key")).exists("k")

        azure_sdk.assert_called_once_with(account_url="https://acct.blob.core.windows.net",
                                          credential="key", connection_timeout=60.0)

    def test_account_key_with_endpoint(self, azure_sdk):
        s = settings(az_account="acct", az_key="key", az_blob_endpoint="http://azurite:10000")
        AzureBucket("blocks", settings=s).exists("k")

        azure_sdk.assert_called_once_with(account_url="http://azurite:10000/acct",
                                          credential="key", connection_timeout=60.0)

    def test_client_created_once(self, azure_sdk):
        bkt = AzureBucket("blocks", settings=settings(az_connection_string=CONN_STR))
        bkt.exists("a")
        bkt.exists("b")
        assert azure_sdk.from_connection_string.call_count == 1


class TestAzureBucketOperations:

    @pytest.fixture
    def bkt(self, azure_sdk):
        return AzureBucket("blocks", settings=settings(az_connection_string=CONN_STR))

    @pytest.fixture
    def container(self, azure_sdk):
        return container_of(azure_sdk)

    def test_iter_lists_direct_children(self, bkt, container):
        container.walk_blobs.return_value = [
            types.SimpleNamespace(name="01ARZ3NDEKTSV4RRFFQ69G5FAV/chunks/"),
            types.SimpleNamespace(name="01ARZ3NDEKTSV4RRFFQ69G5FAV/index"),
        ]

        keys = list(bkt.iter("01ARZ3NDEKTSV4RRFFQ69G5FAV"))

        assert keys == ["01ARZ3NDEKTSV4RRFFQ69G5FAV/chunks/", "01ARZ3NDEKTSV4RRFFQ69G5FAV/index"]
        container.walk_blobs.assert_called_once_with(
            name_starts_with="01ARZ3NDEKTSV4RRFFQ69G5FAV/", delimiter="/")

    def test_iter_root(self, bkt, container):
        container.walk_blobs.return_value = []
        assert list(bkt.iter("")) == []
        container.walk_blobs.assert_called_once_with(name_starts_with=None, delimiter="/")

    def test_iter_failure(self, bkt, container):
        container.walk_blobs.side_effect = RuntimeError("boom")
        with pytest.raises(BucketError, match="boom"):
            list(bkt.iter("x"))

    def test_get(self, bkt, container):
        container.download_blob.return_value.readall.return_value = b"payload"
        with bkt.get("a/b") as reader:
            assert reader.read() == b"payload"
        container.download_blob.assert_called_once_with("a/b")

    def test_get_missing(self, bkt, container):
        container.download_blob.side_effect = ResourceNotFoundError("gone")
        with pytest.raises(ObjectNotFoundError):
            bkt.get("a/b")

    def test_get_failure(self, bkt, container):
        container.download_blob.side_effect = RuntimeError("throttled")
        with pytest.raises(BucketError, match="throttled") as exc_info:
            bkt.get("a/b")
        assert not isinstance(exc_info.value, ObjectNotFoundError)

    def test_exists(self, bkt, container):
        container.get_blob_client.return_value.exists.return_value = True
        assert bkt.exists("a/b") is True
        container.get_blob_client.assert_called_once_with("a/b")

    def test_upload_overwrites(self, bkt, container):
        data = io.BytesIO(b"x")
        bkt.upload("a/b", data)
        container.upload_blob.assert_called_once_with(name="a/b", data=data, overwrite=True)

    def test_upload_failure(self, bkt, container):
        container.upload_blob.side_effect = RuntimeError("denied")
        with pytest.raises(BucketError, match="denied"):
            bkt.upload("a/b", io.BytesIO(b"x"))

    def test_delete(self, bkt, container):
        bkt.delete("a/b")
        container.delete_blob.assert_called_once_with("a/b")

    def test_delete_missing(self, bkt, container):
        container.delete_blob.side_effect = ResourceNotFoundError("gone")
        with pytest.raises(ObjectNotFoundError):
            bkt.delete("a/b")

    def test_unsafe_key_rejected_before_sdk(self, bkt, container):
        with pytest.raises(ValueError, match="unsafe key"):
            bkt.upload("../escape", io.BytesIO(b"x"))
        container.upload_blob.assert_not_called()
