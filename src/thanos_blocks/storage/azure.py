"""
Bucket backed by an Azure Blob Storage container.

Uses the azure-storage-blob SDK with connection string or account+key
authentication, and supports custom endpoints for Azurite and private Azure
clouds. Retries of individual requests are left to the SDK's retry policy.
"""
from __future__ import annotations

import io
import logging
import re
from typing import IO, Iterator

from ..path_safety import safe_key, safe_prefix
from ..settings import Settings
from .base import DIR_DELIMITER, Bucket
from .errors import BucketError, ObjectNotFoundError

__all__ = ["AzureBucket"]

logger = logging.getLogger(__name__)

_SDK_REQUIRED = "azure-storage-blob package required for Azure buckets"


class AzureBucket(Bucket):
    """
    Bucket adapter for one Azure Blob Storage container.

    The container client is created lazily on first use so constructing the
    adapter never touches the network.
    """

    def __init__(self, container: str, *, settings: Settings) -> None:
        """
        Initialize Azure bucket.

        Args:
            container: Blob container name
            settings: Settings containing Azure authentication and configuration

        Raises:
            ValueError: If the container name is empty or Azure authentication
                is not configured
        """
        if not container:
            raise ValueError("Azure container name is required")
        self._container_name = container
        self._settings = settings
        self._container_client = None
        self._validate_azure_auth()

        if settings.az_blob_endpoint:
            logger.debug(f"Azure bucket {container} using custom endpoint: {settings.az_blob_endpoint}")
        logger.debug(f"Azure bucket timeout: {settings.timeout_s}s")

    def _validate_azure_auth(self) -> None:
        has_conn_str = bool(self._settings.az_connection_string)
        has_account_key = bool(self._settings.az_account and self._settings.az_key)
        if not has_conn_str and not has_account_key:
            raise ValueError("Azure authentication not configured: need AZURE_STORAGE_CONNECTION_STRING "
                             "or (AZURE_STORAGE_ACCOUNT + AZURE_STORAGE_KEY)")

    @property
    def name(self) -> str:
        return f"az://{self._container_name}"

    def _client(self):
        """
        Get the container client, creating it on first use.

        Connection patterns:

        1. Connection string: ``BlobServiceClient.from_connection_string()``
        2. Connection string + custom endpoint: account name taken from the
           connection string, endpoint ``{endpoint}/{account}`` (Azurite)
        3. Account + key: ``https://{account}.blob.core.windows.net``
        4. Account + key + custom endpoint: ``{endpoint}/{account}``
        """
        if self._container_client is not None:
            return self._container_client

        try:
            from azure.storage.blob import BlobServiceClient
        except ImportError:
            raise ImportError(_SDK_REQUIRED)

        s = self._settings
        common = {"connection_timeout": s.timeout_s}
        if s.az_connection_string:
            account_match = re.search(r"AccountName=([^;]+)", s.az_connection_string)
            key_match = re.search(r"AccountKey=([^;]+)", s.az_connection_string)
            if s.az_blob_endpoint and account_match:
                account = account_match.group(1)
                account_url = f"{s.az_blob_endpoint.rstrip('/')}/{account}"
                credential = None
                if key_match:
                    credential = {"account_name": account, "account_key": key_match.group(1)}
                service = BlobServiceClient(account_url=account_url, credential=credential, **common)
            else:
                service = BlobServiceClient.from_connection_string(s.az_connection_string, **common)
        else:
            if s.az_blob_endpoint:
                account_url = f"{s.az_blob_endpoint.rstrip('/')}/{s.az_account}"
            else:
                account_url = f"https://{s.az_account}.blob.core.windows.net"
            service = BlobServiceClient(account_url=account_url, credential=s.az_key, **common)

        self._container_client = service.get_container_client(self._container_name)
        return self._container_client

    @staticmethod
    def _not_found_error():
        try:
            from azure.core.exceptions import ResourceNotFoundError
        except ImportError:
            raise ImportError(_SDK_REQUIRED)
        return ResourceNotFoundError

    def iter(self, prefix: str) -> Iterator[str]:
        prefix = safe_prefix(prefix)
        starts_with = prefix + DIR_DELIMITER if prefix else None
        client = self._client()
        try:
            items = list(client.walk_blobs(name_starts_with=starts_with, delimiter=DIR_DELIMITER))
        except Exception as e:
            raise BucketError(f"list {self.name}:{prefix}: {e}") from e
        for item in items:
            yield item.name

    def get(self, key: str) -> IO[bytes]:
        key = safe_key(key)
        not_found = self._not_found_error()
        client = self._client()
        try:
            downloader = client.download_blob(key)
            return io.BytesIO(downloader.readall())
        except not_found as e:
            raise ObjectNotFoundError(f"get {self.name}:{key}: not found") from e
        except Exception as e:
            raise BucketError(f"get {self.name}:{key}: {e}") from e

    def exists(self, key: str) -> bool:
        key = safe_key(key)
        client = self._client()
        try:
            return bool(client.get_blob_client(key).exists())
        except Exception as e:
            raise BucketError(f"exists {self.name}:{key}: {e}") from e

    def upload(self, key: str, data: IO[bytes]) -> None:
        key = safe_key(key)
        client = self._client()
        try:
            client.upload_blob(name=key, data=data, overwrite=True)
        except Exception as e:
            raise BucketError(f"upload {self.name}:{key}: {e}") from e

    def delete(self, key: str) -> None:
        key = safe_key(key)
        not_found = self._not_found_error()
        client = self._client()
        try:
            client.delete_blob(key)
        except not_found as e:
            raise ObjectNotFoundError(f"delete {self.name}:{key}: not found") from e
        except Exception as e:
            raise BucketError(f"delete {self.name}:{key}: {e}") from e
