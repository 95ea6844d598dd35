import logging
from pathlib import Path
from typing import Optional

from azure.core.exceptions import AzureError, ResourceExistsError
from azure.storage.blob import BlobClient, BlobServiceClient

from domain.cache_store import CacheStore
from domain.errors import CacheConflictError, RemoteCacheError

logger = logging.getLogger(__name__)


class AzureBlobCacheStore(CacheStore):
    """Cache archive stored as a block blob in an Azure Storage container."""

    def __init__(self, connection_string: str, container_name: str, blob_name: str):
        super().__init__(container_name, blob_name)
        self._connection_string = connection_string
        self._blob_client: Optional[BlobClient] = None

    @property
    def blob_client(self) -> BlobClient:
        """Client for the addressed blob, created on first use."""
        if self._blob_client is None:
            try:
                service = BlobServiceClient.from_connection_string(self._connection_string)
                self._blob_client = service.get_blob_client(
                    container=self.container_name,
                    blob=self.blob_name
                )
            except (ValueError, AzureError) as e:
                raise RemoteCacheError(f"Failed to access Azure: {e}") from e
        return self._blob_client

    def exists(self) -> bool:
        try:
            return self.blob_client.exists()
        except AzureError as e:
            raise RemoteCacheError(f"Failed to access Azure: {e}") from e

    def download(self, local_path: Path) -> None:
        local_path = Path(local_path)
        blob_client = self.blob_client

        # "x" refuses to reuse a stale archive left at local_path
        f = open(local_path, "xb")
        try:
            with f:
                blob_client.download_blob().readinto(f)
        except AzureError as e:
            local_path.unlink(missing_ok=True)
            raise RemoteCacheError(f"Failed to download {self.describe()}: {e}") from e
        except Exception:
            local_path.unlink(missing_ok=True)
            raise

        logger.debug("Downloaded %s to %s", self.describe(), local_path)

    def upload(self, local_path: Path, overwrite: bool = False) -> None:
        blob_client = self.blob_client
        try:
            with open(local_path, "rb") as data:
                blob_client.upload_blob(data, overwrite=overwrite)
        except ResourceExistsError as e:
            raise CacheConflictError(f"{self.describe()} already exists") from e
        except AzureError as e:
            raise RemoteCacheError(f"Failed to upload {self.describe()}: {e}") from e

        logger.debug("Uploaded %s to %s", local_path, self.describe())
