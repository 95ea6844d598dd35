from domain.cache_store import CacheStore
from infrastructure.azure_blob_cache_store import AzureBlobCacheStore
from infrastructure.file_system_cache_store import FILE_SCHEME, FileSystemCacheStore


class CacheStoreFactory:
    """Factory for creating the cache store a connection string points at."""

    def create_store(self, connection_string: str, container_name: str, blob_name: str) -> CacheStore:
        """Return a file system store for file:// strings, an Azure store otherwise."""
        if connection_string.startswith(FILE_SCHEME):
            return FileSystemCacheStore.from_connection_string(connection_string, container_name, blob_name)
        return AzureBlobCacheStore(connection_string, container_name, blob_name)
