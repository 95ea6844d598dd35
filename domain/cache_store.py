from abc import ABC, abstractmethod
from pathlib import Path


class CacheStore(ABC):
    """
    Abstract client for a single remote cache archive.

    Each instance is addressed at one object (container + object name)
    when it is created; the operations below act on that object only.
    """

    def __init__(self, container_name: str, blob_name: str):
        self.container_name = container_name
        self.blob_name = blob_name

    @abstractmethod
    def exists(self) -> bool:
        """
        Check if the archive exists in the remote store.

        Returns:
            True if the object exists, False otherwise

        Raises:
            RemoteCacheError: If the store cannot be reached or refuses access
        """
        pass

    @abstractmethod
    def download(self, local_path: Path) -> None:
        """
        Download the full archive to a new local file.

        The local file must not exist yet; a stale archive is never
        overwritten or appended to. A failed transfer leaves no file behind.

        Args:
            local_path: Where the archive should be written

        Raises:
            FileExistsError: If local_path already exists
            RemoteCacheError: If the transfer fails
        """
        pass

    @abstractmethod
    def upload(self, local_path: Path, overwrite: bool = False) -> None:
        """
        Upload the full content of a local file as the archive.

        Args:
            local_path: The archive to push
            overwrite: Replace an existing object instead of failing

        Raises:
            CacheConflictError: If overwrite is False and the object already exists
            RemoteCacheError: If the transfer fails
        """
        pass

    def describe(self) -> str:
        """Human-readable address of the archive, used in log lines."""
        return f"{self.container_name}/{self.blob_name}"
