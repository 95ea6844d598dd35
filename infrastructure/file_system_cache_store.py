import logging
import os
import shutil
from pathlib import Path

from domain.cache_store import CacheStore
from domain.errors import CacheConflictError, RemoteCacheError

logger = logging.getLogger(__name__)

FILE_SCHEME = "file://"


class FileSystemCacheStore(CacheStore):
    """
    Cache archive kept in a local directory tree: <root>/<container>/<blob>.

    Selected with a ``file://<root>`` connection string; useful for offline
    runs and for shared network drives.
    """

    def __init__(self, root_dir: Path, container_name: str, blob_name: str):
        super().__init__(container_name, blob_name)
        self.root_dir = Path(root_dir)
        self.container_dir = self.root_dir / container_name

    @classmethod
    def from_connection_string(cls, connection_string: str, container_name: str, blob_name: str) -> "FileSystemCacheStore":
        if not connection_string.startswith(FILE_SCHEME):
            raise RemoteCacheError(f"Not a file system connection string: {connection_string}")
        root = connection_string[len(FILE_SCHEME):]
        if not root:
            raise RemoteCacheError("File system connection string has no directory")
        return cls(Path(root), container_name, blob_name)

    @property
    def blob_path(self) -> Path:
        return self.container_dir / self.blob_name

    def exists(self) -> bool:
        if not self.root_dir.is_dir():
            raise RemoteCacheError(f"Cache root directory does not exist: {self.root_dir}")
        return self.blob_path.is_file()

    def download(self, local_path: Path) -> None:
        local_path = Path(local_path)
        try:
            src = open(self.blob_path, "rb")
        except OSError as e:
            raise RemoteCacheError(f"Failed to download {self.describe()}: {e}") from e

        with src, open(local_path, "xb") as dst:
            try:
                shutil.copyfileobj(src, dst)
            except Exception:
                dst.close()
                local_path.unlink(missing_ok=True)
                raise

        logger.debug("Copied %s to %s", self.blob_path, local_path)

    def upload(self, local_path: Path, overwrite: bool = False) -> None:
        self.container_dir.mkdir(parents=True, exist_ok=True)
        # Written next to the target, then moved into place in one step
        partial_path = self.blob_path.with_name(self.blob_path.name + ".partial")

        try:
            shutil.copyfile(local_path, partial_path)
            if overwrite:
                os.replace(partial_path, self.blob_path)
            else:
                # link() fails when the target exists, unlike rename() on POSIX
                os.link(partial_path, self.blob_path)
        except FileExistsError as e:
            raise CacheConflictError(f"{self.describe()} already exists") from e
        except OSError as e:
            raise RemoteCacheError(f"Failed to upload {self.describe()}: {e}") from e
        finally:
            partial_path.unlink(missing_ok=True)

        logger.debug("Copied %s to %s", local_path, self.blob_path)
