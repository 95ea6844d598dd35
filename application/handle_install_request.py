import logging
from pathlib import Path
from typing import Optional

from domain.cache_store import CacheStore
from domain.errors import CacheConflictError, InstallFailedError
from domain.fingerprint import archive_name, compute_manifest_fingerprint
from domain.package_manager import PackageManager
from domain.zip_util import ZipUtil
from infrastructure.cache_store_factory import CacheStoreFactory
from application.dtos import InstallRequest, InstallResult

logger = logging.getLogger(__name__)


class HandleInstallRequest:
    """Orchestrates restore-if-present, install, and publish-if-missing."""

    def __init__(
        self,
        package_manager: PackageManager,
        store_factory: Optional[CacheStoreFactory] = None,
        zip_util: Optional[ZipUtil] = None
    ):
        self.package_manager = package_manager
        self.store_factory = store_factory or CacheStoreFactory()
        self.zip_util = zip_util or ZipUtil()

    def handle(self, request: InstallRequest) -> InstallResult:
        """Run one install against the remote cache and return what happened."""
        logger.info("Fetching Yarn cache directory...")
        cache_dir = self.package_manager.cache_dir()
        logger.info(" > Yarn cache directory: %s", cache_dir)

        manifest_path = Path(request.manifest_path)
        logger.info("Generating hash for %s...", manifest_path.name)
        fingerprint = compute_manifest_fingerprint(manifest_path)
        logger.info(" > Hash: %s", fingerprint)

        name = archive_name(fingerprint)
        archive_path = manifest_path.parent / name
        store = self.store_factory.create_store(
            request.connection_string,
            request.container_name,
            name
        )

        logger.info("Checking remote cache %s...", store.describe())
        # Decided once; the remote is not queried again during this run
        is_cache_hit = store.exists()
        logger.info(" > Cache %s.", "hit" if is_cache_hit else "miss")

        if is_cache_hit:
            self._restore(store, archive_path, cache_dir)

        install_output = self._install(manifest_path.parent)

        published = False
        if not is_cache_hit:
            published = self._publish(store, archive_path, cache_dir)

        logger.info(" > Finished.")

        return InstallResult(
            fingerprint=fingerprint,
            archive_name=name,
            cache_dir=cache_dir,
            is_cache_hit=is_cache_hit,
            published=published,
            install_output=install_output
        )

    def _restore(self, store: CacheStore, archive_path: Path, cache_dir: Path) -> None:
        """Replace the cache directory with the contents of the remote archive."""
        logger.info("Downloading pre-cached archive...")
        store.download(archive_path)

        try:
            logger.info("Cleaning up %s...", cache_dir)
            self.zip_util.clear_directory(cache_dir)

            logger.info("Uncompressing pre-cached archive...")
            self.zip_util.extract_zip_to_directory(archive_path, cache_dir)
        finally:
            archive_path.unlink(missing_ok=True)

    def _install(self, work_dir: Path) -> str:
        """Run the install sub-command; a non-zero exit is fatal."""
        logger.info("Installing and building Yarn packages...")
        result = self.package_manager.install(work_dir)

        logger.info(" > Process output:")
        logger.info("%s", result.output)

        if not result.success:
            if result.error_output:
                logger.error("%s", result.error_output)
            raise InstallFailedError(result.returncode, result.output)

        return result.output

    def _publish(self, store: CacheStore, archive_path: Path, cache_dir: Path) -> bool:
        """Upload a snapshot of the cache directory. Returns False if another run won."""
        logger.info("Compressing Yarn cache...")
        try:
            self.zip_util.create_zip_from_directory(cache_dir, archive_path)
        except FileExistsError:
            # Not ours; left for the user to inspect
            raise
        except Exception:
            archive_path.unlink(missing_ok=True)
            raise

        try:
            logger.info("Uploading pre-cached archive...")
            store.upload(archive_path, overwrite=False)
        except CacheConflictError as e:
            logger.warning(" > %s; another run published it first.", e)
            return False
        finally:
            logger.info("Cleaning up...")
            archive_path.unlink(missing_ok=True)

        return True
