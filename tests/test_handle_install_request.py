import pytest
import zipfile
from pathlib import Path
from unittest.mock import Mock, call

from application.dtos import InstallRequest, InstallationResult
from application.handle_install_request import HandleInstallRequest
from domain.cache_store import CacheStore
from domain.errors import (
    CacheConflictError,
    InstallFailedError,
    ManifestNotFoundError,
    PackageManagerError,
    RemoteCacheError
)
from domain.package_manager import PackageManager
from domain.zip_util import ZipUtil
from infrastructure.cache_store_factory import CacheStoreFactory

FINGERPRINT = "ac3ef48caa08fa3ed5e025da69edc645"
ARCHIVE_NAME = f"yarn-pre-cache-{FINGERPRINT}.zip"


def _write_archive(path: Path, files):
    with zipfile.ZipFile(path, "x", zipfile.ZIP_DEFLATED) as zf:
        for name, content in files.items():
            zf.writestr(name, content)


class RecordingZipUtil(ZipUtil):
    """ZipUtil that records the cache directory contents seen at extraction time."""
    
    def __init__(self):
        self.contents_before_extract = None
    
    def extract_zip_to_directory(self, zip_path, dest_dir):
        self.contents_before_extract = sorted(p.name for p in Path(dest_dir).iterdir())
        super().extract_zip_to_directory(zip_path, dest_dir)


class TestHandleInstallRequest:
    """Test cases for HandleInstallRequest orchestration."""
    
    @pytest.fixture
    def project_dir(self, tmp_path):
        project = tmp_path / "project"
        project.mkdir()
        (project / "package.json").write_bytes(b'{"x":1}')
        return project
    
    @pytest.fixture
    def cache_dir(self, tmp_path):
        cache = tmp_path / "yarn-cache"
        (cache / "stale-pkg").mkdir(parents=True)
        (cache / "stale-pkg" / "index.js").write_text("old")
        (cache / ".tmp").write_text("old")
        return cache
    
    @pytest.fixture
    def mock_package_manager(self, cache_dir):
        manager = Mock(spec=PackageManager)
        manager.cache_dir.return_value = cache_dir
        manager.install.return_value = InstallationResult(
            success=True, returncode=0, output="Done in 0.5s."
        )
        return manager
    
    @pytest.fixture
    def mock_store(self):
        store = Mock(spec=CacheStore)
        store.describe.return_value = f"yarn-cache/{ARCHIVE_NAME}"
        return store
    
    @pytest.fixture
    def mock_store_factory(self, mock_store):
        factory = Mock(spec=CacheStoreFactory)
        factory.create_store.return_value = mock_store
        return factory
    
    @pytest.fixture
    def zip_util(self):
        return RecordingZipUtil()
    
    @pytest.fixture
    def handler(self, mock_package_manager, mock_store_factory, zip_util):
        return HandleInstallRequest(
            package_manager=mock_package_manager,
            store_factory=mock_store_factory,
            zip_util=zip_util
        )
    
    @pytest.fixture
    def request_(self, project_dir):
        return InstallRequest(
            manifest_path=project_dir / "package.json",
            connection_string="UseDevelopmentStorage=true",
            container_name="yarn-cache"
        )
    
    def test_store_addressed_by_archive_name(self, handler, request_, mock_store, mock_store_factory):
        mock_store.exists.return_value = False
        
        handler.handle(request_)
        
        mock_store_factory.create_store.assert_called_once_with(
            "UseDevelopmentStorage=true", "yarn-cache", ARCHIVE_NAME
        )
    
    def test_cache_miss_installs_and_publishes(self, handler, request_, project_dir, cache_dir,
                                               mock_store, mock_package_manager):
        mock_store.exists.return_value = False
        uploaded = {}
        
        def capture_upload(local_path, overwrite=False):
            with zipfile.ZipFile(local_path) as zf:
                uploaded["names"] = sorted(zf.namelist())
            uploaded["path"] = local_path
        
        mock_store.upload.side_effect = capture_upload
        
        result = handler.handle(request_)
        
        assert result.is_cache_hit is False
        assert result.published is True
        assert result.fingerprint == FINGERPRINT
        assert result.archive_name == ARCHIVE_NAME
        assert result.cache_dir == cache_dir
        assert result.install_output == "Done in 0.5s."
        mock_package_manager.install.assert_called_once_with(project_dir)
        mock_store.upload.assert_called_once()
        mock_store.download.assert_not_called()
        assert uploaded["path"] == project_dir / ARCHIVE_NAME
        assert uploaded["names"] == [".tmp", "stale-pkg/index.js"]
        assert not (project_dir / ARCHIVE_NAME).exists()
    
    def test_cache_miss_upload_is_conditional(self, handler, request_, mock_store):
        mock_store.exists.return_value = False
        
        handler.handle(request_)
        
        args, kwargs = mock_store.upload.call_args
        assert kwargs['overwrite'] is False
    
    def test_cache_hit_restores_and_does_not_publish(self, handler, request_, project_dir, cache_dir,
                                                     mock_store, mock_package_manager, zip_util):
        mock_store.exists.return_value = True
        mock_store.download.side_effect = lambda local_path: _write_archive(
            local_path, {"a.txt": b"a", "b/c.txt": b"c"}
        )
        
        result = handler.handle(request_)
        
        assert result.is_cache_hit is True
        assert result.published is False
        mock_store.download.assert_called_once_with(project_dir / ARCHIVE_NAME)
        mock_store.upload.assert_not_called()
        mock_package_manager.install.assert_called_once_with(project_dir)
        assert zip_util.contents_before_extract == []
        restored = sorted(p.relative_to(cache_dir).as_posix() for p in cache_dir.rglob("*") if p.is_file())
        assert restored == ["a.txt", "b/c.txt"]
        assert not (project_dir / ARCHIVE_NAME).exists()
    
    def test_remote_queried_once(self, handler, request_, mock_store):
        mock_store.exists.side_effect = [False, True]
        
        handler.handle(request_)
        
        assert mock_store.exists.call_count == 1
        mock_store.upload.assert_called_once()
    
    def test_restore_happens_before_install(self, handler, request_, mock_store, mock_package_manager):
        events = []
        mock_store.exists.return_value = True
        mock_store.download.side_effect = lambda local_path: (
            events.append("download"), _write_archive(local_path, {"a.txt": b"a"})
        )
        mock_package_manager.install.side_effect = lambda work_dir: (
            events.append("install"),
            InstallationResult(success=True, returncode=0, output="")
        )[1]
        
        handler.handle(request_)
        
        assert events == ["download", "install"]
    
    def test_failed_install_skips_publish(self, handler, request_, project_dir, mock_store, mock_package_manager):
        mock_store.exists.return_value = False
        mock_package_manager.install.return_value = InstallationResult(
            success=False, returncode=1, output="resolving packages", error_output="error Couldn't find package"
        )
        
        with pytest.raises(InstallFailedError) as exc_info:
            handler.handle(request_)
        
        assert exc_info.value.returncode == 1
        assert exc_info.value.output == "resolving packages"
        mock_store.upload.assert_not_called()
        assert not (project_dir / ARCHIVE_NAME).exists()
    
    def test_cache_dir_failure_stops_before_anything_else(self, handler, request_, mock_package_manager,
                                                          mock_store_factory):
        mock_package_manager.cache_dir.side_effect = PackageManagerError("Invalid Yarn cache directory.")
        
        with pytest.raises(PackageManagerError):
            handler.handle(request_)
        
        mock_store_factory.create_store.assert_not_called()
        mock_package_manager.install.assert_not_called()
    
    def test_missing_manifest(self, handler, request_, project_dir, mock_store_factory, mock_package_manager):
        (project_dir / "package.json").unlink()
        
        with pytest.raises(ManifestNotFoundError):
            handler.handle(request_)
        
        mock_store_factory.create_store.assert_not_called()
        mock_package_manager.install.assert_not_called()
    
    def test_remote_error_is_fatal(self, handler, request_, mock_store, mock_package_manager):
        mock_store.exists.side_effect = RemoteCacheError("Failed to access Azure: AuthenticationFailed")
        
        with pytest.raises(RemoteCacheError):
            handler.handle(request_)
        
        mock_package_manager.install.assert_not_called()
    
    def test_upload_conflict_is_not_fatal(self, handler, request_, project_dir, mock_store):
        mock_store.exists.return_value = False
        mock_store.upload.side_effect = CacheConflictError("already exists")
        
        result = handler.handle(request_)
        
        assert result.published is False
        assert not (project_dir / ARCHIVE_NAME).exists()
    
    def test_upload_failure_propagates_and_cleans_archive(self, handler, request_, project_dir, mock_store):
        mock_store.exists.return_value = False
        mock_store.upload.side_effect = RemoteCacheError("Failed to upload")
        
        with pytest.raises(RemoteCacheError):
            handler.handle(request_)
        
        assert not (project_dir / ARCHIVE_NAME).exists()
    
    def test_stale_local_archive_fails_publish(self, handler, request_, project_dir, mock_store):
        mock_store.exists.return_value = False
        (project_dir / ARCHIVE_NAME).write_bytes(b"stale")
        
        with pytest.raises(FileExistsError):
            handler.handle(request_)
        
        mock_store.upload.assert_not_called()
        assert (project_dir / ARCHIVE_NAME).read_bytes() == b"stale"
    
    def test_failed_compression_removes_partial_archive(self, mock_package_manager, mock_store_factory,
                                                        mock_store, request_, project_dir):
        class FailingZipUtil(ZipUtil):
            def create_zip_from_directory(self, source_dir, zip_path):
                Path(zip_path).write_bytes(b"PK\x03\x04 half written")
                raise OSError(28, "No space left on device")
        
        mock_store.exists.return_value = False
        handler = HandleInstallRequest(
            package_manager=mock_package_manager,
            store_factory=mock_store_factory,
            zip_util=FailingZipUtil()
        )
        
        with pytest.raises(OSError):
            handler.handle(request_)
        
        mock_store.upload.assert_not_called()
        assert not (project_dir / ARCHIVE_NAME).exists()
    
    def test_dangling_link_in_cache_does_not_block_next_run(self, handler, request_, project_dir, cache_dir,
                                                            mock_store):
        try:
            (cache_dir / "dangling").symlink_to(cache_dir / "gone")
        except (OSError, NotImplementedError):
            pytest.skip("symlinks not supported")
        mock_store.exists.return_value = False
        
        with pytest.raises(OSError):
            handler.handle(request_)
        
        assert not (project_dir / ARCHIVE_NAME).exists()
