"""Errors raised while restoring, installing and publishing the Yarn cache."""

from typing import Optional


class YarnCacherError(RuntimeError):
    """Base class for every failure the CLI reports to the user."""


class PackageManagerError(YarnCacherError):
    """The package manager could not be run or returned unusable output."""


class ManifestNotFoundError(YarnCacherError, FileNotFoundError):
    """The dependency manifest does not exist."""


class RemoteCacheError(YarnCacherError):
    """The remote blob store could not be accessed."""


class CacheConflictError(RemoteCacheError):
    """Another writer created the remote archive first."""


class InstallFailedError(YarnCacherError):
    """The install sub-command exited with a non-zero status."""

    def __init__(self, returncode: int, output: Optional[str] = None):
        super().__init__(f"yarn install failed with exit code {returncode}")
        self.returncode = returncode
        self.output = output or ""
