from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional
import logging
import shutil
import subprocess

from application.dtos import InstallationResult
from .errors import PackageManagerError

logger = logging.getLogger(__name__)

# Keeps child processes from flashing a console window on Windows; 0 elsewhere.
NO_WINDOW_FLAGS = getattr(subprocess, "CREATE_NO_WINDOW", 0)


class PackageManager(ABC):
    """Abstract base class for package managers whose global cache can be snapshotted."""

    def __init__(self, executable: str):
        """Initialize with the executable name or path of the package manager."""
        self.executable = executable

    @abstractmethod
    def cache_dir(self) -> Path:
        """Return the location of the package manager's global cache directory."""
        pass

    @abstractmethod
    def install(self, work_dir: Path) -> InstallationResult:
        """Install dependencies of the project in the given directory."""
        pass

    def _resolve_executable(self) -> str:
        resolved = shutil.which(self.executable)
        if resolved is None:
            raise PackageManagerError(
                f"Could not find '{self.executable}'. Make sure it is added to PATH "
                f"or pass its path as the fourth argument (-h for usage)."
            )
        return resolved

    def _run(self, args: List[str], cwd: Optional[Path] = None) -> subprocess.CompletedProcess:
        """Run the package manager with stdout and stderr captured as text."""
        cmd = [self._resolve_executable()] + args
        logger.debug("Running %s (cwd=%s)", cmd, cwd)
        try:
            return subprocess.run(
                cmd,
                cwd=str(cwd) if cwd is not None else None,
                capture_output=True,
                text=True,
                creationflags=NO_WINDOW_FLAGS
            )
        except OSError as e:
            raise PackageManagerError(f"Failed to run '{self.executable}': {e}") from e


class YarnPackageManager(PackageManager):
    """Yarn, driven through its `cache dir` and `install` sub-commands."""

    def __init__(self, executable: str = "yarn"):
        super().__init__(executable)

    def cache_dir(self) -> Path:
        """Ask yarn where its cache lives and validate the answer."""
        result = self._run(["cache", "dir"])
        if result.returncode != 0:
            raise PackageManagerError(
                f"'{self.executable} cache dir' failed with exit code {result.returncode}: "
                f"{result.stderr.strip()}"
            )

        return parse_cache_dir_output(result.stdout)

    def install(self, work_dir: Path) -> InstallationResult:
        """Run yarn install with work_dir as the working directory."""
        result = self._run(["install"], cwd=work_dir)

        return InstallationResult(
            success=result.returncode == 0,
            returncode=result.returncode,
            output=result.stdout.rstrip("\r\n"),
            error_output=result.stderr.rstrip("\r\n")
        )


def parse_cache_dir_output(output: str) -> Path:
    """
    Turn the captured output of `cache dir` into a path.

    Trailing line endings are stripped; anything that is empty, spans
    several lines or contains a NUL byte is rejected.
    """
    raw = output.rstrip("\r\n")
    if not raw.strip() or "\n" in raw or "\r" in raw or "\x00" in raw:
        raise PackageManagerError(
            "Invalid Yarn cache directory. Make sure Yarn is added to PATH or "
            "specify Yarn path in arguments (-h for usage)."
        )
    return Path(raw)
