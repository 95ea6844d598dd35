"""ZIP utility for snapshotting and restoring the package manager cache directory."""
import os
import shutil
import zipfile
from pathlib import Path


class ZipUtil:
    """Utility class for moving a directory in and out of a ZIP archive."""

    @staticmethod
    def create_zip_from_directory(source_dir: Path, zip_path: Path) -> None:
        """
        Creates a new ZIP at zip_path holding every file and directory
        below source_dir, with arcnames relative to source_dir.

        Empty directories are stored as directory entries so that the
        restored tree matches the original one. Symlinked files are stored
        with the content they point at; symlinked directories are not
        descended into and are left out of the archive. A dangling link
        raises OSError.

        Args:
            source_dir: Directory to compress
            zip_path: Path where the ZIP file should be created

        Raises:
            FileExistsError: If zip_path already exists
        """
        source_dir = Path(source_dir)

        with zipfile.ZipFile(zip_path, "x", zipfile.ZIP_DEFLATED) as zf:
            for root, dirnames, filenames in os.walk(source_dir):
                root_path = Path(root)
                dirnames.sort()

                if root_path != source_dir and not dirnames and not filenames:
                    zf.write(root_path, root_path.relative_to(source_dir).as_posix() + "/")

                for filename in sorted(filenames):
                    file_path = root_path / filename
                    zf.write(file_path, file_path.relative_to(source_dir).as_posix())

    @staticmethod
    def extract_zip_to_directory(zip_path: Path, dest_dir: Path) -> None:
        """
        Extracts every member of the ZIP at zip_path into dest_dir.

        Member names that would escape dest_dir are sanitized by zipfile.
        """
        Path(dest_dir).mkdir(parents=True, exist_ok=True)

        with zipfile.ZipFile(zip_path, "r") as zf:
            zf.extractall(dest_dir)

    @staticmethod
    def clear_directory(directory: Path) -> None:
        """
        Deletes all files and subdirectories inside directory, keeping
        the directory itself. A missing directory is created empty.

        Errors are not caught: a failure part way through leaves the
        directory partially cleared.
        """
        directory = Path(directory)
        if not directory.exists():
            directory.mkdir(parents=True)
            return

        for entry in directory.iterdir():
            if entry.is_dir() and not entry.is_symlink():
                shutil.rmtree(entry)
            else:
                entry.unlink()
