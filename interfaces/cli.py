import argparse
import logging
import os
import sys
import zipfile
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from application.dtos import InstallRequest
from application.handle_install_request import HandleInstallRequest
from domain.errors import InstallFailedError, YarnCacherError
from domain.package_manager import YarnPackageManager
from infrastructure.cache_store_factory import CacheStoreFactory

logger = logging.getLogger(__name__)

USAGE = (
    "yarn-cacher <path-to-package.json> <azure-storage-connection-string> "
    "<azure-blob-container> [yarn-path]"
)
BANNER = " *** YarnCacher for Azure *** "
LOG_LEVEL_ENV = "YARN_CACHER_LOG_LEVEL"


class CacherConfig(BaseModel):
    """Validated command line configuration."""
    manifest_path: Path = Field(..., description="Path to the project's package.json")
    connection_string: str = Field(..., description="Azure Storage connection string, or file://<dir>")
    container_name: str = Field(..., description="Blob container holding the cache archives")
    yarn_path: str = Field("yarn", description="Yarn executable name or path")
    log_level: str = Field("INFO", description="Logging level")

    @field_validator("manifest_path")
    @classmethod
    def absolute_manifest_path(cls, value: Path) -> Path:
        return value.expanduser().absolute()

    @field_validator("connection_string", "container_name", "yarn_path")
    @classmethod
    def not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be empty")
        return value

    @field_validator("log_level")
    @classmethod
    def known_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"unknown log level {value!r}")
        return level

    def to_request(self) -> InstallRequest:
        return InstallRequest(
            manifest_path=self.manifest_path,
            connection_string=self.connection_string,
            container_name=self.container_name
        )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="yarn-cacher",
        usage=USAGE,
        description="Restore and publish the Yarn cache as an archive in Azure Blob Storage."
    )
    parser.add_argument('manifest_path', help='Path to package.json')
    parser.add_argument('connection_string',
                        help='Azure Storage connection string (or file://<dir> for a local store)')
    parser.add_argument('container_name', help='Blob container holding the cache archives')
    parser.add_argument('yarn_path', nargs='?', default='yarn',
                        help='Yarn executable (default: yarn on PATH)')
    return parser


def configure_logging(level: str) -> None:
    logging.basicConfig(level=level, format="%(message)s", stream=sys.stdout)


def main(argv: Optional[List[str]] = None) -> int:
    if argv is None:
        argv = sys.argv[1:]

    parser = build_parser()

    # Help and short invocations touch nothing
    if len(argv) < 3 or argv[0] in ('-h', '--help'):
        parser.print_help()
        return 0

    args = parser.parse_args(argv)

    try:
        config = CacherConfig(
            manifest_path=args.manifest_path,
            connection_string=args.connection_string,
            container_name=args.container_name,
            yarn_path=args.yarn_path,
            log_level=os.environ.get(LOG_LEVEL_ENV, "INFO")
        )
    except ValidationError as e:
        print(f"Error: {e}", file=sys.stderr)
        parser.print_usage(sys.stderr)
        return 2

    configure_logging(config.log_level)
    print(BANNER)

    handler = HandleInstallRequest(
        package_manager=YarnPackageManager(config.yarn_path),
        store_factory=CacheStoreFactory()
    )

    try:
        handler.handle(config.to_request())
    except InstallFailedError as e:
        print(f"Error: {e}; the cache was not published.", file=sys.stderr)
        return 1
    except (YarnCacherError, OSError, zipfile.BadZipFile) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0
