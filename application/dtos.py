from dataclasses import dataclass
from pathlib import Path
from typing import Optional


@dataclass
class InstallRequest:
    manifest_path: Path
    connection_string: str
    container_name: str


@dataclass
class InstallResult:
    fingerprint: str
    archive_name: str
    cache_dir: Path
    is_cache_hit: bool
    published: bool
    install_output: str


@dataclass
class InstallationResult:
    success: bool
    returncode: int
    output: str
    error_output: Optional[str] = None
