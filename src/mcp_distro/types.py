"""Core type definitions"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Tuple

BOOTSTRAP_ARCHIVE = "bootstrap.tar.xz"
ROOTFS_MARKERS = ("bin", "usr", "etc")


class InstallationStatus(Enum):
    NOT_INSTALLED = "not_installed"
    DOWNLOADING = "downloading"
    EXTRACTING = "extracting"
    CONFIGURING = "configuring"
    INSTALLED = "installed"
    ERROR = "error"

    @property
    def in_progress(self) -> bool:
        return self in (
            InstallationStatus.DOWNLOADING,
            InstallationStatus.EXTRACTING,
            InstallationStatus.CONFIGURING,
        )


class SessionState(Enum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    FINISHED = "finished"


@dataclass(frozen=True)
class DistributionDescriptor:
    """Installable guest environment"""
    id: str
    name: str
    version: str
    description: str
    archive_url: str
    archive_sha256: str
    size_mb: int
    required_commands: Tuple[str, ...] = field(default=("proot", "tar"))

    @property
    def display_name(self) -> str:
        return f"{self.name} {self.version}"


@dataclass(frozen=True)
class InstalledLayout:
    """On-disk locations for one distribution"""
    install_dir: Path
    rootfs_dir: Path
    archive_path: Path

    def is_installed(self) -> bool:
        if not self.rootfs_dir.is_dir():
            return False
        return all((self.rootfs_dir / marker).exists() for marker in ROOTFS_MARKERS)


@dataclass(frozen=True)
class LaunchCommand:
    """Isolation-tool invocation for an installed distribution"""
    executable: str
    cwd: str
    args: Tuple[str, ...]
    env: Tuple[str, ...]
