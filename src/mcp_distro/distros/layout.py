"""Installed-environment directory layout."""
import shutil
from pathlib import Path

from mcp_distro.errors import MissingToolError
from mcp_distro.settings import Settings
from mcp_distro.types import BOOTSTRAP_ARCHIVE, DistributionDescriptor, InstalledLayout


def get_layout(settings: Settings, descriptor: DistributionDescriptor) -> InstalledLayout:
    """Derive install, rootfs and archive paths from the descriptor id."""
    install_dir = settings.distros_dir / descriptor.id
    return InstalledLayout(
        install_dir=install_dir,
        rootfs_dir=install_dir / "rootfs",
        archive_path=install_dir / BOOTSTRAP_ARCHIVE,
    )


def resolve_tool(settings: Settings, name: str) -> str:
    """Resolve an external tool to an executable path.

    ``proot`` and ``tar`` honour the configured overrides; anything else is
    looked up on PATH.
    """
    configured = {
        "proot": settings.proot_binary,
        "tar": settings.tar_binary,
    }.get(name, name)

    found = shutil.which(configured)
    if not found:
        raise MissingToolError(name)
    return str(Path(found))
