"""Isolation-tool command construction for installed distributions."""
from typing import TYPE_CHECKING, Awaitable, Callable, List, Optional, Sequence

from mcp_distro.distros.layout import resolve_tool
from mcp_distro.logging import get_logger
from mcp_distro.settings import Settings
from mcp_distro.types import InstalledLayout, LaunchCommand

if TYPE_CHECKING:
    from mcp_distro.sessions.session import ProcessSession

logger = get_logger(__name__)

GUEST_WORKDIR = "/root"
SYSTEM_BINDS = ("/dev", "/proc", "/sys")
LOGIN_COMMAND = ("/bin/login", "-f", "root")

GUEST_ENV = (
    "HOME=/root",
    "TERM=xterm-256color",
    "USER=root",
    "PATH=/usr/local/sbin:/usr/local/bin:/usr/sbin:/usr/bin:/sbin:/bin",
    "LANG=C.UTF-8",
    "SHELL=/bin/bash",
)

SessionFactory = Callable[[str, str, Sequence[str], Sequence[str]], Awaitable["ProcessSession"]]


def build_launch_command(layout: InstalledLayout, settings: Settings) -> LaunchCommand:
    proot = resolve_tool(settings, "proot")

    args: List[str] = ["-r", str(layout.rootfs_dir), "-w", GUEST_WORKDIR]
    for path in SYSTEM_BINDS:
        args += ["-b", path]

    if settings.shared_storage and settings.shared_storage.is_dir():
        args += ["-b", f"{settings.shared_storage}:{settings.shared_storage_guest}"]

    args += LOGIN_COMMAND

    return LaunchCommand(
        executable=proot,
        cwd=str(layout.install_dir),
        args=tuple(args),
        env=GUEST_ENV,
    )


async def launch_distribution(
    layout: InstalledLayout, settings: Settings, session_factory: SessionFactory
) -> Optional["ProcessSession"]:
    """Start a login shell inside an installed distribution.

    Returns None when the layout is not installed.
    """
    if not layout.is_installed():
        logger.info("launch_skipped_not_installed", rootfs=str(layout.rootfs_dir))
        return None

    command = build_launch_command(layout, settings)
    logger.info(
        "launching_distribution",
        executable=command.executable,
        args=list(command.args),
    )
    return await session_factory(
        command.executable, command.cwd, list(command.args), list(command.env)
    )
