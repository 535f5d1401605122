import asyncio
import os
import shutil
from pathlib import Path
from typing import Dict, Optional, Sequence, Tuple

from mcp_distro.logging import get_logger

logger = get_logger(__name__)


async def async_subprocess_run(
    args: Sequence[str],
    cwd: Optional[Path] = None,
    env: Optional[Dict[str, str]] = None,
) -> Tuple[int, str]:
    """Run a command with stderr merged into stdout.

    :return: Tuple of (returncode, combined output)
    """
    logger.debug("subprocess_exec", args=list(args), cwd=str(cwd) if cwd else None)

    proc = await asyncio.create_subprocess_exec(
        *args,
        cwd=cwd,
        env=env,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.STDOUT,
    )
    stdout, _ = await proc.communicate()
    output = stdout.decode(errors="replace") if stdout else ""

    logger.debug("subprocess_complete", args=list(args), returncode=proc.returncode)
    return proc.returncode, output


def merge_env(entries: Sequence[str], base: Optional[Dict[str, str]] = None) -> Dict[str, str]:
    """Overlay ``KEY=VALUE`` entries onto ``base`` (the process env by default)."""
    env = dict(os.environ if base is None else base)
    for entry in entries:
        key, sep, value = entry.partition("=")
        if sep and key:
            env[key] = value
    return env


def remove_tree(path: Path) -> None:
    """Recursively delete ``path`` if it exists."""
    if not path.exists():
        return
    logger.debug("removing_tree", path=str(path))
    shutil.rmtree(path)
