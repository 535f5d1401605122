"""One-shot command execution."""
import asyncio
from typing import Dict, Optional

from mcp_distro.logging import get_logger

logger = get_logger(__name__)


async def run_command(
    command: str,
    cwd: Optional[str] = None,
    env_vars: Optional[Dict[str, str]] = None,
) -> tuple[int, bytes]:
    """Run a shell command to completion and return (returncode, output).

    stderr is folded into the output.
    """
    logger.debug("cmd_exec", cmd=command, cwd=cwd)

    process = await asyncio.create_subprocess_shell(
        command,
        cwd=cwd,
        env=env_vars,
        stdin=asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.STDOUT,
    )

    stdout, _ = await process.communicate()

    logger.debug("cmd_complete", cmd=command, returncode=process.returncode)

    return process.returncode, stdout or b""
