"""Archive extraction through the external tar tool."""
import asyncio
import contextlib
from pathlib import Path
from typing import Callable, Optional

from mcp_distro.errors import ExtractionError
from mcp_distro.logging import get_logger

logger = get_logger(__name__)

PROGRESS_STEP = 5
PROGRESS_CAP = 90


async def _estimate_progress(
    on_progress: Callable[[int], None], tick_interval: float
) -> None:
    progress = 0
    while True:
        if progress < PROGRESS_CAP:
            progress = min(progress + PROGRESS_STEP, PROGRESS_CAP)
            on_progress(progress)
        await asyncio.sleep(tick_interval)


async def extract_archive(
    archive_path: Path,
    dest_dir: Path,
    on_progress: Optional[Callable[[int], None]] = None,
    tar_binary: str = "tar",
    tick_interval: float = 1.0,
) -> Path:
    """Unpack ``archive_path`` into ``dest_dir`` with ``tar -xf``.

    tar reports nothing while it runs, so progress is a time-based estimate
    that climbs to 90 and jumps to 100 once tar exits.
    """
    dest_dir.mkdir(parents=True, exist_ok=True)

    logger.debug("extract_archive", archive=str(archive_path), dest=str(dest_dir))

    proc = await asyncio.create_subprocess_exec(
        tar_binary,
        "-xf",
        str(archive_path),
        "-C",
        str(dest_dir),
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.STDOUT,
    )

    ticker = None
    if on_progress:
        ticker = asyncio.create_task(_estimate_progress(on_progress, tick_interval))

    try:
        stdout, _ = await proc.communicate()
    finally:
        if ticker:
            ticker.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await ticker

    output = stdout.decode(errors="replace") if stdout else ""

    if proc.returncode != 0:
        logger.error(
            "extraction_failed",
            archive=str(archive_path),
            returncode=proc.returncode,
            output=output,
        )
        raise ExtractionError(proc.returncode, output)

    if on_progress:
        on_progress(100)

    logger.info("archive_extracted", archive=str(archive_path), extracted_to=str(dest_dir))
    return dest_dir
