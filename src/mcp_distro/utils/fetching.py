import asyncio
from pathlib import Path
from typing import Callable, Optional

import aiohttp

from mcp_distro.errors import DownloadError
from mcp_distro.logging import get_logger

logger = get_logger(__name__)

DOWNLOAD_CHUNK_SIZE = 32 * 1024

ProgressCallback = Callable[[int], None]


async def download_url(
    url: str,
    dest: Path,
    on_progress: Optional[ProgressCallback] = None,
    chunk_size: int = DOWNLOAD_CHUNK_SIZE,
    timeout: Optional[float] = None,
) -> None:
    """Stream ``url`` into ``dest``, reporting integer percentages.

    Progress is only reported when the percentage increases, and only when
    the server advertises a content length; a final 100 is always reported.
    A partially written ``dest`` is left behind on failure.
    """
    client_timeout = aiohttp.ClientTimeout(total=timeout)

    logger.info("download_started", url=url, destination=str(dest))

    try:
        async with aiohttp.ClientSession(timeout=client_timeout) as session:
            async with session.get(url) as response:
                if not 200 <= response.status < 300:
                    logger.error(
                        "download_request_failed",
                        url=url,
                        status=response.status,
                        reason=response.reason,
                    )
                    raise DownloadError(
                        url, f"status {response.status}", status=response.status
                    )

                content_length = response.content_length or 0
                downloaded = 0
                last_progress = 0

                with open(dest, "wb") as f:
                    while chunk := await response.content.read(chunk_size):
                        f.write(chunk)
                        downloaded += len(chunk)

                        if content_length > 0 and on_progress:
                            progress = min(downloaded * 100 // content_length, 100)
                            if progress > last_progress:
                                last_progress = progress
                                on_progress(progress)

                if on_progress and last_progress < 100:
                    on_progress(100)

                logger.info(
                    "download_complete",
                    url=url,
                    size=downloaded,
                    expected_size=content_length,
                )

    except aiohttp.ClientError as e:
        logger.error("download_failed", url=url, error=str(e))
        raise DownloadError(url, str(e), status=getattr(e, "status", None)) from e
    except asyncio.TimeoutError as e:
        logger.error("download_timed_out", url=url)
        raise DownloadError(url, "timed out") from e
