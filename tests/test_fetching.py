"""Tests for archive downloads."""
import pytest

from mcp_distro.errors import DownloadError
from mcp_distro.utils.fetching import download_url


@pytest.mark.asyncio
async def test_download_url(tmp_path, archive_server, rootfs_archive):
    """Downloaded file matches the served body."""
    dest = tmp_path / "bootstrap.tar.xz"

    await download_url(str(archive_server.make_url("/bootstrap.tar.xz")), dest)

    assert dest.read_bytes() == rootfs_archive


@pytest.mark.asyncio
async def test_download_progress_non_decreasing(tmp_path, archive_server):
    """Progress only increases and finishes at 100 with a known length."""
    reports = []

    await download_url(
        str(archive_server.make_url("/bootstrap.tar.xz")),
        tmp_path / "archive",
        on_progress=reports.append,
        chunk_size=512,
    )

    assert len(reports) > 1
    assert reports == sorted(set(reports))
    assert reports[-1] == 100
    assert all(0 < p <= 100 for p in reports)


@pytest.mark.asyncio
async def test_download_progress_without_length(tmp_path, archive_server, rootfs_archive):
    """Without a content length only the final 100 is reported."""
    reports = []
    dest = tmp_path / "archive"

    await download_url(
        str(archive_server.make_url("/chunked.tar.xz")),
        dest,
        on_progress=reports.append,
        chunk_size=512,
    )

    assert reports == [100]
    assert dest.read_bytes() == rootfs_archive


@pytest.mark.asyncio
async def test_download_rejects_error_status(tmp_path, archive_server):
    """A non-success response is a hard error."""
    with pytest.raises(DownloadError) as exc_info:
        await download_url(str(archive_server.make_url("/missing.tar.xz")), tmp_path / "archive")

    assert exc_info.value.status == 404


@pytest.mark.asyncio
async def test_download_connection_error(tmp_path):
    """Connection failures are wrapped in DownloadError."""
    with pytest.raises(DownloadError):
        await download_url("http://127.0.0.1:9/archive.tar.xz", tmp_path / "archive")
