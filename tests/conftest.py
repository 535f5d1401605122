import asyncio
import hashlib
import io
import tarfile
import time
from pathlib import Path

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from mcp_distro.settings import Settings
from mcp_distro.types import DistributionDescriptor

# Stands in for proot: logs its argv, runs the bound setup script on the host
# against the given root (recording that it ran), or execs a plain shell.
FAKE_PROOT = r"""#!/bin/sh
echo "$@" >> "$(dirname "$0")/proot.log"
root=""
script=""
while [ $# -gt 0 ]; do
    case "$1" in
        -r) root="$2"; shift 2 ;;
        -w) shift 2 ;;
        -b)
            case "$2" in
                *:/tmp/.mcp-distro-configure.sh) script="${2%%:*}" ;;
            esac
            shift 2 ;;
        *) break ;;
    esac
done
if [ -n "$script" ]; then
    cp "$script" "$root/.configure-script"
    exit ${FAKE_PROOT_EXIT:-0}
fi
exec /bin/sh
"""


def build_rootfs_archive(members=("bin", "usr", "etc")) -> bytes:
    """Build an uncompressed tarball holding the given top-level directories."""
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w") as tar:
        for name in members:
            info = tarfile.TarInfo(name)
            info.type = tarfile.DIRTYPE
            info.mode = 0o755
            tar.addfile(info)
        release = b'NAME="Test Linux"\n'
        info = tarfile.TarInfo("etc/os-release")
        info.size = len(release)
        tar.addfile(info, io.BytesIO(release))
    return buf.getvalue()


def make_descriptor(url: str, sha256: str, distro_id: str = "testdistro") -> DistributionDescriptor:
    return DistributionDescriptor(
        id=distro_id,
        name="Test Linux",
        version="1.0",
        description="Minimal rootfs for tests",
        archive_url=url,
        archive_sha256=sha256,
        size_mb=12,
    )


async def wait_until(predicate, timeout: float = 5.0, interval: float = 0.02) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        await asyncio.sleep(interval)
    return predicate()


@pytest.fixture
def fake_proot(tmp_path: Path) -> Path:
    bin_dir = tmp_path / "fakebin"
    bin_dir.mkdir()
    proot = bin_dir / "proot"
    proot.write_text(FAKE_PROOT)
    proot.chmod(0o755)
    return proot


@pytest.fixture
def settings(tmp_path: Path, fake_proot: Path) -> Settings:
    return Settings(
        data_dir=tmp_path / "data",
        cache_dir=tmp_path / "cache",
        proot_binary=str(fake_proot),
        tar_binary="tar",
        host_shell="/bin/sh",
        download_timeout=30.0,
    )


@pytest.fixture
def rootfs_archive() -> bytes:
    return build_rootfs_archive()


@pytest.fixture
def rootfs_sha256(rootfs_archive: bytes) -> str:
    return hashlib.sha256(rootfs_archive).hexdigest()


@pytest_asyncio.fixture
async def archive_server(rootfs_archive: bytes):
    """Serve the rootfs archive with and without a content length."""

    async def sized(request: web.Request) -> web.Response:
        return web.Response(body=rootfs_archive, content_type="application/x-tar")

    async def chunked(request: web.Request) -> web.StreamResponse:
        response = web.StreamResponse()
        response.enable_chunked_encoding()
        await response.prepare(request)
        for i in range(0, len(rootfs_archive), 1024):
            await response.write(rootfs_archive[i:i + 1024])
        await response.write_eof()
        return response

    async def missing(request: web.Request) -> web.Response:
        return web.Response(status=404, text="not found")

    app = web.Application()
    app.router.add_get("/bootstrap.tar.xz", sized)
    app.router.add_get("/chunked.tar.xz", chunked)
    app.router.add_get("/missing.tar.xz", missing)

    server = TestServer(app)
    await server.start_server()
    try:
        yield server
    finally:
        await server.close()


@pytest_asyncio.fixture
async def descriptor(archive_server, rootfs_sha256) -> DistributionDescriptor:
    return make_descriptor(str(archive_server.make_url("/bootstrap.tar.xz")), rootfs_sha256)


@pytest.fixture
def descriptor_factory():
    return make_descriptor


@pytest.fixture
def eventually():
    return wait_until
