"""Installable distribution catalog."""
from typing import Dict, List

from mcp_distro.errors import UnknownDistributionError
from mcp_distro.types import DistributionDescriptor

PROOT_DISTRO_RELEASE = "https://github.com/termux/proot-distro/releases/download/v3.10.0"

DEBIAN_BOOKWORM = DistributionDescriptor(
    id="debian_bookworm",
    name="Debian",
    version="12 (Bookworm)",
    description=(
        "Debian is a free operating system that comes with over 59000 packages. "
        "It's known for its stability and security."
    ),
    archive_url=f"{PROOT_DISTRO_RELEASE}/debian-bookworm-aarch64-pd-v3.10.0.tar.xz",
    archive_sha256="2a298d5caef1365653e6ec5d33c963c60c7ce74628f05157c45211b3c9b56cf0",
    size_mb=140,
)

UBUNTU_JAMMY = DistributionDescriptor(
    id="ubuntu_jammy",
    name="Ubuntu",
    version="22.04 LTS (Jammy Jellyfish)",
    description=(
        "Ubuntu is a popular Linux distribution based on Debian. "
        "It provides regular releases with long-term support (LTS) options."
    ),
    archive_url=f"{PROOT_DISTRO_RELEASE}/ubuntu-jammy-aarch64-pd-v3.10.0.tar.xz",
    archive_sha256="6023d9c330baa4e44ec1d20f26a8c66c7000be44737314be12f0096c7968dec5",
    size_mb=230,
)

ALPINE = DistributionDescriptor(
    id="alpine",
    name="Alpine Linux",
    version="3.18",
    description=(
        "Alpine Linux is a security-oriented, lightweight Linux distribution. "
        "It uses musl libc and busybox to keep the system small and efficient."
    ),
    archive_url=f"{PROOT_DISTRO_RELEASE}/alpine-3.18-aarch64-pd-v3.10.0.tar.xz",
    archive_sha256="fa7df00d407c273a02a51db9e6952eb3bdf163c7244236f1033c86ff7c82c483",
    size_mb=12,
)

DISTRIBUTIONS: Dict[str, DistributionDescriptor] = {
    d.id: d for d in (DEBIAN_BOOKWORM, UBUNTU_JAMMY, ALPINE)
}


def list_distributions() -> List[DistributionDescriptor]:
    """Return every installable distribution."""
    return list(DISTRIBUTIONS.values())


def get_distribution(distro_id: str) -> DistributionDescriptor:
    """Look up a distribution by id."""
    try:
        return DISTRIBUTIONS[distro_id]
    except KeyError:
        raise UnknownDistributionError(distro_id) from None
