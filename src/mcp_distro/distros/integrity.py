"""Archive integrity verification."""
import hashlib
from pathlib import Path

from mcp_distro.logging import get_logger

logger = get_logger(__name__)

CHUNK_SIZE = 8192


def compute_file_hash(path: Path) -> str:
    """Compute SHA-256 hash of a file."""
    sha256_hash = hashlib.sha256()
    with open(path, "rb") as f:
        for byte_block in iter(lambda: f.read(CHUNK_SIZE), b""):
            sha256_hash.update(byte_block)
    return sha256_hash.hexdigest()


def verify_checksum(path: Path, expected: str) -> bool:
    """Check ``path`` against a lowercase hex SHA-256 digest.

    Unreadable files fail verification.
    """
    try:
        computed = compute_file_hash(path)
    except OSError as e:
        logger.error("checksum_read_failed", file=str(path), error=str(e))
        return False

    if computed != expected:
        logger.error(
            "checksum_mismatch", file=str(path), expected=expected, computed=computed
        )
        return False

    logger.debug("checksum_verified", file=str(path), sha256=computed)
    return True
