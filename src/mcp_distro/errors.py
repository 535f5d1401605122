"""Error types for distribution management and process sessions."""
from typing import Any, Dict, Optional

from mcp.types import INTERNAL_ERROR, INVALID_PARAMS, INVALID_REQUEST, ErrorData

from mcp_distro.logging import get_logger

logger = get_logger(__name__)


def log_error(
    error: Exception,
    context: Optional[Dict[str, Any]] = None,
    logger: Optional[Any] = None,
) -> None:
    """Log an error with context."""
    logger = logger or get_logger(__name__)

    error_info: Dict[str, Any] = {
        "error_type": error.__class__.__name__,
        "error_message": str(error),
    }
    if context:
        error_info["context"] = context
    if isinstance(error, DistroError):
        error_info["code"] = error.code
        error_info["details"] = error.details

    logger.error("distro_error", **error_info)


class DistroError(Exception):
    """Base error class for the distribution manager."""

    def __init__(
        self,
        message: str,
        code: int = INTERNAL_ERROR,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.code = code
        self.details = details or {}

    def to_error_data(self) -> ErrorData:
        """Convert to ErrorData format."""
        return ErrorData(code=self.code, message=str(self), data=self.details)


class UnknownDistributionError(DistroError):
    """No catalog entry with the given id."""

    def __init__(self, distro_id: str):
        super().__init__(
            f"Unknown distribution: {distro_id}",
            code=INVALID_PARAMS,
            details={"distro_id": distro_id},
        )


class UnknownSessionError(DistroError):
    """No live session with the given id."""

    def __init__(self, session_id: str):
        super().__init__(
            f"Unknown session: {session_id}",
            code=INVALID_PARAMS,
            details={"session_id": session_id},
        )


class MissingToolError(DistroError):
    """A required external tool could not be found."""

    def __init__(self, tool: str):
        super().__init__(
            f"Required tool {tool} not found",
            code=INVALID_REQUEST,
            details={"tool": tool},
        )


class DownloadError(DistroError):
    """Archive download failed."""

    def __init__(self, url: str, reason: str, status: Optional[int] = None):
        super().__init__(
            f"Failed to download {url}: {reason}",
            details={"url": url, "status": status},
        )
        self.status = status


class ChecksumError(DistroError):
    """Downloaded archive does not match its declared digest."""

    def __init__(self, path: str, expected: str):
        super().__init__(
            "Archive checksum verification failed",
            details={"path": path, "expected": expected},
        )


class ExtractionError(DistroError):
    """The extraction tool exited non-zero."""

    def __init__(self, returncode: int, output: str = ""):
        super().__init__(
            f"Extraction failed with code {returncode}",
            details={"returncode": returncode, "output": output},
        )
        self.returncode = returncode


class ConfigurationError(DistroError):
    """The setup script exited non-zero inside the guest."""

    def __init__(self, returncode: int, output: str = ""):
        super().__init__(
            f"Configuration failed with code {returncode}",
            details={"returncode": returncode, "output": output},
        )
        self.returncode = returncode


class SessionSpawnError(DistroError):
    """The session process could not be started."""

    def __init__(self, executable: str, reason: str):
        super().__init__(
            f"Failed to start {executable}: {reason}",
            details={"executable": executable},
        )
