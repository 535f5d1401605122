"""Guest Linux distribution manager and process sessions, served over MCP."""

from mcp_distro.types import (
    DistributionDescriptor,
    InstallationStatus,
    InstalledLayout,
    LaunchCommand,
    SessionState,
)
from mcp_distro.settings import Settings, load_settings
from mcp_distro.events import EventBus
from mcp_distro.distros.manager import DistributionManager
from mcp_distro.sessions.session import ProcessSession, create_session
from mcp_distro.sessions.registry import SessionRegistry
from mcp_distro.errors import (
    DistroError,
    UnknownDistributionError,
    MissingToolError,
    DownloadError,
    ChecksumError,
    ExtractionError,
    ConfigurationError,
    SessionSpawnError,
)

__version__ = "0.1.0"

__all__ = [
    # Types
    "DistributionDescriptor",
    "InstallationStatus",
    "InstalledLayout",
    "LaunchCommand",
    "SessionState",

    # Configuration
    "Settings",
    "load_settings",

    # Lifecycle
    "EventBus",
    "DistributionManager",

    # Sessions
    "ProcessSession",
    "SessionRegistry",
    "create_session",

    # Error types
    "DistroError",
    "UnknownDistributionError",
    "MissingToolError",
    "DownloadError",
    "ChecksumError",
    "ExtractionError",
    "ConfigurationError",
    "SessionSpawnError",
]
