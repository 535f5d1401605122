"""Push notifications for install/uninstall progress and status."""
import threading
from dataclasses import dataclass
from typing import Callable, List, Optional, Protocol, Union

from mcp_distro.logging import get_logger
from mcp_distro.types import DistributionDescriptor, InstallationStatus

logger = get_logger(__name__)


@dataclass(frozen=True)
class StatusChanged:
    distro_id: str
    status: InstallationStatus


@dataclass(frozen=True)
class ProgressUpdate:
    """Overall install progress.

    ``estimated`` marks synthetic values (extraction has no real progress
    signal); stage transitions are only ever reported through StatusChanged.
    """
    distro_id: str
    progress: int
    message: str
    estimated: bool = False


@dataclass(frozen=True)
class OperationFailed:
    distro_id: str
    operation: str
    error: str


@dataclass(frozen=True)
class ActiveDistributionChanged:
    distro_id: Optional[str]


Event = Union[StatusChanged, ProgressUpdate, OperationFailed, ActiveDistributionChanged]
Subscriber = Callable[[Event], None]


class EventBus:
    """Fan-out of events to any number of independent subscribers."""

    def __init__(self) -> None:
        self._subscribers: List[Subscriber] = []
        self._lock = threading.Lock()

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register ``callback``; the returned function unsubscribes it."""
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def publish(self, event: Event) -> None:
        with self._lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(event)
            except Exception:
                logger.exception("event_subscriber_failed", event_type=type(event).__name__)


class InstallationListener(Protocol):
    def on_installation_progress(
        self, distribution: DistributionDescriptor, progress: int, message: str
    ) -> None: ...

    def on_installation_complete(self, distribution: DistributionDescriptor) -> None: ...

    def on_installation_error(self, distribution: DistributionDescriptor, error: str) -> None: ...


class UninstallListener(Protocol):
    def on_uninstall_complete(self, distribution: DistributionDescriptor) -> None: ...

    def on_uninstall_error(self, distribution: DistributionDescriptor, error: str) -> None: ...
