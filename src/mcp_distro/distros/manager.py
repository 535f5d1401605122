"""Distribution lifecycle: install, uninstall, launch."""
import asyncio
from typing import Dict, List, Optional, Tuple

from mcp_distro.distros import catalog
from mcp_distro.distros.configure import configure_distribution
from mcp_distro.distros.extract import extract_archive
from mcp_distro.distros.integrity import verify_checksum
from mcp_distro.distros.launcher import SessionFactory, launch_distribution
from mcp_distro.distros.layout import get_layout, resolve_tool
from mcp_distro.errors import ChecksumError, UnknownDistributionError, log_error
from mcp_distro.events import (
    ActiveDistributionChanged,
    EventBus,
    InstallationListener,
    OperationFailed,
    ProgressUpdate,
    StatusChanged,
    UninstallListener,
)
from mcp_distro.logging import get_logger
from mcp_distro.sessions.session import ProcessSession, create_session
from mcp_distro.settings import Settings
from mcp_distro.types import DistributionDescriptor, InstallationStatus, InstalledLayout
from mcp_distro.utils.fetching import download_url
from mcp_distro.utils.fs import remove_tree

logger = get_logger(__name__)

DOWNLOAD_SHARE = 50
VERIFY_PROGRESS = 50
EXTRACT_START = 60
EXTRACT_SHARE = 30
CONFIGURE_PROGRESS = 90


class DistributionManager:
    """Owns install status and the active distribution for one data directory.

    Installs and uninstalls run one at a time, including operations on
    different distributions. Progress and status changes are published on
    ``events`` and mirrored to the optional per-call listener.
    """

    def __init__(
        self,
        settings: Settings,
        session_factory: SessionFactory = create_session,
        events: Optional[EventBus] = None,
        distributions: Optional[List[DistributionDescriptor]] = None,
    ):
        self.settings = settings
        self.events = events or EventBus()
        self._session_factory = session_factory
        if distributions is None:
            distributions = catalog.list_distributions()
        self._distributions = {d.id: d for d in distributions}
        self._status: Dict[str, InstallationStatus] = {}
        self._operation_lock = asyncio.Lock()
        self._active: Optional[Tuple[str, ProcessSession]] = None

        for descriptor in self._distributions.values():
            self._status[descriptor.id] = self._probe(descriptor)

    def layout(self, descriptor: DistributionDescriptor) -> InstalledLayout:
        return get_layout(self.settings, descriptor)

    def get_distribution(self, distro_id: str) -> DistributionDescriptor:
        try:
            return self._distributions[distro_id]
        except KeyError:
            raise UnknownDistributionError(distro_id) from None

    def status(self, descriptor: DistributionDescriptor) -> InstallationStatus:
        return self._status.get(descriptor.id, InstallationStatus.NOT_INSTALLED)

    @property
    def active_distribution(self) -> Optional[DistributionDescriptor]:
        if self._active is None:
            return None
        return self._distributions.get(self._active[0])

    @property
    def active_session(self) -> Optional[ProcessSession]:
        return self._active[1] if self._active else None

    def _probe(self, descriptor: DistributionDescriptor) -> InstallationStatus:
        if self.layout(descriptor).is_installed():
            return InstallationStatus.INSTALLED
        return InstallationStatus.NOT_INSTALLED

    def available_distributions(self) -> List[Tuple[DistributionDescriptor, InstallationStatus]]:
        """Every catalog entry with its status re-probed from disk."""
        result = []
        for descriptor in self._distributions.values():
            current = self.status(descriptor)
            # In-flight operations own the status until they finish.
            if not current.in_progress:
                probed = self._probe(descriptor)
                if probed is not current:
                    self._set_status(descriptor, probed)
                current = probed
            result.append((descriptor, current))
        return result

    def _set_status(self, descriptor: DistributionDescriptor, status: InstallationStatus) -> None:
        self._status[descriptor.id] = status
        logger.info("distribution_status", distro=descriptor.id, status=status.value)
        self.events.publish(StatusChanged(descriptor.id, status))

    def _report_progress(
        self,
        descriptor: DistributionDescriptor,
        listener: Optional[InstallationListener],
        progress: int,
        message: str,
        estimated: bool = False,
    ) -> None:
        self.events.publish(ProgressUpdate(descriptor.id, progress, message, estimated))
        if listener:
            listener.on_installation_progress(descriptor, progress, message)

    async def install(
        self, descriptor: DistributionDescriptor, listener: Optional[InstallationListener] = None
    ) -> bool:
        """Download, verify, extract and configure ``descriptor``.

        Returns True once the distribution is installed. Failures leave the
        status at ERROR and the partial install directory in place.
        """
        if self._operation_lock.locked():
            logger.info("install_waiting_for_operation", distro=descriptor.id)

        async with self._operation_lock:
            # A concurrent uninstall may have run while waiting.
            if self.status(descriptor) is InstallationStatus.INSTALLED:
                if listener:
                    listener.on_installation_complete(descriptor)
                return True

            layout = self.layout(descriptor)
            self._set_status(descriptor, InstallationStatus.DOWNLOADING)

            try:
                await self._run_install(descriptor, layout, listener)
            except Exception as e:
                message = str(e) or e.__class__.__name__
                log_error(e, {"distro": descriptor.id, "operation": "install"}, logger)
                self._set_status(descriptor, InstallationStatus.ERROR)
                self.events.publish(OperationFailed(descriptor.id, "install", message))
                if listener:
                    listener.on_installation_error(descriptor, message)
                return False

        if listener:
            listener.on_installation_complete(descriptor)
        return True

    async def _run_install(
        self,
        descriptor: DistributionDescriptor,
        layout: InstalledLayout,
        listener: Optional[InstallationListener],
    ) -> None:
        layout.install_dir.mkdir(parents=True, exist_ok=True)
        for tool in descriptor.required_commands:
            resolve_tool(self.settings, tool)

        self._report_progress(descriptor, listener, 0, "Starting download...")

        def on_download(progress: int) -> None:
            overall = progress * DOWNLOAD_SHARE // 100
            self._report_progress(descriptor, listener, overall, f"Downloading... {progress}%")

        await download_url(
            descriptor.archive_url,
            layout.archive_path,
            on_progress=on_download,
            timeout=self.settings.download_timeout,
        )

        self._report_progress(descriptor, listener, VERIFY_PROGRESS, "Verifying download...")
        if not await asyncio.to_thread(verify_checksum, layout.archive_path, descriptor.archive_sha256):
            raise ChecksumError(str(layout.archive_path), descriptor.archive_sha256)

        self._set_status(descriptor, InstallationStatus.EXTRACTING)
        self._report_progress(descriptor, listener, EXTRACT_START, "Extracting files...")

        def on_extract(progress: int) -> None:
            overall = int(EXTRACT_START + progress * EXTRACT_SHARE / 100)
            self._report_progress(
                descriptor, listener, overall, f"Extracting files... {overall}%", estimated=True
            )

        await extract_archive(
            layout.archive_path,
            layout.rootfs_dir,
            on_progress=on_extract,
            tar_binary=resolve_tool(self.settings, "tar"),
        )

        self._set_status(descriptor, InstallationStatus.CONFIGURING)
        self._report_progress(descriptor, listener, CONFIGURE_PROGRESS, "Configuring distribution...")
        await configure_distribution(layout, descriptor, self.settings)

        layout.archive_path.unlink(missing_ok=True)

        self._set_status(descriptor, InstallationStatus.INSTALLED)
        self._report_progress(descriptor, listener, 100, "Installation complete!")
        logger.info("distribution_installed", distro=descriptor.id)

    async def uninstall(
        self, descriptor: DistributionDescriptor, listener: Optional[UninstallListener] = None
    ) -> bool:
        """Remove the install directory, stopping the distribution's session first."""
        layout = self.layout(descriptor)

        if (
            self.status(descriptor) is InstallationStatus.NOT_INSTALLED
            and not layout.install_dir.exists()
        ):
            if listener:
                listener.on_uninstall_complete(descriptor)
            return True

        async with self._operation_lock:
            try:
                if self._active and self._active[0] == descriptor.id:
                    await self._active[1].finish()
                    self._set_active(None)

                await asyncio.to_thread(remove_tree, layout.install_dir)
            except Exception as e:
                message = str(e) or e.__class__.__name__
                log_error(e, {"distro": descriptor.id, "operation": "uninstall"}, logger)
                self._set_status(descriptor, InstallationStatus.ERROR)
                self.events.publish(OperationFailed(descriptor.id, "uninstall", message))
                if listener:
                    listener.on_uninstall_error(descriptor, message)
                return False

            self._set_status(descriptor, InstallationStatus.NOT_INSTALLED)
            logger.info("distribution_uninstalled", distro=descriptor.id)

        if listener:
            listener.on_uninstall_complete(descriptor)
        return True

    def _set_active(self, active: Optional[Tuple[str, ProcessSession]]) -> None:
        self._active = active
        self.events.publish(ActiveDistributionChanged(active[0] if active else None))

    async def launch(self, descriptor: DistributionDescriptor) -> Optional[ProcessSession]:
        """Start a login shell in ``descriptor``; None if it is not installed.

        Runs under the operation lock so an in-flight uninstall either
        finishes first (and the launch sees nothing installed) or finishes
        the new session itself.
        """
        async with self._operation_lock:
            session = await launch_distribution(
                self.layout(descriptor), self.settings, self._session_factory
            )
            if session is None:
                return None

            self._set_active((descriptor.id, session))
        return session
