"""Process sessions: one spawned process and its byte streams."""
import asyncio
import contextlib
import threading
from typing import Optional, Protocol, Sequence

from mcp_distro.errors import SessionSpawnError
from mcp_distro.logging import get_logger
from mcp_distro.sessions.commands import run_command
from mcp_distro.types import SessionState
from mcp_distro.utils.fs import merge_env

logger = get_logger(__name__)

READ_CHUNK_SIZE = 4096
TERMINATE_TIMEOUT = 5.0
READER_DRAIN_TIMEOUT = 1.0


class SessionCallback(Protocol):
    def on_data_received(self, session: "ProcessSession", data: bytes) -> None: ...

    def on_session_exit(self, session: "ProcessSession") -> None: ...


class ProcessSession:
    """A running process with merged stdout/stderr and a writable stdin.

    Every chunk read from the process is appended to an output buffer and
    forwarded to the registered callback. The session moves NOT_STARTED ->
    RUNNING -> FINISHED and never back; a finished session cannot be
    restarted. ``on_session_exit`` fires exactly once per session.
    """

    def __init__(
        self,
        executable: str,
        cwd: str,
        args: Sequence[str] = (),
        env: Sequence[str] = (),
        callback: Optional[SessionCallback] = None,
    ):
        self.executable = executable
        self.cwd = cwd
        self.args = tuple(args)
        self.env = tuple(env)
        self.callback = callback

        self._state = SessionState.NOT_STARTED
        self._process: Optional[asyncio.subprocess.Process] = None
        self._reader_task: Optional[asyncio.Task] = None
        self._exit_notified = False
        self._closed = False

        self._buffer = bytearray()
        self._buffer_lock = threading.Lock()
        self._write_lock = asyncio.Lock()

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state is SessionState.RUNNING

    @property
    def pid(self) -> Optional[int]:
        return self._process.pid if self._process else None

    @property
    def returncode(self) -> Optional[int]:
        return self._process.returncode if self._process else None

    async def start(self) -> None:
        if self._state is not SessionState.NOT_STARTED:
            raise RuntimeError("Session has already been started")

        try:
            self._process = await asyncio.create_subprocess_exec(
                self.executable,
                *self.args,
                cwd=self.cwd,
                env=merge_env(self.env),
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
        except OSError as e:
            self._state = SessionState.FINISHED
            logger.error("session_spawn_failed", executable=self.executable, error=str(e))
            raise SessionSpawnError(self.executable, str(e)) from e

        self._state = SessionState.RUNNING
        self._reader_task = asyncio.create_task(self._read_output())

        logger.info(
            "session_started",
            executable=self.executable,
            args=list(self.args),
            cwd=self.cwd,
            pid=self._process.pid,
        )

    async def _read_output(self) -> None:
        stdout = self._process.stdout
        try:
            while self._state is SessionState.RUNNING:
                data = await stdout.read(READ_CHUNK_SIZE)
                if not data:
                    break
                self._process_output(data)
        except OSError as e:
            if self._state is SessionState.RUNNING:
                logger.error("session_read_failed", pid=self.pid, error=str(e))
        finally:
            self._state = SessionState.FINISHED
            self._close_stdin()
            self._notify_exit()

    def _process_output(self, data: bytes) -> None:
        with self._buffer_lock:
            self._buffer.extend(data)

        if self.callback:
            try:
                self.callback.on_data_received(self, data)
            except Exception:
                logger.exception("session_callback_failed", pid=self.pid)

    def _close_stdin(self) -> None:
        stdin = self._process.stdin if self._process else None
        if stdin is None or stdin.is_closing():
            return
        try:
            stdin.close()
        except (OSError, RuntimeError) as e:
            logger.debug("session_stream_close_failed", pid=self.pid, error=str(e))

    def _notify_exit(self) -> None:
        if self._exit_notified:
            return
        self._exit_notified = True

        logger.info("session_exited", pid=self.pid, returncode=self.returncode)

        if self.callback:
            try:
                self.callback.on_session_exit(self)
            except Exception:
                logger.exception("session_callback_failed", pid=self.pid)

    async def write(self, data: bytes) -> bool:
        """Write ``data`` to the process stdin; False if it could not be written."""
        if self._state is not SessionState.RUNNING:
            return False

        async with self._write_lock:
            if self._state is not SessionState.RUNNING:
                return False
            stdin = self._process.stdin
            try:
                stdin.write(data)
                await stdin.drain()
            except (OSError, RuntimeError) as e:
                logger.error("session_write_failed", pid=self.pid, error=str(e))
                return False
        return True

    async def write_byte(self, value: int) -> bool:
        return await self.write(bytes([value & 0xFF]))

    async def write_text(self, text: str) -> bool:
        return await self.write(text.encode())

    async def execute_command(self, command: str) -> str:
        """Run ``command`` to completion outside the live process.

        The output also lands in the session buffer and callback, so it
        shows up alongside the interactive output.
        """
        try:
            _, output = await run_command(command, cwd=self.cwd, env_vars=merge_env(self.env))
        except OSError as e:
            logger.error("session_command_failed", cmd=command, error=str(e))
            return f"Error: {e}"

        self._process_output(output)
        return output.decode(errors="replace")

    async def wait(self) -> Optional[int]:
        """Wait until the output stream ends and the process exits."""
        if self._reader_task:
            await asyncio.shield(self._reader_task)
        if self._process:
            return await self._process.wait()
        return None

    async def finish(self) -> None:
        """Terminate the process and release its streams.

        Safe to call on a session whose process already exited; later calls
        are no-ops.
        """
        if self._process is None or self._closed:
            return

        self._closed = True
        self._state = SessionState.FINISHED
        process = self._process

        try:
            if process.returncode is None:
                process.terminate()
            try:
                await asyncio.wait_for(process.wait(), TERMINATE_TIMEOUT)
            except asyncio.TimeoutError:
                logger.warning("session_kill", pid=process.pid)
                process.kill()
                await process.wait()
        except ProcessLookupError:
            pass
        except OSError as e:
            logger.error("session_terminate_failed", pid=process.pid, error=str(e))

        if self._reader_task and not self._reader_task.done():
            _, pending = await asyncio.wait({self._reader_task}, timeout=READER_DRAIN_TIMEOUT)
            for task in pending:
                task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await task

        self._close_stdin()
        if process.stdin:
            try:
                await process.stdin.wait_closed()
            except (OSError, RuntimeError) as e:
                logger.debug("session_stream_close_failed", pid=process.pid, error=str(e))

        logger.info("session_finished", pid=process.pid)

    def buffer_bytes(self) -> bytes:
        with self._buffer_lock:
            return bytes(self._buffer)

    def buffer_text(self) -> str:
        return self.buffer_bytes().decode(errors="replace")


async def create_session(
    executable: str,
    cwd: str,
    args: Sequence[str] = (),
    env: Sequence[str] = (),
    callback: Optional[SessionCallback] = None,
) -> ProcessSession:
    """Create and start a session; raises SessionSpawnError if it cannot start."""
    session = ProcessSession(executable, cwd, args, env, callback=callback)
    await session.start()
    return session
