"""Tests for the session registry."""
import pytest

from mcp_distro.errors import UnknownSessionError
from mcp_distro.sessions.registry import SessionRegistry, host_environment
from mcp_distro.types import SessionState


def test_host_environment(settings):
    env = dict(entry.split("=", 1) for entry in host_environment(settings))

    assert env["HOME"] == str(settings.home_dir)
    assert env["TMPDIR"] == str(settings.cache_dir)
    assert env["TERM"] == "xterm-256color"
    assert env["COLORTERM"] == "truecolor"
    assert env["PATH"]


@pytest.mark.asyncio
async def test_host_session_lifecycle(settings, eventually):
    registry = SessionRegistry(settings)

    session_id, session = await registry.create_host_session()
    try:
        assert len(registry) == 1
        assert registry.get(session_id) is session
        assert settings.home_dir.is_dir()
        assert session.is_running

        assert await session.write_text("echo $HOME\n")
        assert await eventually(lambda: str(settings.home_dir) in session.buffer_text())
    finally:
        await registry.remove(session_id)

    assert len(registry) == 0
    assert registry.get(session_id) is None
    assert session.state is SessionState.FINISHED


@pytest.mark.asyncio
async def test_remove_unknown_session(settings):
    registry = SessionRegistry(settings)

    with pytest.raises(UnknownSessionError):
        await registry.remove("missing")
    with pytest.raises(UnknownSessionError):
        registry.require("missing")


@pytest.mark.asyncio
async def test_close_all(settings):
    registry = SessionRegistry(settings)
    sessions = [(await registry.create_host_session())[1] for _ in range(3)]
    ids = {session_id for session_id, _ in registry.items()}

    assert len(ids) == 3

    await registry.close_all()

    assert len(registry) == 0
    assert all(s.state is SessionState.FINISHED for s in sessions)


@pytest.mark.asyncio
async def test_injected_session_factory(settings):
    calls = []

    class FakeSession:
        pass

    async def factory(executable, cwd, args, env):
        calls.append((executable, cwd, args, env))
        return FakeSession()

    registry = SessionRegistry(settings, session_factory=factory)
    session_id, session = await registry.create_host_session()

    assert isinstance(session, FakeSession)
    assert registry.require(session_id) is session
    executable, cwd, args, env = calls[0]
    assert executable == settings.host_shell
    assert cwd == str(settings.home_dir)
    assert args == []


@pytest.mark.asyncio
async def test_finished_sessions_are_pruned(settings, eventually):
    registry = SessionRegistry(settings)
    first_id, first = await registry.create_host_session()

    assert await first.write_text("exit\n")
    assert await eventually(lambda: first.state is SessionState.FINISHED)

    # still readable until the registry changes
    assert registry.require(first_id) is first
    assert len(registry) == 1

    second_id, second = await registry.create_host_session()
    try:
        assert len(registry) == 1
        assert registry.get(first_id) is None
        assert registry.require(second_id) is second

        assert await second.write_text("exit\n")
        assert await eventually(lambda: not second.is_running)

        assert registry.items() == []
        assert len(registry) == 0
    finally:
        await registry.close_all()
