"""MCP server implementation."""
import asyncio
import json
from typing import Any, Dict, List, Optional

import mcp.types as types
from mcp.server.lowlevel import Server
from mcp.server.models import InitializationOptions
from mcp.server import stdio

from mcp_distro.distros.manager import DistributionManager
from mcp_distro.errors import DistroError
from mcp_distro.events import Event, OperationFailed, ProgressUpdate, StatusChanged
from mcp_distro.logging import configure_logging, get_logger
from mcp_distro.sessions.registry import SessionRegistry
from mcp_distro.settings import load_settings

logger = get_logger("server")

SERVER_NAME = "mcp-distro"
SERVER_VERSION = "0.1.0"

_distro_id_schema = {
    "type": "object",
    "properties": {
        "distro_id": {"type": "string", "description": "Distribution identifier"}
    },
    "required": ["distro_id"],
}

_session_id_schema = {
    "type": "object",
    "properties": {
        "session_id": {"type": "string", "description": "Session identifier"}
    },
    "required": ["session_id"],
}

tools = [
    types.Tool(
        name="distro_list",
        description="List installable Linux distributions and their installation status",
        inputSchema={"type": "object", "properties": {}},
    ),
    types.Tool(
        name="distro_install",
        description="Download, verify, extract and configure a Linux distribution",
        inputSchema=_distro_id_schema,
    ),
    types.Tool(
        name="distro_uninstall",
        description="Remove an installed Linux distribution",
        inputSchema=_distro_id_schema,
    ),
    types.Tool(
        name="distro_launch",
        description="Start a root login shell inside an installed distribution",
        inputSchema=_distro_id_schema,
    ),
    types.Tool(
        name="session_create",
        description="Start a new host shell session",
        inputSchema={"type": "object", "properties": {}},
    ),
    types.Tool(
        name="session_write",
        description="Write text to a session's standard input",
        inputSchema={
            "type": "object",
            "properties": {
                "session_id": {"type": "string", "description": "Session identifier"},
                "text": {"type": "string", "description": "Text to send"},
            },
            "required": ["session_id", "text"],
        },
    ),
    types.Tool(
        name="session_read",
        description="Read the accumulated output of a session",
        inputSchema=_session_id_schema,
    ),
    types.Tool(
        name="session_exec",
        description="Run a one-shot command in a session's working directory and environment",
        inputSchema={
            "type": "object",
            "properties": {
                "session_id": {"type": "string", "description": "Session identifier"},
                "command": {"type": "string", "description": "Shell command"},
            },
            "required": ["session_id", "command"],
        },
    ),
    types.Tool(
        name="session_close",
        description="Terminate a session",
        inputSchema=_session_id_schema,
    ),
]


def _result(data: Any) -> List[types.TextContent]:
    return [types.TextContent(type="text", text=json.dumps({"success": True, "data": data}))]


def _error(message: str) -> List[types.TextContent]:
    return [types.TextContent(type="text", text=json.dumps({"success": False, "error": message}))]


def log_event(event: Event) -> None:
    if isinstance(event, ProgressUpdate):
        logger.debug(
            "install_progress",
            distro=event.distro_id,
            progress=event.progress,
            estimated=event.estimated,
        )
    elif isinstance(event, StatusChanged):
        logger.info("status_changed", distro=event.distro_id, status=event.status.value)
    elif isinstance(event, OperationFailed):
        logger.error(
            "operation_failed", distro=event.distro_id, operation=event.operation, error=event.error
        )


def _session_info(session_id: str, registry: SessionRegistry) -> Dict[str, Any]:
    session = registry.require(session_id)
    return {
        "session_id": session_id,
        "pid": session.pid,
        "state": session.state.value,
        "returncode": session.returncode,
    }


async def handle_tool(
    manager: DistributionManager,
    registry: SessionRegistry,
    name: str,
    arguments: Optional[Dict[str, Any]],
) -> List[types.TextContent]:
    arguments = arguments or {}
    try:
        logger.debug(f"Tool call received: {name} with arguments {arguments}")

        if name == "distro_list":
            return _result([
                {
                    "id": d.id,
                    "name": d.name,
                    "version": d.version,
                    "description": d.description,
                    "size_mb": d.size_mb,
                    "status": status.value,
                }
                for d, status in manager.available_distributions()
            ])

        elif name == "distro_install":
            descriptor = manager.get_distribution(arguments["distro_id"])
            errors: List[str] = []

            def collect_error(event: Event) -> None:
                if isinstance(event, OperationFailed) and event.distro_id == descriptor.id:
                    errors.append(event.error)

            unsubscribe = manager.events.subscribe(collect_error)
            try:
                installed = await manager.install(descriptor)
            finally:
                unsubscribe()
            if not installed:
                return _error(errors[-1] if errors else f"Failed to install {descriptor.id}")
            return _result({"id": descriptor.id, "status": manager.status(descriptor).value})

        elif name == "distro_uninstall":
            descriptor = manager.get_distribution(arguments["distro_id"])
            if not await manager.uninstall(descriptor):
                return _error(f"Failed to uninstall {descriptor.id}")
            return _result({"id": descriptor.id, "status": manager.status(descriptor).value})

        elif name == "distro_launch":
            descriptor = manager.get_distribution(arguments["distro_id"])
            session = await manager.launch(descriptor)
            if session is None:
                return _error(f"Distribution {descriptor.id} is not installed")
            session_id = registry.add(session)
            return _result({"distro_id": descriptor.id, **_session_info(session_id, registry)})

        elif name == "session_create":
            session_id, _ = await registry.create_host_session()
            return _result(_session_info(session_id, registry))

        elif name == "session_write":
            session = registry.require(arguments["session_id"])
            written = await session.write_text(arguments["text"])
            return _result({"written": written, "state": session.state.value})

        elif name == "session_read":
            session = registry.require(arguments["session_id"])
            return _result({"output": session.buffer_text(), "state": session.state.value})

        elif name == "session_exec":
            session = registry.require(arguments["session_id"])
            output = await session.execute_command(arguments["command"])
            return _result({"output": output})

        elif name == "session_close":
            await registry.remove(arguments["session_id"])
            return _result({"message": "Session closed"})

        return _error(f"Unknown tool: {name}")

    except DistroError as e:
        return _error(str(e))
    except Exception as e:
        logger.exception(f"Tool invocation failed: {str(e)}")
        return _error(str(e))


async def init_server(manager: DistributionManager, registry: SessionRegistry) -> Server:
    logger.info(f"Registered tools: {', '.join(t.name for t in tools)}")

    server = Server(SERVER_NAME)

    @server.list_tools()
    async def list_tools() -> List[types.Tool]:
        logger.debug("Tools requested")
        return tools

    @server.call_tool()
    async def call_tool(
        name: str, arguments: Optional[Dict[str, Any]]
    ) -> list[types.TextContent | types.ImageContent | types.EmbeddedResource]:
        return await handle_tool(manager, registry, name, arguments)

    return server


async def serve() -> None:
    settings = load_settings()
    configure_logging(settings.log_level)
    logger.info("Starting MCP distro server", data_dir=str(settings.data_dir))

    manager = DistributionManager(settings)
    manager.events.subscribe(log_event)
    registry = SessionRegistry(settings)

    server = await init_server(manager, registry)
    try:
        async with stdio.stdio_server() as (read_stream, write_stream):
            init_options = InitializationOptions(
                server_name=SERVER_NAME,
                server_version=SERVER_VERSION,
                capabilities=types.ServerCapabilities(
                    tools=types.ToolsCapability(listChanged=False),
                    logging=types.LoggingCapability(),
                ),
            )
            await server.run(read_stream, write_stream, init_options)
    finally:
        await registry.close_all()


def main() -> None:
    """Run the MCP server."""
    try:
        asyncio.run(serve())
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt")
