"""
MCP Multi-Server Client Manager

Loads the MCP server configuration file, starts every configured stdio
server and keeps the client sessions open for the lifetime of the CLI. The
sessions are handed to the model provider as external tools.

Config file format (``mcp-config.json``)::

    {
      "mcpServer": {
        "filesystem": {
          "command": "npx",
          "args": ["-y", "@modelcontextprotocol/server-filesystem", "/tmp"],
          "env": {"DEBUG": "0"}
        }
      }
    }

``mcpServers`` is accepted as an alias of the top-level key.
"""

import asyncio
import json
import logging
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, TextIO, Tuple, Union

from mcp import ClientSession, StdioServerParameters
from mcp.client.stdio import stdio_client
from mcp.types import Implementation, Tool

from aicli.trace import trace as _trace_write

logger = logging.getLogger(__name__)

# Client info sent to MCP servers during initialization
_CLIENT_INFO = Implementation(name="aicli", version="0.1.0")

SERVERS_KEYS = ("mcpServer", "mcpServers")


def _trace(msg: str) -> None:
    _trace_write("MCP", msg)


class MCPConfigError(ValueError):
    """The MCP server configuration file is unreadable or malformed."""


@dataclass
class ServerConfig:
    """Configuration for an MCP server."""
    name: str
    command: str
    args: List[str] = field(default_factory=list)
    env: Optional[Dict[str, str]] = None

    @classmethod
    def from_dict(cls, name: str, data: Any) -> "ServerConfig":
        """Validate one server entry.

        Raises:
            MCPConfigError: Missing command or wrongly typed fields.
        """
        if not isinstance(data, dict):
            raise MCPConfigError(f"Server '{name}': entry must be an object")
        command = data.get("command")
        if not isinstance(command, str) or not command.strip():
            raise MCPConfigError(f"Server '{name}': 'command' must be a non-empty string")
        args = data.get("args", [])
        if not isinstance(args, list) or not all(isinstance(a, str) for a in args):
            raise MCPConfigError(f"Server '{name}': 'args' must be a list of strings")
        env = data.get("env")
        if env is not None and (
            not isinstance(env, dict)
            or not all(isinstance(k, str) and isinstance(v, str) for k, v in env.items())
        ):
            raise MCPConfigError(f"Server '{name}': 'env' must map strings to strings")
        return cls(name=name, command=command.strip(), args=list(args), env=env)

    def to_dict(self) -> Dict[str, Any]:
        """Config file entry; ``env`` is omitted when empty."""
        data: Dict[str, Any] = {"command": self.command, "args": list(self.args)}
        if self.env:
            data["env"] = dict(self.env)
        return data

    def to_stdio_params(self) -> StdioServerParameters:
        return StdioServerParameters(
            command=self.command,
            args=self.args,
            env={**os.environ, **(self.env or {})},
        )


def parse_server_configs(data: Any) -> List[ServerConfig]:
    """Validate a decoded config document and return its servers in file order."""
    if not isinstance(data, dict):
        raise MCPConfigError("MCP config must be a JSON object")
    servers: Mapping[str, Any] = {}
    for key in SERVERS_KEYS:
        if key in data:
            servers = data[key]
            break
    else:
        raise MCPConfigError(f"MCP config has no '{SERVERS_KEYS[0]}' section")
    if not isinstance(servers, dict):
        raise MCPConfigError(f"'{SERVERS_KEYS[0]}' must be an object")
    return [ServerConfig.from_dict(name, entry) for name, entry in servers.items()]


def load_server_configs(path: Union[str, Path]) -> List[ServerConfig]:
    """Read server configs from ``path``; a missing file means no servers.

    Raises:
        MCPConfigError: The file exists but cannot be read or validated.
    """
    config_path = Path(path)
    if not config_path.exists():
        logger.debug("No MCP config at %s", config_path)
        return []
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise MCPConfigError(f"Invalid JSON in {config_path}: {e}") from e
    except OSError as e:
        raise MCPConfigError(f"Cannot read {config_path}: {e}") from e
    return parse_server_configs(data)


def save_server_configs(path: Union[str, Path], configs: List[ServerConfig]) -> None:
    """Write ``configs`` to ``path`` in file order, creating parent directories.

    Raises:
        MCPConfigError: The file cannot be written.
    """
    config_path = Path(path)
    data = {SERVERS_KEYS[0]: {config.name: config.to_dict() for config in configs}}
    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
            f.write("\n")
    except OSError as e:
        raise MCPConfigError(f"Cannot write {config_path}: {e}") from e
    _trace(f"saved {len(configs)} server(s) to {config_path}")


@dataclass
class ServerConnection:
    """Holds an active connection to an MCP server."""
    config: ServerConfig
    session: ClientSession
    tools: List[Tool] = field(default_factory=list)

    async def refresh_tools(self) -> List[Tool]:
        """Refresh the cached tool list."""
        result = await self.session.list_tools()
        self.tools = result.tools
        return self.tools


class MCPClientManager:
    """
    Manages the MCP server connections of one CLI run.

    Usage:
        async with MCPClientManager(errlog=log_file) as manager:
            sessions = await manager.connect_all(load_server_configs(path))
            # sessions go to the model provider as external tools

    Args:
        errlog: File-like object that receives server stderr output.
                Defaults to sys.stderr.
    """

    def __init__(self, errlog: Optional[TextIO] = None):
        self._connections: Dict[str, ServerConnection] = {}
        self._contexts: List[Any] = []  # entered contexts, closed in reverse
        self._errlog = errlog if errlog is not None else sys.stderr

    @property
    def servers(self) -> List[str]:
        """List of connected server names."""
        return list(self._connections.keys())

    @property
    def sessions(self) -> Tuple[ClientSession, ...]:
        """Connected sessions in connection order."""
        return tuple(conn.session for conn in self._connections.values())

    def get_connection(self, name: str) -> ServerConnection:
        """Get a server connection by name."""
        if name not in self._connections:
            raise KeyError(f"Server '{name}' not connected")
        return self._connections[name]

    def get_session(self, name: str) -> ClientSession:
        """Get a session by server name."""
        return self.get_connection(name).session

    async def connect(self, config: ServerConfig) -> ServerConnection:
        """Start one server and initialize its session.

        Raises:
            ValueError: A server with the same name is already connected.
        """
        if config.name in self._connections:
            raise ValueError(f"Server '{config.name}' already connected")

        _trace(f"connect: {config.name} ({config.command} {' '.join(config.args)})")
        stdio_ctx = stdio_client(config.to_stdio_params(), errlog=self._errlog)
        read, write = await stdio_ctx.__aenter__()
        self._contexts.append(stdio_ctx)

        session_ctx = ClientSession(read, write, client_info=_CLIENT_INFO)
        session = await session_ctx.__aenter__()
        self._contexts.append(session_ctx)

        await session.initialize()

        connection = ServerConnection(config=config, session=session)
        await connection.refresh_tools()

        self._connections[config.name] = connection
        _trace(f"connect: {config.name} ready with {len(connection.tools)} tool(s)")
        return connection

    async def connect_all(self, configs: List[ServerConfig]) -> Tuple[ClientSession, ...]:
        """Connect every configured server in order; returns all sessions.

        A server that fails to start aborts the whole call; connections
        made so far are closed when the manager exits.
        """
        for config in configs:
            await self.connect(config)
        logger.debug("Connected %d MCP server(s)", len(self._connections))
        return self.sessions

    async def __aenter__(self) -> "MCPClientManager":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        for ctx in reversed(self._contexts):
            try:
                await ctx.__aexit__(exc_type, exc_val, exc_tb)
            except (Exception, asyncio.CancelledError) as e:
                # Server processes often die noisily on shutdown.
                logger.debug("Ignoring MCP cleanup error: %s", e)

        self._contexts.clear()
        self._connections.clear()
        _trace("closed all connections")
