from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import TYPE_CHECKING, Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional, TypeVar

from ta_common.errors import ProviderError
from ta_mcp.providers import ProviderConfig

if TYPE_CHECKING:
    from mcp import ClientSession
    from mcp.types import CallToolResult, Tool

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _find_protocol_error(exc: BaseException) -> Optional[BaseException]:
    """Return the McpError behind `exc`, looking inside task-group exception groups."""
    from mcp.shared.exceptions import McpError

    if isinstance(exc, McpError):
        return exc
    for inner in getattr(exc, "exceptions", None) or ():
        found = _find_protocol_error(inner)
        if found is not None:
            return found
    return None


class ProviderClient:
    """
    MCP client for one remote tool provider.

    Key behavior:
    - Opens a fresh ClientSession per operation (streamable HTTP or stdio) and
      closes it afterwards; no connection state survives between calls.
    - Retries once with a new session on transport failures.
    - Protocol-level rejections (McpError) are not retried.
    """

    def __init__(self, config: ProviderConfig) -> None:
        self.config = config

    @property
    def name(self) -> str:
        return self.config.name

    def _transport(self):
        # Lazy imports
        if self.config.transport == "stdio":
            from mcp.client.stdio import StdioServerParameters, stdio_client

            env = dict(os.environ)
            env.update(self.config.env)
            params = StdioServerParameters(command=self.config.command, args=list(self.config.args), env=env)
            return stdio_client(params)

        from mcp.client.streamable_http import streamablehttp_client

        return streamablehttp_client(
            self.config.endpoint(),
            headers=dict(self.config.headers) or None,
            timeout=timedelta(seconds=self.config.timeout_s),
        )

    @asynccontextmanager
    async def _session(self) -> AsyncIterator["ClientSession"]:
        from mcp import ClientSession

        async with self._transport() as streams:
            # stdio yields (read, write); streamable http adds a session-id getter
            read, write = streams[0], streams[1]
            async with ClientSession(
                read,
                write,
                read_timeout_seconds=timedelta(seconds=self.config.timeout_s),
            ) as session:
                await session.initialize()
                yield session

    async def _run(self, op: str, fn: Callable[["ClientSession"], Awaitable[T]]) -> T:
        for attempt in (1, 2):
            try:
                async with self._session() as session:
                    return await fn(session)
            except Exception as e:
                protocol_error = _find_protocol_error(e)
                if protocol_error is not None:
                    raise ProviderError(self.name, f"{op} rejected by provider {self.name}: {protocol_error}") from e
                if attempt == 2:
                    raise ProviderError(self.name, f"{op} failed on provider {self.name}: {e}") from e
                logger.warning("%s on provider %s failed (%s); reconnecting once", op, self.name, e)
        raise AssertionError("unreachable")

    async def list_tools(self) -> List["Tool"]:
        async def _op(session: "ClientSession") -> List["Tool"]:
            res = await session.list_tools()
            return list(res.tools)

        return await self._run("list_tools", _op)

    async def call_tool(self, tool_name: str, args: Dict[str, Any] | None = None) -> "CallToolResult":
        async def _op(session: "ClientSession") -> "CallToolResult":
            return await session.call_tool(tool_name, dict(args or {}))

        return await self._run(f"call_tool({tool_name})", _op)
