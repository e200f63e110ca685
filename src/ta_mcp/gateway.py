import logging
from contextlib import asynccontextmanager
import os
from typing import Annotated, Any, AsyncIterator, Callable, Sequence, TypeVar, ParamSpec

from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError
from mcp.types import Tool as MCPTool
from pydantic import Field

from ta_common.errors import GatewayError, UnknownToolError
from ta_common.telemetry import telemetry_recent
from ta_common.tooling import InstrumentConfig, instrument_async_tool, instrument_sync_tool
from ta_config.settings import init_runtime
from ta_facts import service as facts_service
from ta_mcp.router import ToolRouter


logger = logging.getLogger(__name__)

MCP_CLIENT_ID = os.getenv("MCP_CLIENT_ID", "textarena-gateway")

P = ParamSpec("P")
R = TypeVar("R")


def _result_text(result: Any) -> str:
    parts = []
    for block in getattr(result, "content", None) or []:
        text = getattr(block, "text", None)
        if isinstance(text, str):
            parts.append(text)
    return "\n".join(parts)


@asynccontextmanager
async def _seed_local_tools(server: "GatewayMCP") -> AsyncIterator[dict]:
    # A lowlevel tool-cache miss re-lists every tool before the call runs.
    # Seeded local definitions keep local calls off the remote providers.
    cache = getattr(server._mcp_server, "_tool_cache", None)
    if cache is not None:
        for tool in await FastMCP.list_tools(server):
            cache.setdefault(tool.name, tool)
    yield {}


class GatewayMCP(FastMCP):
    """
    FastMCP server whose tool list is the union of the routed provider tools
    and the locally registered tools. Local tools win on name clashes.
    """

    def __init__(self, *args: Any, router: ToolRouter, **kwargs: Any) -> None:
        self.router = router
        kwargs.setdefault("lifespan", _seed_local_tools)
        super().__init__(*args, **kwargs)

    def is_local_tool(self, name: str) -> bool:
        return self._tool_manager.get_tool(name) is not None

    async def list_tools(self) -> list[MCPTool]:
        local = await super().list_tools()
        try:
            remote = await self.router.list_tools(reserved=[t.name for t in local])
        except Exception:
            logger.exception("Remote tool listing failed; serving local tools only")
            remote = []
        return [*remote, *local]

    async def call_tool(self, name: str, arguments: dict[str, Any]) -> Any:
        if self.is_local_tool(name):
            return await super().call_tool(name, arguments)

        try:
            result = await self.router.call_tool(name, arguments)
        except UnknownToolError as e:
            logger.error("Unknown tool requested: %s", name)
            raise ToolError(str(e)) from e
        except GatewayError as e:
            logger.error("Error calling tool %s: %s", name, e)
            raise ToolError(f"Error executing tool {name}: {e}") from e

        if result.isError:
            raise ToolError(_result_text(result) or f"Tool {name} reported an error")

        content: Sequence[Any] = result.content
        if result.structuredContent is not None:
            return content, result.structuredContent
        return content


router = ToolRouter(client_id=MCP_CLIENT_ID)

mcp = GatewayMCP(
    name="textarena-mcp",
    instructions=(
        "Gateway that re-exposes the tools of several remote MCP providers "
        "and adds verify_facts, a reference-dataset fact checker."
    ),
    router=router,
)


def _cfg(tool_name: str) -> InstrumentConfig:
    return InstrumentConfig(
        kind="tool",
        name=tool_name,
        client_id=MCP_CLIENT_ID,
        new_corr_id_per_call=True,
    )


def gateway_tool(name: str, *, sync: bool = False, description: str | None = None):
    """
    Registers a local MCP tool with instrumentation.
    Keeps the tool signature stable for MCP schema generation.
    """
    def decorator(fn: Callable[P, R]) -> Callable[P, R]:
        wrapped = instrument_sync_tool(_cfg(name))(fn) if sync else instrument_async_tool(_cfg(name))(fn)
        mcp.tool(name=name, description=description)(wrapped)
        return wrapped

    return decorator


@gateway_tool(
    "verify_facts",
    sync=True,
    description="Compares two input facts with a facts dataset and returns which fact is correct",
)
def verify_facts(
    fact1: Annotated[str, Field(description="First fact as a string")],
    fact2: Annotated[str, Field(description="Second fact as a string")],
) -> str:
    # DatasetLoadError surfaces as an MCP tool error
    return facts_service.verify_facts(fact1, fact2)


@gateway_tool("gateway.healthz.v1", sync=True)
def gateway_healthz() -> dict:
    return {"ok": True}


@gateway_tool("gateway.providers.status.v1")
async def gateway_providers_status() -> dict:
    """Reachability and exposed tools for each configured provider."""
    return await mcp.router.status()


# payload already redacted on read
@gateway_tool("gateway.telemetry.recent.v1", sync=True)
def gateway_telemetry_recent(n: int = 50) -> dict:
    return telemetry_recent(n=n)


def main() -> None:
    # Entry points (console_scripts) call main() directly, so we must perform
    # runtime initialization here (dotenv + logging).
    init_runtime()
    transport = os.environ.get("MCP_TRANSPORT", "stdio")
    logger.info("textarena-mcp gateway starting (transport=%s)", transport)
    try:
        mcp.run(transport=transport)
    except KeyboardInterrupt:
        logger.info("Interrupted; gateway stopped")


if __name__ == "__main__":
    main()
