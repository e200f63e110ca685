"""
Smoke script for the gateway over stdio.

It performs:
 1) spawns the gateway module and initializes an MCP session
 2) lists tools (remote providers + local)
 3) calls gateway.healthz.v1 and gateway.providers.status.v1
 4) calls verify_facts with a straight and a swapped pair
"""

from __future__ import annotations

import asyncio
import json
import os
import sys
from pathlib import Path
from typing import Any

_REPO_ROOT = Path(__file__).resolve().parents[1]
_SRC = _REPO_ROOT / "src"


def _pretty(x: Any) -> str:
    if isinstance(x, str):
        s = x.strip()
        if s.startswith("{") or s.startswith("["):
            try:
                return json.dumps(json.loads(s), indent=2, ensure_ascii=False)
            except json.JSONDecodeError:
                return x
        return x
    return json.dumps(x, indent=2, ensure_ascii=False, default=str)


def _unwrap_tool_result(res: Any) -> str:
    content = getattr(res, "content", None) or []
    return "\n".join(getattr(c, "text", "") for c in content)


async def smoke() -> bool:
    # Lazy import so the script stays importable without the mcp package
    from mcp import ClientSession
    from mcp.client.stdio import StdioServerParameters, stdio_client

    gateway_module = os.getenv("TA_GATEWAY_MODULE", "ta_mcp.gateway")
    python_cmd = os.getenv("MCP_PYTHON") or sys.executable

    print(f"[smoke] Repo root: {_REPO_ROOT}")
    print(f"[smoke] Gateway module: {gateway_module}")

    env = dict(os.environ, MCP_TRANSPORT="stdio")
    env["PYTHONPATH"] = os.pathsep.join(p for p in (str(_SRC), env.get("PYTHONPATH", "")) if p)
    server = StdioServerParameters(command=python_cmd, args=["-m", gateway_module], env=env)

    ok = True
    async with stdio_client(server) as (read, write):
        async with ClientSession(read, write) as session:
            await session.initialize()

            tools = await session.list_tools()
            print("\n[smoke] TOOLS:")
            for t in tools.tools:
                print(f" - {t.name}")

            for name in ("gateway.healthz.v1", "gateway.providers.status.v1"):
                res = await session.call_tool(name, {})
                print(f"\n[smoke] CALL {name}:")
                print(_pretty(_unwrap_tool_result(res)))
                if res.isError:
                    ok = False

            for fact1, fact2, expected in (
                ("Sun is a star", "Sun is a planet", "fact1"),
                ("Sun is a planet", "Sun is a star", "fact2"),
            ):
                res = await session.call_tool("verify_facts", {"fact1": fact1, "fact2": fact2})
                out = _unwrap_tool_result(res)
                print(f"\n[smoke] verify_facts({fact1!r}, {fact2!r}) -> {out}")
                if res.isError or out != expected:
                    print(f"[smoke] WARN: expected {expected!r}")
                    ok = False

    return ok


async def main() -> int:
    ok = await smoke()
    print("\n[smoke] OK" if ok else "\n[smoke] Completed with warnings")
    return 0 if ok else 1


if __name__ == "__main__":
    raise SystemExit(asyncio.run(main()))
