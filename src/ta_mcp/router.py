from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterable, List, Optional

from ta_common.errors import GatewayError, ProviderError, UnknownToolError, typed_error
from ta_common.telemetry import log_event
from ta_mcp.provider_client import ProviderClient
from ta_mcp.providers import ProviderConfig, load_providers

if TYPE_CHECKING:
    from mcp.types import CallToolResult, Tool

logger = logging.getLogger(__name__)


class ToolRouter:
    """
    Routing orchestrator:
    - Discovers tools on every configured provider and merges them
    - Keeps a tool name -> provider table (first provider wins)
    - Forwards tool calls to the owning provider
    """

    def __init__(
        self,
        configs: Optional[Iterable[ProviderConfig]] = None,
        *,
        client_factory: Callable[[ProviderConfig], Any] = ProviderClient,
        client_id: str | None = None,
    ) -> None:
        self._configs = list(configs) if configs is not None else None
        self._client_factory = client_factory
        self._clients: Dict[str, Any] | None = None
        self._routes: Dict[str, str] = {}
        self._reserved: set[str] = set()
        self.client_id = client_id

    # ---- internal helpers -------------------------------------------------
    def _ensure_clients(self) -> Dict[str, Any]:
        # Providers are read lazily so init_runtime() (dotenv) can influence the config path.
        if self._clients is None:
            configs = self._configs if self._configs is not None else load_providers()
            self._configs = configs
            self._clients = {c.name: self._client_factory(c) for c in configs}
        return self._clients

    def _config(self, provider: str) -> ProviderConfig:
        assert self._configs is not None
        return next(c for c in self._configs if c.name == provider)

    async def _list_one(self, name: str, client: Any) -> List["Tool"]:
        tools = await client.list_tools()
        cfg = self._config(name)
        return [t for t in tools if cfg.allows(t.name)]

    async def _gather_listings(self) -> Dict[str, List["Tool"] | BaseException]:
        clients = self._ensure_clients()
        names = list(clients)
        results = await asyncio.gather(
            *(self._list_one(n, clients[n]) for n in names),
            return_exceptions=True,
        )
        return dict(zip(names, results))

    # ---- public API -------------------------------------------------------
    @property
    def providers(self) -> List[str]:
        return list(self._ensure_clients())

    def provider_for(self, tool_name: str) -> Optional[str]:
        provider = self._routes.get(tool_name)
        if provider is not None:
            return provider
        # Allowlisted names route without a prior listing.
        self._ensure_clients()
        for cfg in self._configs or []:
            if cfg.tools is not None and tool_name in cfg.tools:
                return cfg.name
        return None

    async def list_tools(self, reserved: Optional[Iterable[str]] = None) -> List["Tool"]:
        """
        Merged tool list in provider order. Failing providers are logged and
        skipped. Names in `reserved` (local tools) are never routed remotely;
        when omitted, the names reserved by the previous listing still apply.
        """
        if reserved is not None:
            self._reserved = set(reserved)
        reserved_names = self._reserved
        listings = await self._gather_listings()

        merged: List["Tool"] = []
        routes: Dict[str, str] = {}
        for provider, tools in listings.items():
            if isinstance(tools, BaseException):
                logger.error("Provider %s: tool listing failed: %s", provider, tools)
                continue
            for tool in tools:
                if tool.name in reserved_names:
                    logger.warning("Provider %s: tool %r shadowed by a local tool", provider, tool.name)
                    continue
                if tool.name in routes:
                    logger.warning(
                        "Provider %s: tool %r already provided by %s; skipping",
                        provider, tool.name, routes[tool.name],
                    )
                    continue
                routes[tool.name] = provider
                merged.append(tool)

        self._routes = routes
        logger.debug("Routing table rebuilt: %d remote tool(s)", len(routes))
        return merged

    async def call_tool(self, tool_name: str, arguments: Dict[str, Any] | None = None) -> "CallToolResult":
        t0 = time.perf_counter()
        provider = self.provider_for(tool_name)
        if provider is None:
            # Unseen name: refresh the listing once before giving up.
            await self.list_tools()
            provider = self.provider_for(tool_name)

        args_for_log: Dict[str, Any] = {"provider": provider, "args": dict(arguments or {})}
        try:
            if provider is None:
                raise UnknownToolError(tool_name)
            result = await self._ensure_clients()[provider].call_tool(tool_name, arguments or {})
        except GatewayError as e:
            args_for_log["error"] = e.as_payload()["error"]
            log_event("route", tool_name, args_for_log, ok=False,
                      ms=int((time.perf_counter() - t0) * 1000), client_id=self.client_id)
            raise

        ok = not bool(getattr(result, "isError", False))
        log_event("route", tool_name, args_for_log, ok=ok,
                  ms=int((time.perf_counter() - t0) * 1000), client_id=self.client_id)
        return result

    async def status(self) -> Dict[str, Any]:
        """Per-provider reachability summary."""
        listings = await self._gather_listings()
        out: Dict[str, Any] = {}
        for provider, tools in listings.items():
            cfg = self._config(provider)
            entry: Dict[str, Any] = {"transport": cfg.transport}
            if isinstance(tools, ProviderError):
                entry.update({"ok": False, **tools.as_payload()})
            elif isinstance(tools, BaseException):
                entry.update({"ok": False, **typed_error("internal", str(tools), provider=provider)})
            else:
                entry.update({"ok": True, "tools": sorted(t.name for t in tools)})
            out[provider] = entry
        return {"providers": out}
