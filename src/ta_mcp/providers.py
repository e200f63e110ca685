from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional
from urllib.parse import urlencode, urlsplit, urlunsplit, parse_qsl

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from ta_config.settings import providers_path

log = logging.getLogger(__name__)


class ProviderConfig(BaseModel):
    """One remote MCP server whose tools the gateway re-exposes."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(min_length=1)
    transport: Literal["http", "stdio"] = "http"

    # http
    url: Optional[str] = None
    headers: Dict[str, str] = Field(default_factory=dict)
    api_key_env: Optional[str] = None

    # stdio
    command: Optional[str] = None
    args: List[str] = Field(default_factory=list)
    env: Dict[str, str] = Field(default_factory=dict)

    # allowlist; None exposes every tool the provider lists
    tools: Optional[List[str]] = None
    timeout_s: float = Field(default=30.0, gt=0)

    @model_validator(mode="after")
    def _check_transport(self) -> "ProviderConfig":
        if self.transport == "http" and not self.url:
            raise ValueError("http providers require 'url'")
        if self.transport == "stdio" and not self.command:
            raise ValueError("stdio providers require 'command'")
        return self

    def allows(self, tool_name: str) -> bool:
        return self.tools is None or tool_name in self.tools

    def endpoint(self) -> str:
        """HTTP endpoint, with `api_key` appended when api_key_env is set in the environment."""
        if not self.url:
            raise ValueError(f"provider {self.name!r} has no url")
        key = os.getenv(self.api_key_env) if self.api_key_env else None
        if not key:
            return self.url
        parts = urlsplit(self.url)
        query = parse_qsl(parts.query, keep_blank_values=True)
        query.append(("api_key", key))
        return urlunsplit(parts._replace(query=urlencode(query)))


def _load_providers_file(path: Path) -> List[Dict[str, Any]]:
    with path.open("r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict) or not isinstance(data.get("providers"), list):
        raise ValueError(f"Invalid providers file format (expected {{\"providers\": [...]}}): {path}")
    return data["providers"]


def parse_providers(entries: List[Any]) -> List[ProviderConfig]:
    """
    Validate raw provider entries. Invalid entries and duplicate names are
    logged and skipped; order is preserved.
    """
    out: List[ProviderConfig] = []
    seen: set[str] = set()
    for i, raw in enumerate(entries or []):
        try:
            cfg = ProviderConfig.model_validate(raw)
        except ValidationError as e:
            log.error("Skipping provider entry #%d: %s", i, e)
            continue
        if cfg.name in seen:
            log.warning("Skipping duplicate provider name %r (entry #%d)", cfg.name, i)
            continue
        seen.add(cfg.name)
        out.append(cfg)
    return out


def load_providers(path: Optional[Path | str] = None) -> List[ProviderConfig]:
    p = Path(path).expanduser() if path is not None else providers_path()

    try:
        entries = _load_providers_file(p)
    except FileNotFoundError:
        log.warning("Providers file not found: %s; serving local tools only", p)
        return []
    except (OSError, ValueError) as e:
        log.error("Error loading %s: %s", p, e)
        return []

    providers = parse_providers(entries)
    log.info("Loaded %d provider(s) from %s", len(providers), p)
    return providers


__all__ = ["ProviderConfig", "load_providers", "parse_providers"]
