from __future__ import annotations

from typing import Any

REDACT_TOKEN = "***redacted***"


def typed_error(code: str, message: str, *, details: dict | None = None, **extra: Any) -> dict:
    """
    Standard error envelope:
      {"error": {"code": code, "message": message, "details": {...}}, ...extra}
    """
    err: dict[str, Any] = {"error": {"code": code, "message": message}}
    if details:
        err["error"]["details"] = details
    if extra:
        err.update(extra)
    return err


class GatewayError(Exception):
    """Base class for errors reported to MCP callers as tool errors."""

    code = "internal"

    def as_payload(self, **extra: Any) -> dict:
        return typed_error(self.code, str(self), **extra)


class DatasetLoadError(GatewayError):
    """The reference facts dataset is missing or malformed."""

    code = "dataset_load_failed"


class ProviderError(GatewayError):
    code = "provider_error"

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(message)
        self.provider = provider

    def as_payload(self, **extra: Any) -> dict:
        return super().as_payload(provider=self.provider, **extra)


class UnknownToolError(GatewayError):
    code = "unknown_tool"

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown tool: {name}")
        self.name = name
