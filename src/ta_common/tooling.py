from __future__ import annotations

import functools
import inspect
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from ta_common.context import get_request_id, new_request_id, set_request_id
from ta_common.errors import GatewayError, typed_error
from ta_common.telemetry import log_event


# ---------------------------------------------------------------------------
# Shared helpers for MCP tool handlers
# ---------------------------------------------------------------------------


_REDACTION_KEYS = {"authorization", "token", "access_token", "api_key", "apikey"}


def sanitize_args_for_log(args: dict | None) -> dict:
    """Remove obvious secrets from args (telemetry layer also redacts)."""
    out: dict[str, Any] = {}
    for k, v in (args or {}).items():
        out[str(k)] = "***redacted***" if str(k).lower() in _REDACTION_KEYS else v
    return out


def _bound_args(sig: inspect.Signature, args: tuple[Any, ...], kwargs: dict[str, Any]) -> dict[str, Any]:
    """Bind positional/keyword args to parameter names for logging."""
    try:
        bound = sig.bind_partial(*args, **kwargs)
        bound.apply_defaults()
        return dict(bound.arguments)
    except TypeError:
        d: dict[str, Any] = dict(kwargs)
        if args:
            d["_args"] = list(args)
        return d


def _error_for_log(exc: BaseException) -> dict:
    if isinstance(exc, GatewayError):
        return exc.as_payload()["error"]
    return typed_error("internal", str(exc))["error"]


@dataclass(frozen=True)
class InstrumentConfig:
    kind: str
    name: str
    client_id: str
    telemetry_file: str = "mcp-telemetry.jsonl"

    # correlation id behavior
    new_corr_id_per_call: bool = False

    # attach corr_id to returned dict for debugging
    attach_corr_id: bool = True


class _CallRecord:
    """Per-call bookkeeping shared by the sync and async wrappers."""

    def __init__(self, cfg: InstrumentConfig, sig: inspect.Signature, args: tuple, kwargs: dict) -> None:
        self.cfg = cfg
        corr_id = get_request_id()
        if cfg.new_corr_id_per_call or not corr_id:
            corr_id = new_request_id()
            set_request_id(corr_id)
        self.corr_id = corr_id
        self.t0 = time.perf_counter()
        self.args_for_log: dict[str, Any] = {"args": sanitize_args_for_log(_bound_args(sig, args, kwargs))}

    def _emit(self, ok: bool) -> None:
        ms = int((time.perf_counter() - self.t0) * 1000)
        log_event(
            self.cfg.kind,
            self.cfg.name,
            self.args_for_log,
            ok=ok,
            ms=ms,
            client_id=self.cfg.client_id,
            corr_id=self.corr_id,
            telemetry_file=self.cfg.telemetry_file,
        )

    def failed(self, exc: BaseException) -> None:
        self.args_for_log["error"] = _error_for_log(exc)
        self._emit(ok=False)

    def finished(self, payload: Any) -> Any:
        ok = not (isinstance(payload, dict) and "error" in payload)
        if isinstance(payload, dict) and payload.get("error"):
            self.args_for_log["error"] = payload.get("error")
        self._emit(ok=ok)

        if self.cfg.attach_corr_id and isinstance(payload, dict):
            payload.setdefault("corr_id", self.corr_id)
        return payload


def instrument_sync_tool(cfg: InstrumentConfig):
    """Decorator for sync tools. Exceptions are recorded, then re-raised for FastMCP."""

    def decorator(fn: Callable[..., Any]):
        fn_sig = inspect.signature(fn)

        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any):
            rec = _CallRecord(cfg, fn_sig, args, kwargs)
            try:
                payload = fn(*args, **kwargs)
            except Exception as e:
                rec.failed(e)
                raise
            return rec.finished(payload)

        # Preserve signature for schema generation
        wrapper.__signature__ = fn_sig  # type: ignore[attr-defined]
        return wrapper

    return decorator


def instrument_async_tool(cfg: InstrumentConfig):
    """Decorator for async tools. Same contract as instrument_sync_tool."""

    def decorator(fn: Callable[..., Awaitable[Any]]):
        fn_sig = inspect.signature(fn)

        @functools.wraps(fn)
        async def wrapper(*args: Any, **kwargs: Any):
            rec = _CallRecord(cfg, fn_sig, args, kwargs)
            try:
                payload = await fn(*args, **kwargs)
            except Exception as e:
                rec.failed(e)
                raise
            return rec.finished(payload)

        wrapper.__signature__ = fn_sig  # type: ignore[attr-defined]
        return wrapper

    return decorator
