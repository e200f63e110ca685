from __future__ import annotations

import json

import pytest

from tests.helpers.mcp_runtime import build_test_env


SUN_RECORD = {
    "facts": {"fact1": "Sun is a star", "fact2": "Sun is a planet"},
    "correct_fact": "fact1",
}


@pytest.fixture(autouse=True)
def _isolated_telemetry(tmp_path, monkeypatch):
    """Keep telemetry writes out of the repository."""
    monkeypatch.setenv("TA_TELEMETRY_DIR", str(tmp_path / "telemetry"))
    monkeypatch.delenv("TA_DISABLE_TELEMETRY", raising=False)
    monkeypatch.delenv("TA_FACTS_THRESHOLD", raising=False)


@pytest.fixture
def write_facts(tmp_path):
    """Write a facts dataset (any JSON-able value or raw text) and return its path."""
    def _write(data, name: str = "facts.json"):
        p = tmp_path / name
        p.write_text(data if isinstance(data, str) else json.dumps(data), encoding="utf-8")
        return p

    return _write


@pytest.fixture
def sun_facts(write_facts):
    return write_facts([SUN_RECORD])


@pytest.fixture
def gateway_env(tmp_path, sun_facts):
    """Subprocess environment for the gateway MCP server with no remote providers.

    Sessions are opened inside each test body: the stdio client's cancel
    scopes must be exited by the task that entered them.
    """
    providers = tmp_path / "providers.json"
    providers.write_text(json.dumps({"providers": []}), encoding="utf-8")
    return build_test_env(tmp_path, extra={"TA_PROVIDERS_PATH": str(providers), "TA_FACTS_PATH": str(sun_facts)})
