import json

import pytest
from pydantic import ValidationError

from ta_mcp.providers import ProviderConfig, load_providers, parse_providers


def _write(tmp_path, data):
    p = tmp_path / "providers.json"
    p.write_text(data if isinstance(data, str) else json.dumps(data), encoding="utf-8")
    return p


def test_load_providers_http_and_stdio(tmp_path):
    p = _write(tmp_path, {"providers": [
        {"name": "nltk", "url": "https://example.test/nltk/mcp", "tools": ["get_longest_word"]},
        {"name": "local", "transport": "stdio", "command": "python", "args": ["-m", "x.server"]},
    ]})

    providers = load_providers(p)
    assert [c.name for c in providers] == ["nltk", "local"]
    assert providers[0].transport == "http"
    assert providers[0].allows("get_longest_word")
    assert not providers[0].allows("analyse_cards")
    assert providers[1].allows("anything")


def test_missing_file_means_no_providers(tmp_path):
    assert load_providers(tmp_path / "absent.json") == []


@pytest.mark.parametrize("content", ["{broken", json.dumps({"providers": {}}), json.dumps([])])
def test_malformed_file_means_no_providers(tmp_path, content):
    assert load_providers(_write(tmp_path, content)) == []


def test_invalid_and_duplicate_entries_are_skipped():
    providers = parse_providers([
        {"name": "a", "url": "https://a.test/mcp"},
        {"name": "b", "transport": "http"},             # no url
        {"name": "c", "transport": "stdio"},            # no command
        {"name": "a", "url": "https://other.test/mcp"}, # duplicate
        {"name": "d", "url": "https://d.test/mcp", "bogus": 1},
        "not-a-dict",
        {"name": "e", "transport": "stdio", "command": "node"},
    ])
    assert [c.name for c in providers] == ["a", "e"]
    assert providers[0].url == "https://a.test/mcp"


def test_path_from_environment(tmp_path, monkeypatch):
    p = _write(tmp_path, {"providers": [{"name": "x", "url": "https://x.test/mcp"}]})
    monkeypatch.setenv("TA_PROVIDERS_PATH", str(p))
    assert [c.name for c in load_providers()] == ["x"]


def test_endpoint_appends_api_key_from_env(monkeypatch):
    cfg = ProviderConfig(name="s", url="https://s.test/mcp?config=abc", api_key_env="TEST_PROVIDER_KEY")

    monkeypatch.delenv("TEST_PROVIDER_KEY", raising=False)
    assert cfg.endpoint() == "https://s.test/mcp?config=abc"

    monkeypatch.setenv("TEST_PROVIDER_KEY", "k 1")
    assert cfg.endpoint() == "https://s.test/mcp?config=abc&api_key=k+1"


def test_provider_config_is_frozen():
    cfg = ProviderConfig(name="s", url="https://s.test/mcp")
    with pytest.raises(ValidationError):
        cfg.name = "t"
