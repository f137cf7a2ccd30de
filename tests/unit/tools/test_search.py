"""Unit tests for the Tavily search tool and its key store.

HTTP calls go through ``httpx.MockTransport``; nothing reaches the network.
"""

from __future__ import annotations

import json
import os
import stat

import httpx
import pytest

from live_infra.errors import SearchError
from live_infra.tools.keystore import KeyStore, default_store_path
from live_infra.tools.search import API_KEY_NAME, TAVILY_SEARCH_URL, TavilySearchTool

TAVILY_RESPONSE = {
    "answer": "Python 3.13 was released in October 2024.",
    "results": [
        {
            "title": "Python Release Python 3.13.0",
            "url": "https://www.python.org/downloads/release/python-3130/",
            "content": "Python 3.13.0 is the newest major release.",
            "score": 0.98,
            "raw_content": None,
        },
        {
            "title": "What's New In Python 3.13",
            "url": "https://docs.python.org/3/whatsnew/3.13.html",
            "content": "This article explains the new features.",
            "score": 0.91,
        },
    ],
    "response_time": 1.12,
}


@pytest.fixture
def store(tmp_path) -> KeyStore:
    return KeyStore(tmp_path / "settings.json")


def make_tool(store: KeyStore, handler) -> TavilySearchTool:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return TavilySearchTool(key_store=store, client=client)


# ─────────────────────────────────────────────────────────────────────────────
# KeyStore
# ─────────────────────────────────────────────────────────────────────────────


class TestKeyStore:
    """Test the JSON-file key store."""

    def test_missing_file_reads_empty(self, store):
        assert store.get("anything") is None

    def test_set_and_get(self, store):
        store.set("a", "1")
        store.set("b", "2")

        assert store.get("a") == "1"
        assert json.loads(store.path.read_text()) == {"a": "1", "b": "2"}

    def test_delete(self, store):
        store.set("a", "1")

        assert store.delete("a") is True
        assert store.delete("a") is False
        assert store.get("a") is None

    def test_creates_parent_directories(self, tmp_path):
        nested = KeyStore(tmp_path / "x" / "y" / "settings.json")
        nested.set("k", "v")

        assert nested.get("k") == "v"

    @pytest.mark.skipif(os.name != "posix", reason="POSIX permissions")
    def test_file_is_private(self, store):
        store.set("secret", "s")

        assert stat.S_IMODE(store.path.stat().st_mode) == 0o600

    @pytest.mark.skipif(os.name != "posix", reason="POSIX permissions")
    def test_existing_open_file_becomes_private(self, store):
        store.path.write_text("{}")
        os.chmod(store.path, 0o644)

        store.set("secret", "s")

        assert stat.S_IMODE(store.path.stat().st_mode) == 0o600
        assert store.get("secret") == "s"
        assert sorted(p.name for p in store.path.parent.iterdir()) == ["settings.json"]

    def test_failed_write_keeps_old_file(self, store, monkeypatch):
        store.set("a", "1")

        def failing_replace(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr(os, "replace", failing_replace)

        with pytest.raises(OSError, match="disk full"):
            store.set("b", "2")

        monkeypatch.undo()
        assert json.loads(store.path.read_text()) == {"a": "1"}
        assert sorted(p.name for p in store.path.parent.iterdir()) == ["settings.json"]

    def test_corrupt_file_reads_empty(self, store):
        store.path.write_text("{not json")

        assert store.get("a") is None

    def test_default_path_from_env(self, monkeypatch, tmp_path):
        monkeypatch.setenv("LIVE_INFRA_CONFIG_DIR", str(tmp_path))

        assert default_store_path() == tmp_path / "settings.json"

    def test_default_path_from_xdg(self, monkeypatch, tmp_path):
        monkeypatch.delenv("LIVE_INFRA_CONFIG_DIR", raising=False)
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))

        assert default_store_path() == tmp_path / "live-infra" / "settings.json"


# ─────────────────────────────────────────────────────────────────────────────
# API key handling
# ─────────────────────────────────────────────────────────────────────────────


class TestApiKey:
    """Test storing and reading the Tavily key."""

    def test_no_key(self, store):
        assert TavilySearchTool(key_store=store).get_api_key() == ""

    def test_set_key_is_trimmed(self, store):
        tool = TavilySearchTool(key_store=store)
        tool.set_api_key("  tvly-abc  ")

        assert tool.get_api_key() == "tvly-abc"
        assert store.get(API_KEY_NAME) == "tvly-abc"

    @pytest.mark.parametrize("empty", ["", "   ", None])
    def test_empty_key_removes(self, store, empty):
        tool = TavilySearchTool(key_store=store)
        tool.set_api_key("tvly-abc")
        tool.set_api_key(empty)

        assert tool.get_api_key() == ""
        assert store.get(API_KEY_NAME) is None

    def test_whitespace_only_stored_key_counts_as_missing(self, store):
        store.set(API_KEY_NAME, "   ")

        assert TavilySearchTool(key_store=store).get_api_key() == ""


# ─────────────────────────────────────────────────────────────────────────────
# Declaration
# ─────────────────────────────────────────────────────────────────────────────


class TestDeclaration:
    """Test the function declaration offered to a model."""

    def test_shape(self):
        (decl,) = TavilySearchTool.declaration()

        assert decl["name"] == "tavily_search"
        assert decl["parameters"]["required"] == ["query"]
        props = decl["parameters"]["properties"]
        assert set(props) == {"query", "search_depth", "max_results"}
        assert props["search_depth"]["enum"] == ["basic", "advanced"]


# ─────────────────────────────────────────────────────────────────────────────
# search()
# ─────────────────────────────────────────────────────────────────────────────


class TestSearch:
    """Test the search request and response mapping."""

    @pytest.mark.asyncio
    async def test_missing_key_raises(self, store):
        def handler(request):
            raise AssertionError("no request expected")

        with pytest.raises(SearchError, match="API key not found"):
            await make_tool(store, handler).search("anything")

    @pytest.mark.asyncio
    async def test_request_body(self, store):
        store.set(API_KEY_NAME, "tvly-abc")
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=TAVILY_RESPONSE)

        await make_tool(store, handler).search("python release", search_depth="advanced", max_results=3)

        assert seen["url"] == TAVILY_SEARCH_URL
        assert seen["body"] == {
            "api_key": "tvly-abc",
            "query": "python release",
            "search_depth": "advanced",
            "max_results": 3,
            "include_answer": True,
            "include_raw_content": False,
        }

    @pytest.mark.parametrize("requested,sent", [(0, 1), (-4, 1), (25, 10), (7, 7)])
    @pytest.mark.asyncio
    async def test_max_results_clamped(self, store, requested, sent):
        store.set(API_KEY_NAME, "tvly-abc")
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"results": []})

        await make_tool(store, handler).search("q", max_results=requested)

        assert seen["body"]["max_results"] == sent

    @pytest.mark.asyncio
    async def test_result_mapping(self, store):
        store.set(API_KEY_NAME, "tvly-abc")

        def handler(request):
            return httpx.Response(200, json=TAVILY_RESPONSE)

        result = await make_tool(store, handler).search("python release")

        assert result["query"] == "python release"
        assert result["answer"] == TAVILY_RESPONSE["answer"]
        assert result["response_time"] == 1.12
        assert result["results"][0] == {
            "title": "Python Release Python 3.13.0",
            "url": "https://www.python.org/downloads/release/python-3130/",
            "content": "Python 3.13.0 is the newest major release.",
            "score": 0.98,
        }
        assert len(result["results"]) == 2

    @pytest.mark.asyncio
    async def test_empty_answer_is_none(self, store):
        store.set(API_KEY_NAME, "tvly-abc")

        def handler(request):
            return httpx.Response(200, json={"answer": "", "results": None})

        result = await make_tool(store, handler).search("q")

        assert result["answer"] is None
        assert result["results"] == []

    @pytest.mark.asyncio
    async def test_api_error_status(self, store):
        store.set(API_KEY_NAME, "tvly-bad")

        def handler(request):
            return httpx.Response(401, json={"detail": "Unauthorized"})

        with pytest.raises(SearchError) as exc_info:
            await make_tool(store, handler).search("q")

        assert exc_info.value.status_code == 401
        assert "401" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_network_error(self, store):
        store.set(API_KEY_NAME, "tvly-abc")

        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(SearchError, match="request failed"):
            await make_tool(store, handler).search("q")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "response",
        [
            httpx.Response(200, text="<html>maintenance</html>"),
            httpx.Response(200, json=["not", "an", "object"]),
        ],
    )
    async def test_invalid_success_body(self, store, response):
        store.set(API_KEY_NAME, "tvly-abc")

        with pytest.raises(SearchError, match="invalid response") as exc_info:
            await make_tool(store, lambda request: response).search("q")

        assert exc_info.value.status_code == 200
