"""Unit tests for LogseqClient."""

from unittest.mock import AsyncMock

import httpx
import pytest

from logseq_bridge.models.config import Configuration, LogseqConfig
from logseq_bridge.services.exceptions import (
    GuidanceError,
    MalformedResponseError,
    PageNotFoundError,
    RemoteError,
)
from logseq_bridge.services.logseq_client import LogseqClient, RemoteBlock

ENDPOINT = "http://127.0.0.1:12315/api"


def make_client(*responses):
    """Build a client whose HTTP layer returns the given responses in order."""
    http = AsyncMock(spec=httpx.AsyncClient)
    http.post = AsyncMock(side_effect=list(responses))
    return LogseqClient(ENDPOINT, "secret", http_client=http), http


def sent_payload(http, index=0):
    return http.post.call_args_list[index].kwargs["json"]


class TestCall:
    """Test the raw call() method."""

    @pytest.mark.asyncio
    async def test_posts_method_and_args_with_bearer_token(self):
        """Test request shape: method, args and Authorization header."""
        client, http = make_client(httpx.Response(200, json={"uuid": "p1"}))

        result = await client.call("logseq.Editor.getPage", "Inbox")

        assert result == {"uuid": "p1"}
        call = http.post.call_args
        assert call.args[0] == ENDPOINT
        assert call.kwargs["json"] == {"method": "logseq.Editor.getPage", "args": ["Inbox"]}
        assert call.kwargs["headers"]["Authorization"] == "Bearer secret"

    @pytest.mark.asyncio
    async def test_no_args_omits_args_key(self):
        """Test that argument-less calls send only the method."""
        client, http = make_client(httpx.Response(200, json=[]))

        await client.call("logseq.Editor.getAllPages")

        assert sent_payload(http) == {"method": "logseq.Editor.getAllPages"}

    @pytest.mark.asyncio
    async def test_empty_body_is_none(self):
        """Test that void methods return None."""
        client, _ = make_client(httpx.Response(200, content=b""))

        assert await client.call("logseq.Editor.removeBlock", "u1") is None

    @pytest.mark.asyncio
    async def test_http_error_status(self):
        """Test that non-2xx responses raise RemoteError with the status."""
        client, _ = make_client(httpx.Response(401))

        with pytest.raises(RemoteError) as exc_info:
            await client.call("logseq.Editor.getPage", "Inbox")

        assert exc_info.value.status_code == 401
        assert "logseq.Editor.getPage" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_error_in_body(self):
        """Test that an application error reported in the body raises."""
        client, _ = make_client(httpx.Response(200, json={"error": "MethodNotExist"}))

        with pytest.raises(RemoteError, match="MethodNotExist"):
            await client.call("logseq.Editor.nope")

    @pytest.mark.asyncio
    async def test_transport_failure(self):
        """Test that connection errors become RemoteError."""
        http = AsyncMock(spec=httpx.AsyncClient)
        http.post = AsyncMock(side_effect=httpx.ConnectError("connection refused"))
        client = LogseqClient(ENDPOINT, "secret", http_client=http)

        with pytest.raises(RemoteError, match="connection refused"):
            await client.call("logseq.Editor.getPage", "Inbox")

    @pytest.mark.asyncio
    async def test_malformed_json(self):
        """Test that an undecodable body raises MalformedResponseError."""
        client, _ = make_client(httpx.Response(200, content=b"<html>"))

        with pytest.raises(MalformedResponseError):
            await client.call("logseq.Editor.getPage", "Inbox")


class TestBlockOperations:
    """Test the typed block and page helpers."""

    @pytest.mark.asyncio
    async def test_create_block_under_parent(self):
        """Test that a block handle target uses insertBlock as a child."""
        client, http = make_client(httpx.Response(200, json={"uuid": "c1", "content": "child"}))
        parent = RemoteBlock(uuid="p1", content="parent")

        handle = await client.create_block(parent, "child")

        assert handle.uuid == "c1"
        assert sent_payload(http) == {
            "method": "logseq.Editor.insertBlock",
            "args": ["p1", "child", {"before": False, "sibling": False}],
        }

    @pytest.mark.asyncio
    async def test_create_block_on_page(self):
        """Test that a page name target appends to the page."""
        client, http = make_client(httpx.Response(200, json={"uuid": "b1", "content": "A"}))

        await client.create_block("Inbox", "A")

        assert sent_payload(http) == {"method": "logseq.Editor.appendBlockInPage", "args": ["Inbox", "A"]}

    @pytest.mark.asyncio
    async def test_prepend_block_on_page(self):
        """Test that before=True with a page name prepends."""
        client, http = make_client(httpx.Response(200, json={"uuid": "b1"}))

        await client.create_block("Inbox", "A", before=True)

        assert sent_payload(http)["method"] == "logseq.Editor.prependBlockInPage"

    @pytest.mark.asyncio
    async def test_create_block_without_result(self):
        """Test that a null create result is an error."""
        client, _ = make_client(httpx.Response(200, json=None))

        with pytest.raises(RemoteError, match="no block"):
            await client.create_block("Inbox", "A")

    @pytest.mark.asyncio
    async def test_get_page_missing(self):
        """Test that a missing page is None."""
        client, _ = make_client(httpx.Response(200, json=None))

        assert await client.get_page("Nope") is None

    @pytest.mark.asyncio
    async def test_get_page_blocks_missing_page(self):
        """Test that fetching blocks of a missing page raises PageNotFoundError."""
        client, _ = make_client(httpx.Response(200, json=None))

        with pytest.raises(PageNotFoundError):
            await client.get_page_blocks("Nope")

    @pytest.mark.asyncio
    async def test_get_page_blocks_tree(self):
        """Test decoding a nested block tree, skipping unloaded children."""
        tree = [
            {
                "uuid": "a",
                "content": "TODO A",
                "marker": "TODO",
                "properties": None,
                "children": [
                    {"uuid": "b", "content": "B", "children": []},
                    ["uuid", "not-loaded"],
                ],
            }
        ]
        client, _ = make_client(httpx.Response(200, json=tree))

        blocks = await client.get_page_blocks("Inbox")

        assert blocks[0].properties == {}
        assert [child.uuid for child in blocks[0].children] == ["b"]
        block = blocks[0].to_block()
        assert block.marker == "TODO"
        assert block.content == "A"
        assert block.children[0].content == "B"

    @pytest.mark.asyncio
    async def test_insert_batch_options(self):
        """Test insertBatchBlock arguments for a prepend at the top of a page."""
        client, http = make_client(httpx.Response(200, json=[]))

        await client.insert_batch("page-uuid", [{"content": "A"}], sibling=False, before=True)

        assert sent_payload(http)["args"] == ["page-uuid", [{"content": "A"}], {"sibling": False, "before": True}]

    @pytest.mark.asyncio
    async def test_remove_and_upsert_by_uuid(self):
        """Test that block handles are addressed by uuid."""
        client, http = make_client(httpx.Response(200, content=b""), httpx.Response(200, content=b""))
        handle = RemoteBlock(uuid="b1", content="A")

        await client.upsert_property(handle, "owner", "Sam")
        await client.remove_block(handle)

        assert sent_payload(http, 0) == {
            "method": "logseq.Editor.upsertBlockProperty",
            "args": ["b1", "owner", "Sam"],
        }
        assert sent_payload(http, 1) == {"method": "logseq.Editor.removeBlock", "args": ["b1"]}


class TestFromConfig:
    """Test building clients from configuration."""

    def test_requires_token(self):
        """Test that a client cannot be built without a token."""
        with pytest.raises(GuidanceError):
            LogseqClient.from_config(Configuration())

    def test_uses_configured_settings(self):
        """Test endpoint, token and timeout come from the config."""
        config = Configuration(logseq=LogseqConfig(token="abc", timeout=5))

        client = LogseqClient.from_config(config)

        assert client.endpoint == ENDPOINT
        assert client.token == "abc"
        assert client.timeout.read == 5.0

    @pytest.mark.asyncio
    async def test_injected_client_not_closed(self):
        """Test that aclose() leaves an injected HTTP client alone."""
        http = AsyncMock(spec=httpx.AsyncClient)

        async with LogseqClient(ENDPOINT, "secret", http_client=http):
            pass

        http.aclose.assert_not_called()
