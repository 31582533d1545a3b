"""Shared test fixtures for all test modules."""

import asyncio

import pytest

from logseq_bridge.services.exceptions import RemoteError
from logseq_bridge.services.logseq_client import RemoteBlock


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    """
    Keep every test away from the real log directory, config file and token.

    Logs go to a per-test directory and the config path points at a file
    that does not exist unless the test writes it.
    """
    monkeypatch.setenv("LOGSEQ_BRIDGE_LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.setenv("LOGSEQ_BRIDGE_CONFIG", str(tmp_path / "config.yaml"))
    monkeypatch.delenv("LOGSEQ_TOKEN", raising=False)
    monkeypatch.delenv("LOGSEQ_ENDPOINT", raising=False)
    monkeypatch.delenv("LOGSEQ_BRIDGE_LOG_LEVEL", raising=False)


class FakeBlockStore:
    """
    In-memory block store that records every call in order.

    Each create call is logged twice, once when it starts and once when it
    finishes, so tests can assert that no two calls ever overlap.
    """

    def __init__(self, page_blocks=None, fail_on=None):
        self.events: list[tuple[str, str]] = []
        self.created: list[tuple[str, str]] = []
        self.removed: list[str] = []
        self.page_blocks = page_blocks or []
        self.fail_on = fail_on
        self._counter = 0

    async def get_page_blocks(self, page_name):
        return list(self.page_blocks)

    async def create_block(self, target, content, *, before=False, sibling=False):
        self.events.append(("start", content))
        await asyncio.sleep(0)
        if self.fail_on is not None and content == self.fail_on:
            raise RemoteError("logseq.Editor.insertBlock", f"refused {content}")
        self._counter += 1
        handle = RemoteBlock(uuid=f"uuid-{self._counter}", content=content)
        parent = target.content if isinstance(target, RemoteBlock) else f"page:{target}"
        self.created.append((content, parent))
        self.events.append(("end", content))
        return handle

    async def remove_block(self, handle):
        self.removed.append(handle.uuid)

    async def upsert_property(self, handle, key, value):
        pass


@pytest.fixture
def fake_store():
    """Fresh FakeBlockStore."""
    return FakeBlockStore()


@pytest.fixture
def store_factory():
    """Build FakeBlockStore instances with preset page blocks or failures."""
    return FakeBlockStore
