"""Async client for Logseq's local HTTP API.

Every API method is a POST of ``{"method": ..., "args": [...]}`` to a single
endpoint, authorized with a bearer token. This module exposes the small
block store contract the streaming builder depends on (BlockStore) and the
httpx-based implementation of it (LogseqClient).
"""

import json
from typing import Any, Optional, Protocol, Union

import httpx
from pydantic import BaseModel, Field, ValidationError, field_validator

from logseq_bridge.models.block import Block
from logseq_bridge.models.config import Configuration
from logseq_bridge.services.exceptions import (
    MalformedResponseError,
    PageNotFoundError,
    RemoteError,
)
from logseq_bridge.utils.logging import get_logger


logger = get_logger(__name__)


class RemoteBlock(BaseModel):
    """Block handle returned by the Logseq API.

    Only ``uuid`` is required; everything else Logseq sends is kept so the
    block can be converted into a Block tree.
    """

    uuid: str = Field(..., description="Logseq block UUID")
    content: str = Field(default="", description="Raw block text")
    properties: dict[str, Any] = Field(default_factory=dict)
    children: list["RemoteBlock"] = Field(default_factory=list)

    model_config = {"extra": "allow"}

    @field_validator("content", mode="before")
    @classmethod
    def none_content(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("properties", mode="before")
    @classmethod
    def none_properties(cls, v: Any) -> Any:
        return {} if v is None else v

    @field_validator("children", mode="before")
    @classmethod
    def drop_unloaded_children(cls, v: Any) -> Any:
        """Logseq sends ["uuid", "..."] pairs for children it did not load."""
        if v is None:
            return []
        return [child for child in v if isinstance(child, dict)]

    def to_block(self) -> Block:
        """Convert this handle (and its loaded children) into a Block tree."""
        return Block.from_dict(self.model_dump(), marker_in_content=True)


RemoteBlock.model_rebuild()


class RemotePage(BaseModel):
    """Page entity returned by logseq.Editor.getPage / createPage."""

    uuid: str
    name: Optional[str] = None
    original_name: Optional[str] = Field(default=None, alias="originalName")

    model_config = {"extra": "ignore", "populate_by_name": True}


BlockTarget = Union[RemoteBlock, str]


class BlockStore(Protocol):
    """Remote block operations the streaming builder and page writer need."""

    async def get_page_blocks(self, page_name: str) -> list[RemoteBlock]:
        ...

    async def create_block(
        self, target: BlockTarget, content: str, *, before: bool = False, sibling: bool = False
    ) -> RemoteBlock:
        ...

    async def remove_block(self, handle: RemoteBlock) -> None:
        ...

    async def upsert_property(self, handle: RemoteBlock, key: str, value: Any) -> None:
        ...


class LogseqClient:
    """
    HTTP client for the Logseq API server.

    No retries: a failed call raises and the caller decides what to do.

    Example:
        >>> async with LogseqClient.from_config(config) as client:
        ...     blocks = await client.get_page_blocks("Inbox")
    """

    def __init__(
        self,
        endpoint: str,
        token: str,
        timeout: float = 30.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize Logseq client.

        Args:
            endpoint: API endpoint URL (e.g. http://127.0.0.1:12315/api)
            token: Bearer token configured in Logseq
            timeout: Per-request timeout in seconds
            http_client: Pre-built httpx client (tests inject a mock here)
        """
        self.endpoint = endpoint
        self.token = token
        self.timeout = httpx.Timeout(timeout)
        self._client = http_client
        self._owns_client = http_client is None

    @classmethod
    def from_config(cls, config: Configuration, http_client: Optional[httpx.AsyncClient] = None) -> "LogseqClient":
        """Build a client from configuration.

        Raises:
            GuidanceError: If no API token is configured
        """
        token = config.require_token()
        return cls(
            endpoint=str(config.logseq.endpoint),
            token=token,
            timeout=config.logseq.timeout,
            http_client=http_client,
        )

    async def __aenter__(self) -> "LogseqClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying httpx client if this instance created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def call(self, method: str, *args: Any) -> Any:
        """
        Invoke one Logseq API method.

        Args:
            method: Fully qualified API method (e.g. "logseq.Editor.getPage")
            *args: Positional method arguments

        Returns:
            Decoded JSON result (None for void methods)

        Raises:
            RemoteError: On transport failure, non-2xx status or an error
                reported by Logseq
            MalformedResponseError: If the body is not valid JSON
        """
        payload: dict[str, Any] = {"method": method}
        if args:
            payload["args"] = list(args)

        logger.debug("logseq_request", method=method, args=payload.get("args"))

        try:
            response = await self._http().post(
                self.endpoint,
                json=payload,
                headers={
                    "Authorization": f"Bearer {self.token}",
                    "Content-Type": "application/json",
                },
            )
        except httpx.HTTPError as e:
            logger.error("logseq_request_failed", method=method, error=str(e))
            raise RemoteError(method, f"Request failed: {e}") from e

        if response.status_code >= 400:
            logger.error("logseq_http_error", method=method, status_code=response.status_code)
            raise RemoteError(
                method,
                f"HTTP {response.status_code}: {response.reason_phrase}",
                status_code=response.status_code,
            )

        if not response.content or not response.content.strip():
            result = None
        else:
            try:
                result = response.json()
            except (json.JSONDecodeError, ValueError) as e:
                logger.error("logseq_malformed_response", method=method, error=str(e))
                raise MalformedResponseError(method, f"Response is not valid JSON: {e}") from e

        if isinstance(result, dict) and result.get("error"):
            logger.error("logseq_api_error", method=method, error=result["error"])
            raise RemoteError(method, str(result["error"]), status_code=response.status_code)

        logger.debug("logseq_response", method=method, result_type=type(result).__name__)
        return result

    @staticmethod
    def _block(method: str, result: Any) -> RemoteBlock:
        if result is None:
            raise RemoteError(method, "Logseq returned no block")
        try:
            return RemoteBlock.model_validate(result)
        except ValidationError as e:
            raise MalformedResponseError(method, f"Unexpected block shape: {e}") from e

    async def get_page(self, page_name: str) -> Optional[RemotePage]:
        """Look up a page by name; None when it does not exist."""
        method = "logseq.Editor.getPage"
        result = await self.call(method, page_name)
        if result is None:
            return None
        try:
            return RemotePage.model_validate(result)
        except ValidationError as e:
            raise MalformedResponseError(method, f"Unexpected page shape: {e}") from e

    async def create_page(self, page_name: str) -> RemotePage:
        """Create an empty page.

        Raises:
            RemoteError: If Logseq did not return the new page
        """
        method = "logseq.Editor.createPage"
        result = await self.call(method, page_name, {})
        if result is None:
            raise RemoteError(method, f"Could not create page {page_name!r}")
        try:
            return RemotePage.model_validate(result)
        except ValidationError as e:
            raise MalformedResponseError(method, f"Unexpected page shape: {e}") from e

    async def get_page_blocks(self, page_name: str) -> list[RemoteBlock]:
        """Fetch a page's block tree.

        Raises:
            PageNotFoundError: If the page does not exist
        """
        method = "logseq.Editor.getPageBlocksTree"
        result = await self.call(method, page_name)
        if result is None:
            raise PageNotFoundError(page_name, method)
        if not isinstance(result, list):
            raise MalformedResponseError(method, "Expected a list of blocks")
        return [self._block(method, item) for item in result]

    async def create_block(
        self, target: BlockTarget, content: str, *, before: bool = False, sibling: bool = False
    ) -> RemoteBlock:
        """Create one block.

        Args:
            target: Parent/sibling block handle, or a page name
            content: Raw block text
            before: Insert before the target instead of after it
            sibling: Insert as sibling of the target instead of as child

        Returns:
            Handle of the created block
        """
        if isinstance(target, RemoteBlock):
            method = "logseq.Editor.insertBlock"
            result = await self.call(method, target.uuid, content, {"before": before, "sibling": sibling})
        elif before:
            method = "logseq.Editor.prependBlockInPage"
            result = await self.call(method, target, content)
        else:
            method = "logseq.Editor.appendBlockInPage"
            result = await self.call(method, target, content)
        return self._block(method, result)

    async def remove_block(self, handle: RemoteBlock) -> None:
        """Delete a block (and its children)."""
        await self.call("logseq.Editor.removeBlock", handle.uuid)

    async def upsert_property(self, handle: RemoteBlock, key: str, value: Any) -> None:
        """Set a block property, creating it when missing."""
        await self.call("logseq.Editor.upsertBlockProperty", handle.uuid, key, value)

    async def insert_batch(
        self, target_uuid: str, payload: list[dict[str, Any]], *, sibling: bool, before: bool = False
    ) -> Any:
        """Insert a nested batch of blocks in one call (logseq.Editor.insertBatchBlock)."""
        options: dict[str, Any] = {"sibling": sibling}
        if before:
            options["before"] = True
        return await self.call("logseq.Editor.insertBatchBlock", target_uuid, payload, options)
