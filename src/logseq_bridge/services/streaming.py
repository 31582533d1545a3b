"""Streaming builder: materialize outline text in Logseq one block at a time.

Instead of building an in-memory tree, each classified line becomes one
remote create call. A child's call needs the handle returned for its parent,
so every call is awaited before the next line is read: there is exactly one
call in flight at any time, and no pipelining or batching.

A failed call raises and ends the stream. Blocks created before the failure
stay in the graph; nothing is rolled back and nothing is retried.
"""

from dataclasses import dataclass, field
from typing import AsyncIterable, Iterable, Optional, Union

from logseq_bridge.logseq.lines import ClassifiedLine, LineClassifier, LineKind
from logseq_bridge.services.exceptions import BridgeError, RemoteError
from logseq_bridge.services.logseq_client import BlockStore, LogseqClient, RemoteBlock
from logseq_bridge.utils.logging import get_logger

logger = get_logger(__name__)

LineSource = Union[Iterable[str], AsyncIterable[str]]

PROPERTY_KINDS = (LineKind.PROPERTY, LineKind.PAGE_PROPERTY, LineKind.HEADER_PROPERTY)


@dataclass
class Cursor:
    """Where the builder currently is in the remote hierarchy.

    Attributes:
        current_indent: Depth of the most recently created block
        current_handle: Most recently created block
        parent_handle: Parent of the most recently created block (None = page)
        level_stack: Last block created at each depth
    """

    current_indent: int = 0
    current_handle: Optional[RemoteBlock] = None
    parent_handle: Optional[RemoteBlock] = None
    level_stack: list[Optional[RemoteBlock]] = field(default_factory=list)


@dataclass
class StreamResult:
    """Outcome of streaming a document into a page."""

    page_name: str
    created_page: bool
    block_count: int
    removed_placeholder: bool = False


class StreamingBuilder:
    """Feed outline lines; each one becomes a remote block, in order.

    Example:
        >>> builder = StreamingBuilder(client, "Inbox")
        >>> for line in ["- A", "  - B", "- C"]:
        ...     await builder.feed(line)
        >>> await builder.close()
    """

    def __init__(self, store: BlockStore, page_name: str, new_page: bool = False):
        """
        Args:
            store: Remote block store
            page_name: Target page (must exist)
            new_page: The page was just created and starts with an empty
                placeholder block that close() should remove
        """
        self.store = store
        self.page_name = page_name
        self.new_page = new_page
        self.classifier = LineClassifier()
        self.cursor = Cursor()
        self.block_count = 0

    async def feed(self, line: str) -> Optional[RemoteBlock]:
        """Process one raw line.

        Returns:
            Handle of the block created for the line, or None when the line
            produced no block (blank line, page header)

        Raises:
            RemoteError: If the create call fails
        """
        classified = self.classifier.classify(line)
        if classified is None:
            return None

        if classified.kind == LineKind.HEADER:
            logger.debug("stream_header_skipped", page=self.page_name, header=classified.content)
            return None
        if classified.kind == LineKind.BLOCK:
            return await self._on_block(classified)
        if classified.kind in PROPERTY_KINDS:
            return await self._on_property(classified)
        return await self._on_content(classified)

    async def _create(self, parent: Optional[RemoteBlock], content: str, level: int) -> RemoteBlock:
        target = parent if parent is not None else self.page_name
        handle = await self.store.create_block(target, content)
        self.block_count += 1
        logger.debug(
            "stream_block_created",
            page=self.page_name,
            level=level,
            parent=parent.uuid if parent is not None else None,
            uuid=handle.uuid,
        )
        return handle

    def _ancestor(self, level: int) -> Optional[RemoteBlock]:
        """Parent handle for a new block at ``level`` (None = page root)."""
        if level == 0:
            return None
        stack = self.cursor.level_stack
        if level - 1 < len(stack):
            return stack[level - 1]
        return stack[-1] if stack else None

    def _advance(self, level: int, parent: Optional[RemoteBlock], handle: RemoteBlock) -> None:
        cursor = self.cursor
        del cursor.level_stack[level:]
        # Indentation jumps reuse the nearest open handle for the skipped levels
        while len(cursor.level_stack) < level:
            cursor.level_stack.append(cursor.level_stack[-1] if cursor.level_stack else None)
        cursor.level_stack.append(handle)
        cursor.parent_handle = parent
        cursor.current_handle = handle
        cursor.current_indent = level

    async def _on_block(self, line: ClassifiedLine) -> RemoteBlock:
        cursor = self.cursor
        if line.level > cursor.current_indent:
            parent = cursor.current_handle
        elif line.level < cursor.current_indent:
            parent = self._ancestor(line.level)
        else:
            parent = cursor.parent_handle

        handle = await self._create(parent, line.content, line.level)
        self._advance(line.level, parent, handle)
        return handle

    async def _on_property(self, line: ClassifiedLine) -> RemoteBlock:
        parent = self._ancestor(line.level)
        handle = await self._create(parent, line.content, line.level)
        self._advance(line.level, parent, handle)
        return handle

    async def _on_content(self, line: ClassifiedLine) -> RemoteBlock:
        cursor = self.cursor
        target = cursor.parent_handle if cursor.parent_handle is not None else cursor.current_handle
        return await self._create(target, line.content, line.level)

    async def close(self) -> bool:
        """Finish the stream.

        For a brand-new page, removes the empty placeholder block Logseq puts
        at the top of every new page. Failures here are logged and ignored.

        Returns:
            True if a placeholder block was removed
        """
        if not self.new_page:
            return False

        try:
            blocks = await self.store.get_page_blocks(self.page_name)
            if blocks and not blocks[0].content.strip():
                await self.store.remove_block(blocks[0])
                logger.debug("stream_placeholder_removed", page=self.page_name, uuid=blocks[0].uuid)
                return True
        except BridgeError as e:
            logger.warning("stream_placeholder_cleanup_failed", page=self.page_name, error=str(e))
        return False


async def _iterate(lines: LineSource):
    if hasattr(lines, "__aiter__"):
        async for line in lines:
            yield line
    else:
        for line in lines:
            yield line


async def stream_lines(builder: StreamingBuilder, lines: LineSource) -> StreamResult:
    """Feed every line to the builder, then close it.

    Raises:
        RemoteError: If a create call fails; the stream stops there
    """
    try:
        async for line in _iterate(lines):
            await builder.feed(line)
    except RemoteError as e:
        logger.error(
            "stream_aborted",
            page=builder.page_name,
            blocks_created=builder.block_count,
            error=str(e),
        )
        raise

    removed = await builder.close()
    logger.info("stream_completed", page=builder.page_name, blocks_created=builder.block_count)
    return StreamResult(
        page_name=builder.page_name,
        created_page=builder.new_page,
        block_count=builder.block_count,
        removed_placeholder=removed,
    )


async def stream_to_page(client: LogseqClient, page_name: str, lines: LineSource) -> StreamResult:
    """Stream outline lines into a page, creating the page when needed.

    Args:
        client: Logseq API client
        page_name: Target page name
        lines: Raw outline lines (sync or async iterable)

    Returns:
        StreamResult with the number of blocks created
    """
    page = await client.get_page(page_name)
    created = page is None
    if created:
        page = await client.create_page(page_name)
        logger.info("stream_page_created", page=page_name, uuid=page.uuid)
    else:
        logger.info("stream_page_found", page=page_name, uuid=page.uuid)

    builder = StreamingBuilder(client, page_name, new_page=created)
    return await stream_lines(builder, lines)
