"""Batch writes to Logseq pages: insert a parsed block tree, wipe page content.

Unlike the streaming builder, posting sends the whole tree in a single
logseq.Editor.insertBatchBlock call, so the document has to be parsed
first.
"""

from dataclasses import dataclass
from typing import Any, Optional

from logseq_bridge.logseq.markers import restore_marker
from logseq_bridge.models.block import Block
from logseq_bridge.services.exceptions import BridgeError, RemoteError
from logseq_bridge.services.logseq_client import LogseqClient, RemoteBlock
from logseq_bridge.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class PostResult:
    """Outcome of posting blocks to a page."""

    page_name: str
    block_count: int
    created_page: bool = False
    prepended: bool = False


@dataclass
class WipeResult:
    """Outcome of wiping a page.

    Attributes:
        deleted: Blocks removed
        kept: Property blocks left in place
        total: Top-level blocks found on the page
        failed: Blocks whose removal failed
        already_empty: The page had no blocks at all
    """

    deleted: int = 0
    kept: int = 0
    total: int = 0
    failed: int = 0
    already_empty: bool = False


def _batch_block(block: Block) -> dict[str, Any]:
    item: dict[str, Any] = {"content": restore_marker(block.marker, block.content)}

    properties: dict[str, Any] = {
        key: list(value) if isinstance(value, list) else value
        for key, value in block.properties.items()
    }
    if block.collapsed:
        properties["collapsed"] = True
    if properties:
        item["properties"] = properties

    if block.children:
        item["children"] = [_batch_block(child) for child in block.children]
    return item


def to_batch_payload(blocks: list[Block]) -> list[dict[str, Any]]:
    """Convert root blocks into Logseq IBatchBlock dicts.

    Markers go back into content and properties are passed as a mapping.
    Pre-blocks (page headers) are skipped: page properties are not block
    content.

    Examples:
        >>> to_batch_payload([Block(content="Ship it", marker="TODO")])
        [{'content': 'TODO Ship it'}]
    """
    payload = []
    for block in blocks:
        if block.pre_block:
            logger.debug("post_pre_block_skipped", properties=list(block.properties))
            continue
        payload.append(_batch_block(block))
    return payload


def _last_with_properties(blocks: list[RemoteBlock]) -> Optional[RemoteBlock]:
    found = None
    for block in blocks:
        if block.properties:
            found = block
    return found


def _has_real_properties(block: RemoteBlock) -> bool:
    return bool(block.properties) and bool(block.content)


async def post_blocks(
    client: LogseqClient,
    page_name: str,
    blocks: list[Block],
    prepend: bool = False,
    overwrite: bool = False,
) -> PostResult:
    """Insert a block tree into a page with one batch call.

    Placement:
    - New page: created, blocks go in as its content.
    - Append: after the last top-level block (or into the empty page).
    - Prepend: after the last top-level block carrying properties, so page
      properties stay first, else at the very top.

    Args:
        client: Logseq API client
        page_name: Target page
        blocks: Root blocks to insert
        prepend: Insert at the top instead of the bottom
        overwrite: Wipe existing content blocks first (properties survive)

    Returns:
        PostResult describing what happened

    Raises:
        RemoteError: If a lookup or the insert call fails
    """
    payload = to_batch_payload(blocks)
    block_count = len(payload)

    if overwrite:
        try:
            result = await wipe_page(client, page_name)
            logger.info("post_overwrite_wiped", page=page_name, deleted=result.deleted)
        except BridgeError as e:
            logger.warning("post_overwrite_wipe_failed", page=page_name, error=str(e))

    page = await client.get_page(page_name)
    if page is None:
        page = await client.create_page(page_name)
        logger.info("post_page_created", page=page_name, uuid=page.uuid)
        await client.insert_batch(page.uuid, payload, sibling=False)
        return PostResult(page_name, block_count, created_page=True, prepended=prepend)

    existing = await client.get_page_blocks(page_name)

    if prepend:
        anchor = _last_with_properties(existing)
        if anchor is not None:
            logger.debug("post_prepend_after_properties", page=page_name, anchor=anchor.uuid)
            await client.insert_batch(anchor.uuid, payload, sibling=True)
        else:
            logger.debug("post_prepend_top", page=page_name)
            await client.insert_batch(page.uuid, payload, sibling=False, before=True)
    elif existing:
        anchor = existing[-1]
        logger.debug("post_append_after", page=page_name, anchor=anchor.uuid)
        await client.insert_batch(anchor.uuid, payload, sibling=True)
    else:
        logger.debug("post_append_empty_page", page=page_name)
        await client.insert_batch(page.uuid, payload, sibling=False)

    logger.info("post_completed", page=page_name, blocks=block_count, prepend=prepend)
    return PostResult(page_name, block_count, created_page=False, prepended=prepend)


async def wipe_page(client: LogseqClient, page_name: str) -> WipeResult:
    """Remove every top-level content block from a page.

    Blocks holding properties (and some content) are kept; that is where
    Logseq stores page properties. A block that fails to delete is logged
    and counted, and the wipe carries on.

    Raises:
        PageNotFoundError: If the page does not exist
    """
    blocks = await client.get_page_blocks(page_name)
    if not blocks:
        logger.info("wipe_page_already_empty", page=page_name)
        return WipeResult(already_empty=True)

    result = WipeResult(total=len(blocks))
    for block in blocks:
        if _has_real_properties(block):
            result.kept += 1
            continue
        try:
            await client.remove_block(block)
            result.deleted += 1
        except RemoteError as e:
            result.failed += 1
            logger.warning("wipe_block_failed", page=page_name, uuid=block.uuid, error=str(e))

    logger.info(
        "wipe_completed",
        page=page_name,
        deleted=result.deleted,
        kept=result.kept,
        failed=result.failed,
    )
    return result
